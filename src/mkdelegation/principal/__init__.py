"""Principals and signers.

Quick start
-----------
::

    from mkdelegation.principal import Ed25519Signer, parse_did

    issuer = Ed25519Signer.generate()
    audience = parse_did("did:web:up.example.com")
"""
from __future__ import annotations

from mkdelegation.principal.did import DID, did_from_public_key, parse_did, public_key_from_did
from mkdelegation.principal.signer import Ed25519Signer, Signer, WrappedSigner

__all__ = [
    "DID",
    "Ed25519Signer",
    "Signer",
    "WrappedSigner",
    "did_from_public_key",
    "parse_did",
    "public_key_from_did",
]
