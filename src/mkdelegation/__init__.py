"""mkdelegation — issue and inspect UCAN capability delegations.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Quick start
-----------
::

    from mkdelegation import (
        Ed25519Signer, parse_did,
        DelegationBuilder, ArchiveCodec, ProofChainResolver,
    )

    issuer = Ed25519Signer.generate()
    audience = parse_did("did:web:up.example.com")
    delegation = DelegationBuilder().build(issuer, audience, ["blob/allocate"])

    codec = ArchiveCodec()
    text = codec.format(codec.encode(delegation))
    info = ProofChainResolver().resolve(codec.parse(text))
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------
from mkdelegation.errors import (
    ConfigError,
    DecodeFailureError,
    DelegationError,
    EmptyCapabilitySetError,
    InvalidExpirationError,
    ProofChainTooDeepError,
    SigningFailureError,
    UnknownCapabilityError,
)

# ------------------------------------------------------------------
# Principals
# ------------------------------------------------------------------
from mkdelegation.principal import DID, Ed25519Signer, Signer, WrappedSigner, parse_did

# ------------------------------------------------------------------
# Data model
# ------------------------------------------------------------------
from mkdelegation.blockstore import BlockStore
from mkdelegation.ucan import (
    UCAN_VERSION,
    Capability,
    CapabilitySpec,
    Delegation,
    Inline,
    Link,
    ProofRef,
)

# ------------------------------------------------------------------
# Building, validation, encoding, resolution
# ------------------------------------------------------------------
from mkdelegation.builder import DelegationBuilder, delegate
from mkdelegation.codec import ArchiveCodec, DagCborBlockCodec, format_delegation, parse_delegation
from mkdelegation.config import Settings, load_settings
from mkdelegation.resolver import (
    CapabilityInfo,
    DelegationInfo,
    ProofChainResolver,
    resolve_delegation,
)
from mkdelegation.validator import KNOWN_ABILITIES, CapabilityValidator, validate_abilities

__all__ = [
    "__version__",
    # errors
    "ConfigError",
    "DecodeFailureError",
    "DelegationError",
    "EmptyCapabilitySetError",
    "InvalidExpirationError",
    "ProofChainTooDeepError",
    "SigningFailureError",
    "UnknownCapabilityError",
    # principals
    "DID",
    "Ed25519Signer",
    "Signer",
    "WrappedSigner",
    "parse_did",
    # data model
    "BlockStore",
    "Capability",
    "CapabilitySpec",
    "Delegation",
    "Inline",
    "Link",
    "ProofRef",
    "UCAN_VERSION",
    # operations
    "ArchiveCodec",
    "CapabilityInfo",
    "CapabilityValidator",
    "DagCborBlockCodec",
    "DelegationBuilder",
    "DelegationInfo",
    "KNOWN_ABILITIES",
    "ProofChainResolver",
    "Settings",
    "delegate",
    "format_delegation",
    "load_settings",
    "parse_delegation",
    "resolve_delegation",
    "validate_abilities",
]
