"""Signers — Ed25519 key handling for delegation issuers.

This module is a thin wrapper around the ``cryptography`` package's
Ed25519 primitives: generate a key, load one from its multibase or PEM
form, format it back to text, and sign bytes. Signature verification is
not part of this package.

Private key text format
-----------------------
Multibase ``base64pad`` (leading ``M``) of::

    varint(0x1300) || private key (32 bytes) || varint(0xed) || public key (32 bytes)
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)
from multiformats import multibase, varint

from mkdelegation.principal.did import DID, did_from_public_key

_ED25519_PRIV_CODE: int = 0x1300
_ED25519_PUB_CODE: int = 0xED
_PRIVATE_TAG: bytes = varint.encode(_ED25519_PRIV_CODE)
_PUBLIC_TAG: bytes = varint.encode(_ED25519_PUB_CODE)
_KEY_SIZE: int = 32


@runtime_checkable
class Signer(Protocol):
    """Anything able to sign bytes on behalf of a principal."""

    def did(self) -> DID:
        """Return the principal this signer issues as."""
        ...

    def sign(self, payload: bytes) -> bytes:
        """Return a signature over *payload*."""
        ...


class Ed25519Signer:
    """An Ed25519 private key acting as a ``did:key`` principal.

    Example
    -------
    ::

        signer = Ed25519Signer.generate()
        text = signer.format()
        assert Ed25519Signer.parse(text).did() == signer.did()
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self._public_bytes = private_key.public_key().public_bytes(
            Encoding.Raw, PublicFormat.Raw
        )
        self._did = did_from_public_key(self._public_bytes)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def generate(cls) -> "Ed25519Signer":
        """Generate a signer from a fresh random key."""
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_private_bytes(cls, private_key_bytes: bytes) -> "Ed25519Signer":
        """Load a signer from 32 raw private key bytes."""
        if len(private_key_bytes) != _KEY_SIZE:
            raise ValueError(
                f"Ed25519 private keys are {_KEY_SIZE} bytes, got {len(private_key_bytes)}."
            )
        return cls(Ed25519PrivateKey.from_private_bytes(private_key_bytes))

    @classmethod
    def parse(cls, text: str) -> "Ed25519Signer":
        """Load a signer from its multibase text form (see :meth:`format`).

        Raises
        ------
        ValueError
            If the text is not valid multibase, has the wrong length, carries
            unexpected multicodec tags, or the embedded public key does not
            match the private key.
        """
        try:
            raw = multibase.decode(text.strip())
        except Exception as exc:
            raise ValueError(f"Private key is not valid multibase: {exc}") from exc

        expected = len(_PRIVATE_TAG) + _KEY_SIZE + len(_PUBLIC_TAG) + _KEY_SIZE
        if len(raw) != expected:
            raise ValueError(
                f"Encoded Ed25519 key must be {expected} bytes, got {len(raw)}."
            )
        if not raw.startswith(_PRIVATE_TAG):
            raise ValueError("Private key is not tagged as an Ed25519 private key.")
        offset = len(_PRIVATE_TAG)
        private_bytes = raw[offset:offset + _KEY_SIZE]
        offset += _KEY_SIZE
        if raw[offset:offset + len(_PUBLIC_TAG)] != _PUBLIC_TAG:
            raise ValueError("Embedded public key is not tagged as an Ed25519 public key.")
        public_bytes = raw[offset + len(_PUBLIC_TAG):]

        signer = cls.from_private_bytes(private_bytes)
        if signer.public_key_bytes != public_bytes:
            raise ValueError("Embedded public key does not match the private key.")
        return signer

    @classmethod
    def from_pem(cls, data: bytes) -> "Ed25519Signer":
        """Load a signer from an unencrypted PEM encoded Ed25519 private key."""
        key = load_pem_private_key(data, password=None)
        if not isinstance(key, Ed25519PrivateKey):
            raise ValueError(
                f"PEM key is {type(key).__name__}, expected an Ed25519 private key."
            )
        return cls(key)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def public_key_bytes(self) -> bytes:
        return self._public_bytes

    def did(self) -> DID:
        return self._did

    def format(self) -> str:
        """Render the key in multibase ``base64pad`` text form."""
        private_bytes = self._private_key.private_bytes(
            Encoding.Raw, PrivateFormat.Raw, NoEncryption()
        )
        raw = _PRIVATE_TAG + private_bytes + _PUBLIC_TAG + self._public_bytes
        return multibase.encode(raw, "base64pad")

    def sign(self, payload: bytes) -> bytes:
        """Return the 64-byte Ed25519 signature over *payload*."""
        return self._private_key.sign(payload)


class WrappedSigner:
    """Re-labels a signer with a different DID (e.g. a ``did:web``).

    The underlying key still produces the signatures; only the issuer
    identifier changes.

    Parameters
    ----------
    signer:
        The signer whose key is used.
    did:
        The identifier to issue as.
    """

    def __init__(self, signer: Signer, did: DID) -> None:
        self._signer = signer
        self._did = did

    @property
    def unwrapped(self) -> Signer:
        return self._signer

    def did(self) -> DID:
        return self._did

    def sign(self, payload: bytes) -> bytes:
        return self._signer.sign(payload)


__all__ = ["Ed25519Signer", "Signer", "WrappedSigner"]
