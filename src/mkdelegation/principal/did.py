"""DID principals — parsing and the ``did:key`` encoding for Ed25519.

did:key encoding
----------------
1. Take the 32 raw bytes of an Ed25519 public key.
2. Prepend the varint-encoded Ed25519 multicodec (``0xed`` -> ``0xed 0x01``).
3. Encode the result with multibase base58btc (leading ``z``).
4. Assemble: ``did:key:z<base58btc-encoded>``.

A principal carries no behaviour beyond equality and its string form, so
:class:`DID` is a thin frozen wrapper around the identifier.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from multiformats import multibase, varint

_ED25519_PUB_CODE: int = 0xED
_ED25519_MULTICODEC_PREFIX: bytes = varint.encode(_ED25519_PUB_CODE)

_DID_PATTERN = re.compile(r"^did:[a-z0-9]+:[A-Za-z0-9._:%-]+$")


@dataclass(frozen=True)
class DID:
    """A decentralized identifier naming an issuer or audience.

    Parameters
    ----------
    value:
        The full identifier string, e.g. ``did:key:z6Mk...`` or
        ``did:web:up.example.com``.
    """

    value: str

    @property
    def method(self) -> str:
        """Return the DID method name (``key``, ``web``, ...)."""
        return self.value.split(":", 2)[1]

    def did(self) -> "DID":
        return self

    def __str__(self) -> str:
        return self.value


def parse_did(text: str) -> DID:
    """Parse *text* into a :class:`DID`.

    Parameters
    ----------
    text:
        A ``did:<method>:<method-specific-id>`` string. Surrounding
        whitespace is ignored.

    Returns
    -------
    DID

    Raises
    ------
    ValueError
        If *text* is not a syntactically valid DID. ``did:key`` identifiers
        must additionally decode to an Ed25519 public key.
    """
    candidate = text.strip()
    if not _DID_PATTERN.match(candidate):
        raise ValueError(
            f"Invalid DID: {text!r}. Expected format: did:<method>:<identifier>"
        )
    did = DID(candidate)
    if did.method == "key":
        public_key_from_did(did)
    return did


def did_from_public_key(public_key_bytes: bytes) -> DID:
    """Encode a raw Ed25519 public key as a ``did:key`` DID."""
    if len(public_key_bytes) != 32:
        raise ValueError(
            f"Ed25519 public keys are 32 bytes, got {len(public_key_bytes)}."
        )
    encoded = multibase.encode(_ED25519_MULTICODEC_PREFIX + public_key_bytes, "base58btc")
    return DID(f"did:key:{encoded}")


def public_key_from_did(did: DID | str) -> bytes:
    """Decode the raw Ed25519 public key embedded in a ``did:key`` DID.

    Raises
    ------
    ValueError
        If the DID is not ``did:key:z...`` or the multicodec prefix is not
        the Ed25519 public key prefix.
    """
    value = str(did)
    if not value.startswith("did:key:z") or len(value) == len("did:key:z"):
        raise ValueError(
            f"Invalid did:key format: {value!r}. "
            "Expected format: did:key:z<base58btc-encoded-public-key>"
        )
    try:
        decoded = multibase.decode(value[len("did:key:"):])
    except Exception as exc:
        raise ValueError(f"Invalid did:key encoding in {value!r}: {exc}") from exc
    if not decoded.startswith(_ED25519_MULTICODEC_PREFIX):
        prefix_hex = decoded[:2].hex()
        raise ValueError(
            f"Unsupported multicodec prefix 0x{prefix_hex} in DID {value!r}. "
            "Only Ed25519 (0xed01) keys are supported."
        )
    public_bytes = decoded[len(_ED25519_MULTICODEC_PREFIX):]
    if len(public_bytes) != 32:
        raise ValueError(f"did:key {value!r} does not embed a 32-byte Ed25519 key.")
    return public_bytes


__all__ = [
    "DID",
    "did_from_public_key",
    "parse_did",
    "public_key_from_did",
]
