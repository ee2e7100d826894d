"""Delegation — an immutable, signed UCAN delegation and its proof references.

A delegation references the delegations it builds on through
:data:`ProofRef` values. A proof is either carried in memory
(:class:`Inline`) or named by content identifier (:class:`Link`) and
materialised later from a :class:`~mkdelegation.blockstore.BlockStore`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from multiformats import CID

from mkdelegation.blockstore import BlockStore
from mkdelegation.principal.did import DID
from mkdelegation.ucan.capability import Capability

UCAN_VERSION: str = "0.9.1"


@dataclass(frozen=True)
class Delegation:
    """A signed grant of capabilities from *issuer* to *audience*.

    Parameters
    ----------
    issuer:
        The granting principal.
    audience:
        The principal receiving the capabilities.
    capabilities:
        Ordered, non-empty tuple of granted capabilities.
    signature:
        Signature over the canonical encoding of every other field.
    version:
        UCAN version string.
    expiration:
        UTC seconds since the epoch after which the delegation is invalid,
        or ``None`` for no expiration.
    not_before:
        UTC seconds since the epoch before which the delegation is invalid.
    nonce:
        Optional nonce.
    facts:
        Ordered tuple of fact mappings.
    proofs:
        Ordered tuple of proof references.
    blocks:
        Blocks available locally alongside this delegation (usually those
        of the archive it was decoded from). Not part of equality.
    """

    issuer: DID
    audience: DID
    capabilities: tuple[Capability, ...]
    signature: bytes = b""
    version: str = UCAN_VERSION
    expiration: Optional[int] = None
    not_before: int = 0
    nonce: Optional[str] = None
    facts: tuple[dict[str, Any], ...] = ()
    proofs: tuple["ProofRef", ...] = ()
    blocks: BlockStore = field(default_factory=BlockStore, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not self.capabilities:
            raise ValueError("Delegation.capabilities must contain at least one capability.")

    def link(self) -> CID:
        """Return the content identifier of this delegation's block."""
        from mkdelegation.codec.block import DagCborBlockCodec

        return DagCborBlockCodec().link(self)

    def __hash__(self) -> int:
        return hash(bytes(self.link()))


class _Proof:
    """Proof references are equal when they name the same block."""

    __slots__ = ()

    cid: CID

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _Proof):
            return NotImplemented
        return bytes(self.cid) == bytes(other.cid)

    def __hash__(self) -> int:
        return hash(bytes(self.cid))


@dataclass(frozen=True, eq=False)
class Inline(_Proof):
    """A proof carried directly as a :class:`Delegation`."""

    delegation: Delegation

    @property
    def cid(self) -> CID:
        return self.delegation.link()


@dataclass(frozen=True, eq=False)
class Link(_Proof):
    """A proof referenced by the CID of its block."""

    cid: CID


ProofRef = Union[Inline, Link]


def as_proof(proof: "ProofRef | Delegation | CID") -> ProofRef:
    """Coerce a delegation or CID into a :data:`ProofRef`."""
    if isinstance(proof, (Inline, Link)):
        return proof
    if isinstance(proof, Delegation):
        return Inline(proof)
    if isinstance(proof, CID):
        return Link(proof)
    raise TypeError(f"Cannot use {type(proof).__name__} as a proof.")


__all__ = ["UCAN_VERSION", "Delegation", "Inline", "Link", "ProofRef", "as_proof"]
