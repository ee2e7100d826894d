"""ProofChainResolver — materialise a delegation's proof chain for display.

Resolution walks ``delegation.proofs`` in order. Inline proofs are
resolved directly; link proofs are looked up in a
:class:`~mkdelegation.blockstore.BlockStore` and decoded. A link whose
block is missing or undecodable is silently left out: archives may
legitimately omit blocks their holder does not have.

The resulting :class:`DelegationInfo` tree is for inspection only. It does
not establish that the chain grants any authority.
"""
from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from multiformats import CID

from mkdelegation.blockstore import BlockStore
from mkdelegation.codec.block import DagCborBlockCodec
from mkdelegation.errors import DecodeFailureError, ProofChainTooDeepError
from mkdelegation.ucan.delegation import Delegation, Inline

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH: int = 64


@dataclass(frozen=True)
class CapabilityInfo:
    """Display view of a capability."""

    can: str
    with_: str

    def to_dict(self) -> dict[str, object]:
        return {"with": self.with_, "can": self.can}


@dataclass
class DelegationInfo:
    """Display view of a delegation and its resolved proofs.

    Parameters
    ----------
    issuer, audience:
        DID strings of the issuing and receiving principals.
    version:
        UCAN version string.
    expiration:
        Epoch seconds, or ``None`` when the delegation never expires.
    not_before:
        Epoch seconds (0 when unset).
    nonce:
        Nonce string, empty when unset.
    proofs:
        CID strings of every proof the delegation references, resolved or not.
    signature:
        Raw signature bytes.
    capabilities:
        Granted capabilities in order.
    facts:
        Fact mappings in order.
    proof_delegations:
        Successfully resolved proofs, in proof order.
    """

    issuer: str
    audience: str
    version: str
    expiration: Optional[int]
    not_before: int
    nonce: str
    proofs: list[str]
    signature: bytes
    capabilities: list[CapabilityInfo]
    facts: list[dict[str, Any]]
    proof_delegations: list["DelegationInfo"] = field(default_factory=list)

    @classmethod
    def from_delegation(cls, delegation: Delegation) -> "DelegationInfo":
        """Build the flat view of *delegation* (no proof resolution)."""
        return cls(
            issuer=str(delegation.issuer),
            audience=str(delegation.audience),
            version=delegation.version,
            expiration=delegation.expiration,
            not_before=delegation.not_before,
            nonce=delegation.nonce or "",
            proofs=[str(proof.cid) for proof in delegation.proofs],
            signature=delegation.signature,
            capabilities=[
                CapabilityInfo(can=c.ability, with_=c.resource)
                for c in delegation.capabilities
            ],
            facts=[dict(fact) for fact in delegation.facts],
        )

    def flat(self) -> "DelegationInfo":
        """Return a copy of this node without resolved proofs."""
        return DelegationInfo(
            issuer=self.issuer,
            audience=self.audience,
            version=self.version,
            expiration=self.expiration,
            not_before=self.not_before,
            nonce=self.nonce,
            proofs=list(self.proofs),
            signature=self.signature,
            capabilities=list(self.capabilities),
            facts=[dict(f) for f in self.facts],
        )

    def to_dict(self) -> dict[str, object]:
        """Serialise to a JSON-compatible dictionary.

        Optional members (expiration, nonce, proofs, facts, resolved
        proofs) are omitted when empty. The signature is standard base64.
        """
        data: dict[str, object] = {
            "issuer": self.issuer,
            "audience": self.audience,
            "version": self.version,
        }
        if self.expiration is not None:
            data["expiration"] = self.expiration
        data["notBefore"] = self.not_before
        if self.nonce:
            data["nonce"] = self.nonce
        if self.proofs:
            data["proofs"] = list(self.proofs)
        if self.proof_delegations:
            data["proofDelegations"] = [p.to_dict() for p in self.proof_delegations]
        data["signature"] = base64.b64encode(self.signature).decode("ascii")
        data["capabilities"] = [c.to_dict() for c in self.capabilities]
        if self.facts:
            data["facts"] = [_jsonable(f) for f in self.facts]
        return data


class ProofChainResolver:
    """Recursively resolves delegations into :class:`DelegationInfo` trees.

    Parameters
    ----------
    max_depth:
        Deepest proof level allowed (the root is depth 0). Exceeding it
        raises :class:`~mkdelegation.errors.ProofChainTooDeepError`.
    block_codec:
        Codec used to decode linked proof blocks.
    """

    def __init__(
        self,
        max_depth: int = DEFAULT_MAX_DEPTH,
        block_codec: DagCborBlockCodec | None = None,
    ) -> None:
        if max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {max_depth}.")
        self._max_depth = max_depth
        self._block_codec = block_codec or DagCborBlockCodec()

    @property
    def max_depth(self) -> int:
        return self._max_depth

    def resolve(self, delegation: Delegation, blocks: BlockStore | None = None) -> DelegationInfo:
        """Resolve *delegation* and its proofs.

        Parameters
        ----------
        delegation:
            The root delegation.
        blocks:
            Store to resolve link proofs from. Defaults to the blocks the
            delegation was decoded with.

        Raises
        ------
        ProofChainTooDeepError
            If any branch is deeper than ``max_depth``.
        """
        store = blocks if blocks is not None else delegation.blocks
        return self._resolve(delegation, store, 0)

    def _resolve(self, delegation: Delegation, blocks: BlockStore, depth: int) -> DelegationInfo:
        if depth > self._max_depth:
            raise ProofChainTooDeepError(self._max_depth)

        info = DelegationInfo.from_delegation(delegation)
        for proof in delegation.proofs:
            if isinstance(proof, Inline):
                child: Delegation | None = proof.delegation
            else:
                child = self._load(proof.cid, blocks)
            if child is None:
                continue
            info.proof_delegations.append(self._resolve(child, blocks, depth + 1))
        return info

    def _load(self, cid: CID, blocks: BlockStore) -> Delegation | None:
        data = blocks.get(cid)
        if data is None:
            logger.debug("Proof %s not found in block store; omitting", cid)
            return None
        try:
            return self._block_codec.decode_block(data, blocks=blocks)
        except DecodeFailureError as exc:
            logger.debug("Proof %s could not be decoded (%s); omitting", cid, exc)
            return None


def resolve_delegation(
    delegation: Delegation,
    blocks: BlockStore | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> DelegationInfo:
    """Resolve *delegation* with a one-off :class:`ProofChainResolver`."""
    return ProofChainResolver(max_depth=max_depth).resolve(delegation, blocks)


def _jsonable(value: Any) -> Any:
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, CID):
        return str(value)
    return value


__all__ = [
    "DEFAULT_MAX_DEPTH",
    "CapabilityInfo",
    "DelegationInfo",
    "ProofChainResolver",
    "resolve_delegation",
]
