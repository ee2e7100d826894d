"""DelegationBuilder — assemble and sign delegations.

The builder validates the requested capability set and time bounds,
defaults each capability's resource to the issuer's DID, and asks the
issuer to sign the canonical block encoding of every field except the
signature. The result is an immutable :class:`Delegation`.
"""
from __future__ import annotations

import dataclasses
import datetime
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, Optional, Union

from multiformats import CID

from mkdelegation.codec.block import DagCborBlockCodec
from mkdelegation.errors import (
    EmptyCapabilitySetError,
    InvalidExpirationError,
    SigningFailureError,
)
from mkdelegation.principal.did import DID
from mkdelegation.principal.signer import Signer
from mkdelegation.ucan.capability import Capability, CapabilitySpec
from mkdelegation.ucan.delegation import UCAN_VERSION, Delegation, ProofRef, as_proof

logger = logging.getLogger(__name__)

CapabilityRequest = Union[CapabilitySpec, str, Mapping[str, Optional[str]]]


def _utcnow_seconds() -> int:
    return int(datetime.datetime.now(datetime.timezone.utc).timestamp())


class DelegationBuilder:
    """Builds signed delegations.

    Parameters
    ----------
    block_codec:
        Codec producing the canonical bytes that get signed.
    clock:
        Callable returning the current UTC time in epoch seconds. Used to
        reject expirations that are not in the future.
    version:
        UCAN version string written into each delegation.
    """

    def __init__(
        self,
        block_codec: DagCborBlockCodec | None = None,
        clock: Callable[[], int] = _utcnow_seconds,
        version: str = UCAN_VERSION,
    ) -> None:
        self._block_codec = block_codec or DagCborBlockCodec()
        self._clock = clock
        self._version = version

    def build(
        self,
        issuer: Signer,
        audience: DID,
        capabilities: Sequence[CapabilityRequest],
        expiration: int | None = None,
        not_before: int | None = None,
        nonce: str | None = None,
        facts: Iterable[Mapping[str, Any]] | None = None,
        proofs: Iterable["ProofRef | Delegation | CID"] | None = None,
    ) -> Delegation:
        """Create and sign a delegation.

        Parameters
        ----------
        issuer:
            Signer of the delegation; its DID becomes the issuer.
        audience:
            Principal receiving the capabilities.
        capabilities:
            Requested capabilities as :class:`CapabilitySpec` values, bare
            ability strings, or ``{"ability": ..., "resource": ...}`` maps.
        expiration:
            Epoch seconds; must be strictly in the future. ``None`` means
            the delegation never expires.
        not_before:
            Epoch seconds before which the delegation is not valid
            (defaults to 0).
        nonce, facts, proofs:
            Optional payload extras. Proofs may be delegations, CIDs, or
            :data:`~mkdelegation.ucan.delegation.ProofRef` values.

        Returns
        -------
        Delegation

        Raises
        ------
        EmptyCapabilitySetError
            If *capabilities* is empty.
        InvalidExpirationError
            If *expiration* is not after the current time.
        ValueError
            If a fact holds a map whose only key is ``"/"``.
        SigningFailureError
            If the issuer fails to sign; the signer's error is chained.
        """
        if not capabilities:
            raise EmptyCapabilitySetError()
        if expiration is not None:
            now = self._clock()
            if expiration <= now:
                raise InvalidExpirationError(expiration, now)

        issuer_did = issuer.did()
        unsigned = Delegation(
            issuer=issuer_did,
            audience=audience.did() if hasattr(audience, "did") else DID(str(audience)),
            capabilities=tuple(
                _to_capability(request, str(issuer_did)) for request in capabilities
            ),
            version=self._version,
            expiration=expiration,
            not_before=not_before or 0,
            nonce=nonce,
            facts=tuple(dict(fact) for fact in facts or ()),
            proofs=tuple(as_proof(proof) for proof in proofs or ()),
        )

        payload = self._block_codec.signable_bytes(unsigned)
        try:
            signature = issuer.sign(payload)
        except Exception as exc:
            raise SigningFailureError(f"Issuer {issuer_did} failed to sign: {exc}") from exc

        logger.info(
            "Built delegation %s -> %s with %d capability(ies)",
            issuer_did,
            unsigned.audience,
            len(unsigned.capabilities),
        )
        return dataclasses.replace(unsigned, signature=bytes(signature))


def _to_capability(request: CapabilityRequest, default_resource: str) -> Capability:
    if isinstance(request, str):
        request = CapabilitySpec(ability=request)
    elif isinstance(request, Mapping):
        request = CapabilitySpec(
            ability=str(request["ability"]),
            resource=request.get("resource"),
        )
    return Capability(
        ability=request.ability,
        resource=request.resource or default_resource,
    )


def delegate(
    issuer: Signer,
    audience: DID,
    capabilities: Sequence[CapabilityRequest],
    **options: Any,
) -> Delegation:
    """Build a delegation with a default :class:`DelegationBuilder`.

    Keyword options are passed through to :meth:`DelegationBuilder.build`.
    """
    return DelegationBuilder().build(issuer, audience, capabilities, **options)


__all__ = ["CapabilityRequest", "DelegationBuilder", "delegate"]
