"""UCAN data model — capabilities, delegations, and proof references."""
from __future__ import annotations

from mkdelegation.ucan.capability import Capability, CapabilitySpec
from mkdelegation.ucan.delegation import (
    UCAN_VERSION,
    Delegation,
    Inline,
    Link,
    ProofRef,
    as_proof,
)

__all__ = [
    "UCAN_VERSION",
    "Capability",
    "CapabilitySpec",
    "Delegation",
    "Inline",
    "Link",
    "ProofRef",
    "as_proof",
]
