"""Capability — a single (ability, resource) grant inside a delegation."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class Capability:
    """The right to perform *ability* on *resource*.

    Parameters
    ----------
    ability:
        Namespaced verb, e.g. ``"blob/allocate"``.
    resource:
        The resource URI the grant is scoped to, usually the issuer's DID.
    caveats:
        Additional constraints on the grant. Always empty for delegations
        produced by this package.
    """

    ability: str
    resource: str
    caveats: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.ability:
            raise ValueError("Capability.ability must not be empty.")
        if not self.resource:
            raise ValueError("Capability.resource must not be empty.")

    def __hash__(self) -> int:
        return hash((self.ability, self.resource))

    def to_dict(self) -> dict[str, object]:
        """Serialise to the ``{can, with, nb}`` shape used on the wire."""
        return {"can": self.ability, "with": self.resource, "nb": dict(self.caveats)}


@dataclass(frozen=True)
class CapabilitySpec:
    """A requested capability before the issuer is known.

    ``resource`` defaults to the issuer's DID when the delegation is built.
    """

    ability: str
    resource: Optional[str] = None


__all__ = ["Capability", "CapabilitySpec"]
