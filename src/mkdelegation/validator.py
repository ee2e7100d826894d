"""CapabilityValidator — checks abilities against the known registry.

Validation never stops at the first problem: every unknown ability is
collected so a caller can report the complete list in one pass.
"""
from __future__ import annotations

from collections.abc import Iterable

from mkdelegation.errors import UnknownCapabilityError

# Abilities understood by the storage, indexing, and upload services.
KNOWN_ABILITIES: frozenset[str] = frozenset(
    {
        "assert/equals",
        "assert/relation",
        "assert/partition",
        "assert/index",
        "assert/inclusion",
        "assert/location",
        "blob/accept",
        "blob/allocate",
        "claim/cache",
        "http/put",
        "pdp/accept",
        "pdp/info",
        "space/blob/add",
        "space/blob/get/0/1",
        "space/blob/list",
        "space/blob/remove",
        "space/blob/replicate",
        "ucan/conclude",
    }
)


def validate_abilities(abilities: Iterable[str], known: Iterable[str]) -> list[str]:
    """Return every ability in *abilities* that is not in *known*.

    Matching is exact and case-sensitive. Input order (and duplicates) are
    preserved in the result; an empty list means all abilities are known.
    """
    known_set = frozenset(known)
    return [ability for ability in abilities if ability not in known_set]


class CapabilityValidator:
    """Validates abilities against a fixed registry.

    Parameters
    ----------
    known:
        The registry of accepted abilities. Defaults to
        :data:`KNOWN_ABILITIES`.
    """

    def __init__(self, known: Iterable[str] | None = None) -> None:
        self._known: frozenset[str] = (
            frozenset(known) if known is not None else KNOWN_ABILITIES
        )

    @property
    def known(self) -> frozenset[str]:
        return self._known

    def validate(self, abilities: Iterable[str]) -> list[str]:
        """Return the unknown abilities (empty when all are valid)."""
        return validate_abilities(abilities, self._known)

    def check(self, abilities: Iterable[str]) -> None:
        """Raise :class:`UnknownCapabilityError` listing every unknown ability."""
        unknown = self.validate(abilities)
        if unknown:
            raise UnknownCapabilityError(unknown)


__all__ = ["KNOWN_ABILITIES", "CapabilityValidator", "validate_abilities"]
