"""Exception hierarchy for mkdelegation.

Every failure raised by the builder, validator, archive codec, and proof
resolver derives from :class:`DelegationError` so callers can catch the
whole family in one place (the CLI does exactly that).
"""
from __future__ import annotations


class DelegationError(Exception):
    """Base class for all mkdelegation errors."""


class EmptyCapabilitySetError(DelegationError):
    """Raised when a delegation is built without any capabilities."""

    def __init__(self) -> None:
        super().__init__("A delegation must grant at least one capability.")


class InvalidExpirationError(DelegationError):
    """Raised when an expiration is not strictly after the current time.

    Parameters
    ----------
    expiration:
        The rejected expiration, in UTC seconds since the Unix epoch.
    now:
        The reference time the expiration was compared against.
    """

    def __init__(self, expiration: int, now: int) -> None:
        self.expiration = expiration
        self.now = now
        super().__init__(
            f"Provided expiration time {expiration} is not in the future (now={now})."
        )


class UnknownCapabilityError(DelegationError):
    """Raised when one or more abilities are not in the known registry.

    Parameters
    ----------
    abilities:
        Every unknown ability found, in input order.
    """

    def __init__(self, abilities: list[str]) -> None:
        self.abilities = list(abilities)
        listed = ", ".join(self.abilities)
        super().__init__(f"Unknown capabilities: {listed}")


class SigningFailureError(DelegationError):
    """Raised when the signer fails. The original error is the ``__cause__``."""


class DecodeFailureError(DelegationError):
    """Raised for malformed archive text, archive bytes, or blocks."""


class ProofChainTooDeepError(DelegationError):
    """Raised when proof resolution descends past the configured depth.

    Parameters
    ----------
    max_depth:
        The depth bound that was exceeded.
    """

    def __init__(self, max_depth: int) -> None:
        self.max_depth = max_depth
        super().__init__(f"Proof chain exceeds maximum depth of {max_depth}.")


class ConfigError(DelegationError):
    """Raised when a settings file cannot be read or fails validation."""


__all__ = [
    "ConfigError",
    "DecodeFailureError",
    "DelegationError",
    "EmptyCapabilitySetError",
    "InvalidExpirationError",
    "ProofChainTooDeepError",
    "SigningFailureError",
    "UnknownCapabilityError",
]
