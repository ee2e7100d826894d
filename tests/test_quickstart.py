"""Test that the top-level quickstart API works for mkdelegation."""
from __future__ import annotations


def test_quickstart_import() -> None:
    from mkdelegation import DelegationBuilder, Ed25519Signer

    delegation = DelegationBuilder().build(
        Ed25519Signer.generate(), Ed25519Signer.generate().did(), ["blob/accept"]
    )
    assert delegation is not None


def test_quickstart_format_and_parse() -> None:
    from mkdelegation import Ed25519Signer, delegate, format_delegation, parse_delegation

    issuer = Ed25519Signer.generate()
    delegation = delegate(issuer, Ed25519Signer.generate().did(), ["claim/cache"])
    text = format_delegation(delegation)
    assert isinstance(text, str)
    assert parse_delegation(text) == delegation


def test_quickstart_resolve() -> None:
    from mkdelegation import Ed25519Signer, delegate, resolve_delegation

    issuer = Ed25519Signer.generate()
    parent = delegate(Ed25519Signer.generate(), issuer.did(), ["blob/accept"])
    child = delegate(issuer, Ed25519Signer.generate().did(), ["blob/accept"], proofs=[parent])
    info = resolve_delegation(child)
    assert len(info.proof_delegations) == 1


def test_quickstart_validate() -> None:
    from mkdelegation import CapabilityValidator

    assert CapabilityValidator().validate(["blob/accept", "made/up"]) == ["made/up"]


def test_quickstart_version() -> None:
    import mkdelegation

    assert isinstance(mkdelegation.__version__, str)
