"""Tests for mkdelegation.validator — CapabilityValidator."""
from __future__ import annotations

import pytest

from mkdelegation.errors import UnknownCapabilityError
from mkdelegation.validator import KNOWN_ABILITIES, CapabilityValidator, validate_abilities


class TestValidateAbilities:
    def test_all_known_returns_empty(self) -> None:
        assert validate_abilities(["blob/accept", "blob/allocate"], KNOWN_ABILITIES) == []

    def test_reports_every_unknown_ability(self) -> None:
        result = validate_abilities(["blob/accept", "x/y", "z/w"], {"blob/accept"})
        assert result == ["x/y", "z/w"]

    def test_preserves_input_order(self) -> None:
        result = validate_abilities(["z/w", "blob/accept", "a/b"], {"blob/accept"})
        assert result == ["z/w", "a/b"]

    def test_match_is_case_sensitive(self) -> None:
        assert validate_abilities(["Blob/Accept"], {"blob/accept"}) == ["Blob/Accept"]

    def test_empty_input_is_valid(self) -> None:
        assert validate_abilities([], {"blob/accept"}) == []

    def test_empty_registry_rejects_everything(self) -> None:
        assert validate_abilities(["a/b", "c/d"], set()) == ["a/b", "c/d"]


class TestKnownAbilities:
    @pytest.mark.parametrize(
        "ability",
        ["assert/equals", "assert/index", "blob/allocate", "blob/accept", "claim/cache"],
    )
    def test_service_abilities_are_known(self, ability: str) -> None:
        assert ability in KNOWN_ABILITIES


class TestCapabilityValidator:
    def test_defaults_to_known_abilities(self) -> None:
        assert CapabilityValidator().known == KNOWN_ABILITIES

    def test_custom_registry(self) -> None:
        validator = CapabilityValidator(["custom/do"])
        assert validator.validate(["custom/do", "blob/accept"]) == ["blob/accept"]

    def test_check_passes_for_known(self) -> None:
        CapabilityValidator().check(["blob/accept"])

    def test_check_raises_with_full_list(self) -> None:
        with pytest.raises(UnknownCapabilityError) as excinfo:
            CapabilityValidator({"blob/accept"}).check(["blob/accept", "x/y", "z/w"])
        assert excinfo.value.abilities == ["x/y", "z/w"]
        assert "x/y" in str(excinfo.value)
        assert "z/w" in str(excinfo.value)
