"""Tests for pkiforge.errors."""

from __future__ import annotations

import pytest

from pkiforge import errors
from pkiforge.config import ConfigValidationError


class TestPKIForgeError:
    def test_str_without_artifact(self):
        assert str(errors.SigningError("signature mismatch")) == "signature mismatch"

    def test_str_with_artifact(self):
        exc = errors.PlanError("no destination", artifact="door1")
        assert str(exc) == "door1: no destination"
        assert exc.detail == "no destination"

    @pytest.mark.parametrize(
        "cls",
        [
            errors.KeyGenerationError,
            errors.UnknownProfileError,
            errors.ProfileApplicationError,
            errors.SigningError,
            errors.DuplicateSerialError,
            errors.UnknownSerialError,
            errors.AlreadyRevokedError,
            errors.PathConflictError,
            errors.PlanError,
            ConfigValidationError,
        ],
    )
    def test_all_derive_from_base(self, cls):
        assert issubclass(cls, errors.PKIForgeError)

    def test_config_error_lists_problems(self):
        exc = ConfigValidationError(["a: bad", "b: worse"], source="pkiforge.yaml")
        assert exc.errors == ["a: bad", "b: worse"]
        assert str(exc).startswith("pkiforge.yaml: Configuration validation failed:")
        assert "  - b: worse" in str(exc)
