"""Unit tests for pkiforge.core.types (enumerated types)."""

from __future__ import annotations

import json

import pytest

from pkiforge.core.types import ArtifactKind, KeyAlgorithm, RevocationStatus, SanType

# ---------------------------------------------------------------------------
# TestStringEnums
# ---------------------------------------------------------------------------


class TestStringEnums:
    @pytest.mark.parametrize(
        "enum_cls,member,expected",
        [
            (KeyAlgorithm, "RSA_2048", "RSA-2048"),
            (KeyAlgorithm, "EC_P256", "EC-P256"),
            (RevocationStatus, "VALID", "valid"),
            (RevocationStatus, "REVOKED", "revoked"),
            (SanType, "DNS", "dns"),
            (SanType, "OTHER_NAME", "other_name"),
            (ArtifactKind, "PRIVATE_KEY", "private-key"),
            (ArtifactKind, "CA_BUNDLE", "ca-bundle"),
        ],
    )
    def test_string_value(self, enum_cls, member, expected):
        assert enum_cls[member].value == expected

    def test_lookup_by_value(self):
        assert KeyAlgorithm("EC-P256") is KeyAlgorithm.EC_P256
        with pytest.raises(ValueError):
            KeyAlgorithm("RSA-4096")

    def test_json_serializable(self):
        assert json.dumps({"status": RevocationStatus.REVOKED}) == '{"status": "revoked"}'

    def test_str_is_value(self):
        assert str(ArtifactKind.CRL) == "crl"
