"""Tests for pkiforge.config (loader, schema and settings builders)."""

from __future__ import annotations

import logging

import pytest
import yaml

from pkiforge.config import ConfigValidationError, build_settings, load_config
from pkiforge.config.loader import additional_checks
from pkiforge.config.settings import DEFAULT_OCSP_URI, DEFAULT_OUTPUT_DIR


def _write(tmp_path, data) -> str:
    path = tmp_path / "pkiforge.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return str(path)


class TestDefaults:
    def test_no_file_gives_defaults(self) -> None:
        settings = load_config(None)
        assert settings.output_dir == DEFAULT_OUTPUT_DIR
        assert settings.pki.ca_validity_days == 7300
        assert settings.pki.leaf_validity_days == 3650
        assert settings.pki.serial_base == 0x1000
        assert settings.pki.hash_algorithm == "sha256"
        assert settings.pki.ocsp_uri == DEFAULT_OCSP_URI
        assert settings.revocation.crl_next_update_days == 365
        assert settings.revocation.crl_number_base == 0x1000
        assert settings.revocation.fixed_index_expiry is None
        assert settings.layout.rehash is True
        assert settings.logging.level == "INFO"
        assert settings.logging.format == "text"

    def test_build_settings_partial_sections(self) -> None:
        settings = build_settings({"pki": {"serial_base": 0x2000}})
        assert settings.pki.serial_base == 0x2000
        assert settings.pki.leaf_validity_days == 3650

    def test_settings_frozen(self, settings) -> None:
        with pytest.raises(AttributeError):
            settings.output_dir = "elsewhere"

    def test_empty_file_gives_defaults(self, tmp_path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == build_settings({})


class TestLoadFile:
    def test_loads_values(self, tmp_config_file) -> None:
        settings = load_config(tmp_config_file)
        assert settings.output_dir == "out/PKI"
        assert settings.pki.leaf_validity_days == 30
        assert settings.pki.ocsp_uri == "http://ocsp.test.invalid/status"
        assert settings.logging.level == "DEBUG"
        assert settings.logging.format == "json"

    def test_missing_file(self, tmp_path) -> None:
        missing = tmp_path / "nope.yaml"
        with pytest.raises(ConfigValidationError, match="not found") as exc_info:
            load_config(missing)
        assert exc_info.value.artifact == str(missing)

    def test_invalid_yaml(self, tmp_path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("pki: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigValidationError, match="not valid YAML"):
            load_config(path)

    def test_non_mapping_root(self, tmp_path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError, match="must be a mapping"):
            load_config(path)


class TestEnvSubstitution:
    def test_variable_resolved(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("PKIFORGE_TEST_OUT", "/srv/fixtures/PKI")
        settings = load_config(_write(tmp_path, {"output_dir": "${PKIFORGE_TEST_OUT}"}))
        assert settings.output_dir == "/srv/fixtures/PKI"

    def test_default_used_when_unset(self, tmp_path, monkeypatch) -> None:
        monkeypatch.delenv("PKIFORGE_TEST_URI", raising=False)
        data = {"pki": {"ocsp_uri": "${PKIFORGE_TEST_URI:-http://localhost:2560}"}}
        settings = load_config(_write(tmp_path, data))
        assert settings.pki.ocsp_uri == "http://localhost:2560"

    def test_unset_without_default(self, tmp_path, monkeypatch) -> None:
        monkeypatch.delenv("PKIFORGE_TEST_MISSING", raising=False)
        with pytest.raises(ConfigValidationError, match="PKIFORGE_TEST_MISSING"):
            load_config(_write(tmp_path, {"output_dir": "${PKIFORGE_TEST_MISSING}"}))

    def test_substituted_value_is_schema_checked(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("PKIFORGE_TEST_URI", "ftp://wrong")
        with pytest.raises(ConfigValidationError, match="pki.ocsp_uri"):
            load_config(_write(tmp_path, {"pki": {"ocsp_uri": "${PKIFORGE_TEST_URI}"}}))


class TestSchema:
    def test_unknown_top_level_key(self, tmp_path) -> None:
        with pytest.raises(ConfigValidationError, match="Additional properties"):
            load_config(_write(tmp_path, {"acme": {}}))

    def test_wrong_type(self, tmp_path) -> None:
        with pytest.raises(ConfigValidationError, match="pki.leaf_validity_days"):
            load_config(_write(tmp_path, {"pki": {"leaf_validity_days": "long"}}))

    def test_bad_enum(self, tmp_path) -> None:
        with pytest.raises(ConfigValidationError, match="logging.format"):
            load_config(_write(tmp_path, {"logging": {"format": "xml"}}))

    def test_all_errors_reported(self, tmp_path) -> None:
        data = {"pki": {"hash_algorithm": "md5", "serial_base": 0}}
        with pytest.raises(ConfigValidationError) as exc_info:
            load_config(_write(tmp_path, data))
        assert len(exc_info.value.errors) == 2

    def test_fixed_expiry_pattern(self, tmp_path) -> None:
        with pytest.raises(ConfigValidationError, match="fixed_index_expiry"):
            load_config(_write(tmp_path, {"revocation": {"fixed_index_expiry": "tomorrow"}}))


class TestAdditionalChecks:
    def test_crl_next_update_beyond_ca_lifetime(self) -> None:
        data = {"pki": {"ca_validity_days": 30}, "revocation": {"crl_next_update_days": 60}}
        with pytest.raises(ConfigValidationError, match="crl_next_update_days"):
            additional_checks(data)

    def test_leaf_outliving_ca_warns(self, caplog) -> None:
        data = {"pki": {"ca_validity_days": 30, "leaf_validity_days": 60}}
        with caplog.at_level(logging.WARNING, logger="pkiforge.config.loader"):
            additional_checks(data)
        assert "outlive their issuer" in caplog.text

    @pytest.mark.parametrize("value", ["251115235959Z", "20501231235959Z"])
    def test_fixed_expiry_valid(self, value: str) -> None:
        additional_checks({"revocation": {"fixed_index_expiry": value}})

    def test_fixed_expiry_impossible_date(self) -> None:
        with pytest.raises(ConfigValidationError, match="not a valid"):
            additional_checks({"revocation": {"fixed_index_expiry": "251399235959Z"}})

    def test_loaded_fixed_expiry(self, tmp_path) -> None:
        settings = load_config(
            _write(tmp_path, {"revocation": {"fixed_index_expiry": "251115235959Z"}}),
        )
        assert settings.revocation.fixed_index_expiry == "251115235959Z"
