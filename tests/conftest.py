"""Root conftest for the pkiforge test suite."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest
import yaml

# ---------------------------------------------------------------------------
# Make ``src/`` importable without installing the package
# ---------------------------------------------------------------------------
_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

from pkiforge.ca.authority import Authority  # noqa: E402
from pkiforge.ca.names import DistinguishedName  # noqa: E402
from pkiforge.ca.profiles import build_default_catalog  # noqa: E402
from pkiforge.config.settings import build_settings  # noqa: E402

TEST_OCSP_URI = "http://ocsp.test.invalid/status"


# ---------------------------------------------------------------------------
# Logger cleanup: autouse so configure_logging() in one test cannot hide
# records from caplog in the next
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fresh_logging():
    yield
    root = logging.getLogger("pkiforge")
    root.handlers.clear()
    root.propagate = True
    root.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Settings / config files
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings():
    """Default settings tree (no config file)."""
    return build_settings({})


@pytest.fixture()
def minimal_config_data() -> dict:
    """Return a small but complete config dict."""
    return {
        "output_dir": "out/PKI",
        "pki": {"leaf_validity_days": 30, "ocsp_uri": TEST_OCSP_URI},
        "logging": {"level": "DEBUG", "format": "json"},
    }


@pytest.fixture()
def tmp_config_file(tmp_path: Path, minimal_config_data: dict) -> Path:
    """Write *minimal_config_data* to a temp YAML file and return its path."""
    cfg = tmp_path / "pkiforge.yaml"
    cfg.write_text(
        yaml.safe_dump(minimal_config_data, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    return cfg


# ---------------------------------------------------------------------------
# CA material
# ---------------------------------------------------------------------------


@pytest.fixture()
def catalog():
    return build_default_catalog(TEST_OCSP_URI)


@pytest.fixture()
def root_subject() -> DistinguishedName:
    return DistinguishedName.build(
        C="JP",
        ST="Tokyo",
        L="Tokyo",
        O="pivGateway",
        OU="test",
        CN="Example CA",
    )


@pytest.fixture()
def root_authority(catalog, root_subject) -> Authority:
    """A freshly generated RSA root authority."""
    return Authority.create(
        "root",
        root_subject,
        key_algorithm="RSA-2048",
        validity_days=365,
        catalog=catalog,
    )


@pytest.fixture()
def leaf_subject() -> DistinguishedName:
    return DistinguishedName.build(
        C="JP",
        ST="Tokyo",
        L="Tokyo",
        O="pivGateway",
        OU="door",
        CN="door1.pivgateway.jp",
    )
