"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
JSON Schema defaults exist only for documentation; these builders are
what the generator actually reads.

Access pattern::

    from pkiforge.config import load_config

    settings = load_config("pkiforge.yaml")
    print(settings.pki.leaf_validity_days)
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_OUTPUT_DIR = "PKI"
DEFAULT_OCSP_URI = "http://ocsp.pivgateway.jp:8080/ejbca/publicweb/status/ocsp"

# ---------------------------------------------------------------------------
# PKI
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PKISettings:
    """Authority and leaf issuance parameters."""

    ca_validity_days: int
    leaf_validity_days: int
    serial_base: int
    hash_algorithm: str
    ocsp_uri: str


def _build_pki(data: dict | None) -> PKISettings:
    d = data or {}
    return PKISettings(
        ca_validity_days=d.get("ca_validity_days", 7300),
        leaf_validity_days=d.get("leaf_validity_days", 3650),
        serial_base=d.get("serial_base", 0x1000),
        hash_algorithm=d.get("hash_algorithm", "sha256"),
        ocsp_uri=d.get("ocsp_uri", DEFAULT_OCSP_URI),
    )


# ---------------------------------------------------------------------------
# Revocation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RevocationSettings:
    """CRL and OCSP index export parameters."""

    crl_next_update_days: int
    crl_number_base: int
    fixed_index_expiry: str | None


def _build_revocation(data: dict | None) -> RevocationSettings:
    d = data or {}
    return RevocationSettings(
        crl_next_update_days=d.get("crl_next_update_days", 365),
        crl_number_base=d.get("crl_number_base", 0x1000),
        fixed_index_expiry=d.get("fixed_index_expiry"),
    )


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LayoutSettings:
    """Output tree options."""

    rehash: bool


def _build_layout(data: dict | None) -> LayoutSettings:
    d = data or {}
    return LayoutSettings(
        rehash=d.get("rehash", True),
    )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingSettings:
    """Application logging configuration (level, format)."""

    level: str
    format: str


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=d.get("format", "text"),
    )


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ForgeSettings:
    """Root settings object."""

    output_dir: str
    pki: PKISettings
    revocation: RevocationSettings
    layout: LayoutSettings
    logging: LoggingSettings


def build_settings(data: dict | None = None) -> ForgeSettings:
    """Build the full typed settings tree from raw config data.

    Called by :func:`pkiforge.config.load_config` after schema
    validation and environment-variable resolution; with no data every
    section takes its defaults.
    """
    d = data or {}
    return ForgeSettings(
        output_dir=d.get("output_dir", DEFAULT_OUTPUT_DIR),
        pki=_build_pki(d.get("pki")),
        revocation=_build_revocation(d.get("revocation")),
        layout=_build_layout(d.get("layout")),
        logging=_build_logging(d.get("logging")),
    )
