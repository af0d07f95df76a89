"""pkiforge configuration loader.

Lifecycle::

    settings = load_config("pkiforge.yaml")   # or load_config(None) for defaults

Steps, in order: read YAML, resolve ``${VAR}`` / ``${VAR:-default}``
references, validate against the bundled ``schema.json``, run
cross-field checks, then build the frozen :class:`ForgeSettings` tree.
"""

from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime
from functools import cache
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator

from pkiforge.config.settings import ForgeSettings, build_settings
from pkiforge.errors import PKIForgeError

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

_INDEX_TIME_FORMATS = {
    13: "%y%m%d%H%M%SZ",
    15: "%Y%m%d%H%M%SZ",
}

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(PKIForgeError):
    """Raised when schema or cross-field validation finds one or more problems."""

    def __init__(self, errors: list[str], *, source: str | None = None) -> None:
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}", artifact=source)


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with env var value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name = match.group(1)
    fallback = match.group(2)
    resolved = os.environ.get(var_name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    raise ConfigValidationError(
        [
            f"Environment variable '${{{var_name}}}' referenced "
            f"at '{path}' is not set and has no default",
        ],
    )


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    path: str = "",
) -> None:
    """Walk *data* in-place and resolve ``${VAR}``/``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        for key in data:
            child_path = f"{path}.{key}" if path else key
            if isinstance(data[key], str):
                data[key] = _resolve_value(data[key], child_path)
            elif isinstance(data[key], (dict, list)):
                _resolve_env_vars(data[key], child_path)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child_path = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child_path)
            elif isinstance(item, (dict, list)):
                _resolve_env_vars(item, child_path)


# ---------------------------------------------------------------------------
# Schema + cross-field validation
# ---------------------------------------------------------------------------


@cache
def _validator() -> Draft202012Validator:
    schema = json.loads(_SCHEMA_PATH.read_text(encoding="utf-8"))
    return Draft202012Validator(schema)


def _schema_errors(data: dict) -> list[str]:
    errors = []
    for error in sorted(_validator().iter_errors(data), key=lambda e: list(e.absolute_path)):
        location = ".".join(str(p) for p in error.absolute_path) or "<root>"
        errors.append(f"{location}: {error.message}")
    return errors


def additional_checks(data: dict) -> None:
    """Semantic & cross-field validation, run after schema validation passes.

    Raises
    ------
    ConfigValidationError
        With every problem found.

    """
    errors: list[str] = []
    warnings: list[str] = []

    pki = data.get("pki") or {}
    revocation = data.get("revocation") or {}

    ca_days = pki.get("ca_validity_days", 7300)
    leaf_days = pki.get("leaf_validity_days", 3650)
    if leaf_days > ca_days:
        warnings.append(
            f"pki.leaf_validity_days ({leaf_days}) exceeds pki.ca_validity_days "
            f"({ca_days}); leaf certificates will outlive their issuer",
        )

    next_update = revocation.get("crl_next_update_days", 365)
    if next_update > ca_days:
        errors.append(
            f"revocation.crl_next_update_days ({next_update}) must be <= "
            f"pki.ca_validity_days ({ca_days})",
        )

    fixed_expiry = revocation.get("fixed_index_expiry")
    if fixed_expiry:
        fmt = _INDEX_TIME_FORMATS.get(len(fixed_expiry))
        try:
            if fmt is None:
                raise ValueError(fixed_expiry)
            datetime.strptime(fixed_expiry, fmt)  # noqa: DTZ007
        except ValueError:
            errors.append(
                f"revocation.fixed_index_expiry '{fixed_expiry}' is not a valid "
                "YYMMDDHHMMSSZ or YYYYMMDDHHMMSSZ timestamp",
            )

    for w in warnings:
        log.warning("Config warning: %s", w)

    if errors:
        raise ConfigValidationError(errors)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def load_config(config_file: str | Path | None = None) -> ForgeSettings:
    """Load, validate and materialise the settings tree.

    Parameters
    ----------
    config_file:
        Path to a YAML (or JSON) file; ``None`` yields all defaults.

    Raises
    ------
    ConfigValidationError
        If the file is missing, unparseable or invalid.

    """
    if config_file is None:
        return build_settings({})

    path = Path(config_file)
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        msg = f"Config file not found: {path}"
        raise ConfigValidationError([msg], source=str(path)) from None
    except yaml.YAMLError as exc:
        msg = f"Config file is not valid YAML: {exc}"
        raise ConfigValidationError([msg], source=str(path)) from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = f"Config root must be a mapping, got {type(data).__name__}"
        raise ConfigValidationError([msg], source=str(path))

    # Resolve env vars first so substituted values are checked by the schema.
    _resolve_env_vars(data)

    errors = _schema_errors(data)
    if errors:
        raise ConfigValidationError(errors, source=str(path))
    additional_checks(data)

    log.debug("Loaded configuration from %s", path)
    return build_settings(data)
