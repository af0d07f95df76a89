"""Configuration subsystem for pkiforge.

Public API::

    from pkiforge.config import load_config

    settings = load_config("pkiforge.yaml")
    settings.pki.serial_base       # typed access
"""

from pkiforge.config.loader import ConfigValidationError, load_config
from pkiforge.config.settings import (
    ForgeSettings,
    LayoutSettings,
    LoggingSettings,
    PKISettings,
    RevocationSettings,
    build_settings,
)

__all__ = [
    # Core
    "ConfigValidationError",
    # Sections
    "ForgeSettings",
    "LayoutSettings",
    "LoggingSettings",
    "PKISettings",
    "RevocationSettings",
    "build_settings",
    "load_config",
]
