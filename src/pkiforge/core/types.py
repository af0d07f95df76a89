"""Enumerated types shared across the fixture generator.

All enums inherit from :class:`enum.StrEnum` so their ``.value`` is the
exact string used in configuration files and plan tables.
"""

from __future__ import annotations

from enum import StrEnum

# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


class KeyAlgorithm(StrEnum):
    RSA_2048 = "RSA-2048"
    EC_P256 = "EC-P256"


# ---------------------------------------------------------------------------
# Revocation
# ---------------------------------------------------------------------------


class RevocationStatus(StrEnum):
    VALID = "valid"
    REVOKED = "revoked"


# ---------------------------------------------------------------------------
# Subject alternative names
# ---------------------------------------------------------------------------


class SanType(StrEnum):
    DNS = "dns"
    URI = "uri"
    RFC822 = "rfc822"
    OTHER_NAME = "other_name"


# ---------------------------------------------------------------------------
# Fixture artifacts
# ---------------------------------------------------------------------------


class ArtifactKind(StrEnum):
    CERTIFICATE = "certificate"
    PRIVATE_KEY = "private-key"
    CA_BUNDLE = "ca-bundle"
    CRL = "crl"
    DATABASE = "database"
