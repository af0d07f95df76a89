"""OpenSSL CA database (``index.txt``) formatting.

Each line is six TAB-separated fields::

    V|R  expiry  [revocation]  serial  filename  subject

Times use ASN.1 UTCTime (``YYMMDDHHMMSSZ``) up to 2049 and
GeneralizedTime (``YYYYMMDDHHMMSSZ``) afterwards, as OpenSSL does.
Serials are upper-case hex padded to an even number of digits.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pkiforge.core.types import RevocationStatus

if TYPE_CHECKING:
    from pkiforge.revocation.registry import RevocationEntry

_UTCTIME_MIN_YEAR = 1950
_UTCTIME_MAX_YEAR = 2049

_STATUS_FLAGS = {
    RevocationStatus.VALID: "V",
    RevocationStatus.REVOKED: "R",
}

# OpenSSL writes "unknown" when no certificate file name was recorded.
UNKNOWN_FILENAME = "unknown"

# Companion `<index>.attr`. OpenSSL defaults to unique_subject = yes when
# the file is absent and then refuses a database with repeated subjects.
INDEX_ATTR_SUFFIX = ".attr"
INDEX_ATTR_DATA = b"unique_subject = no\n"


def format_index_time(value: datetime) -> str:
    """Format *value* the way OpenSSL stores times in ``index.txt``."""
    value = value.astimezone(UTC) if value.tzinfo else value.replace(tzinfo=UTC)
    if _UTCTIME_MIN_YEAR <= value.year <= _UTCTIME_MAX_YEAR:
        return value.strftime("%y%m%d%H%M%SZ")
    return value.strftime("%Y%m%d%H%M%SZ")


def format_serial(serial: int) -> str:
    """Upper-case hex, zero-padded to an even number of digits."""
    digits = format(serial, "X")
    if len(digits) % 2:
        digits = "0" + digits
    return digits


def format_index_line(entry: RevocationEntry, *, fixed_expiry: str | None = None) -> str:
    """Render one registry entry as an ``index.txt`` line (no newline).

    Parameters
    ----------
    entry:
        The registry entry.
    fixed_expiry:
        Pre-formatted expiry used instead of the certificate's
        ``not_after`` (e.g. ``251115235959Z``).

    """
    expiry = fixed_expiry or format_index_time(entry.expires_at)
    revocation = ""
    if entry.status is RevocationStatus.REVOKED and entry.revoked_at is not None:
        revocation = format_index_time(entry.revoked_at)
    return "\t".join(
        (
            _STATUS_FLAGS[entry.status],
            expiry,
            revocation,
            format_serial(entry.serial_number),
            UNKNOWN_FILENAME,
            entry.subject.oneline(),
        ),
    )
