"""Revocation registry.

An append-only ledger with exactly one entry per issued
``(issuer, serial)`` pair.  The OCSP index and every CRL are projections
of this ledger, computed on demand and never edited independently, so
they cannot disagree about the status of a serial.

Status only moves ``valid -> revoked``; revoking twice is an error
rather than a no-op so that planning bugs surface immediately.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pkiforge.ca.crl import DEFAULT_CRL_NUMBER, DEFAULT_NEXT_UPDATE_DAYS, build_crl
from pkiforge.core.types import RevocationStatus
from pkiforge.errors import AlreadyRevokedError, DuplicateSerialError, UnknownSerialError
from pkiforge.revocation.index import format_index_line, format_serial

if TYPE_CHECKING:
    from cryptography import x509

    from pkiforge.ca.authority import Authority, IssuedCertificate
    from pkiforge.ca.names import DistinguishedName

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RevocationEntry:
    """Ledger row for one issued certificate.

    ``revoked_at`` is set if and only if ``status`` is ``revoked``.
    """

    serial_number: int
    issuer_id: str
    subject: DistinguishedName
    expires_at: datetime
    status: RevocationStatus = RevocationStatus.VALID
    revoked_at: datetime | None = None
    name: str | None = None


class RevocationRegistry:
    """Ledger of issued serials and their revocation status."""

    def __init__(self) -> None:
        # Insertion-ordered; replacing a value keeps its position.
        self._entries: dict[tuple[str, int], RevocationEntry] = {}
        self._lock = threading.Lock()

    # -- mutation ------------------------------------------------------------

    def record(
        self,
        certificate: IssuedCertificate,
        status: RevocationStatus | str = RevocationStatus.VALID,
        *,
        revoked_at: datetime | None = None,
    ) -> RevocationEntry:
        """Append the ledger entry for a newly issued certificate.

        Raises
        ------
        DuplicateSerialError
            If the issuer/serial pair already has an entry.

        """
        status = RevocationStatus(status)
        key = (certificate.issuer_id, certificate.serial_number)
        entry = RevocationEntry(
            serial_number=certificate.serial_number,
            issuer_id=certificate.issuer_id,
            subject=certificate.subject,
            expires_at=certificate.not_after,
            status=status,
            revoked_at=(revoked_at or datetime.now(UTC))
            if status is RevocationStatus.REVOKED
            else None,
            name=certificate.name,
        )
        with self._lock:
            if key in self._entries:
                msg = (
                    f"Serial {format_serial(certificate.serial_number)} of issuer "
                    f"'{certificate.issuer_id}' is already recorded"
                )
                raise DuplicateSerialError(msg, artifact=certificate.name)
            self._entries[key] = entry

        log.debug(
            "Recorded serial %s (issuer=%s, status=%s)",
            format_serial(entry.serial_number),
            entry.issuer_id,
            entry.status.value,
        )
        return entry

    def revoke(
        self,
        serial: int,
        *,
        issuer_id: str | None = None,
        revoked_at: datetime | None = None,
    ) -> RevocationEntry:
        """Mark an existing entry revoked.

        Parameters
        ----------
        serial:
            Serial number to revoke.
        issuer_id:
            Issuing authority; required only when several issuers have
            handed out the same serial.
        revoked_at:
            Revocation time; defaults to now.

        Raises
        ------
        UnknownSerialError
            If no (unique) entry matches.
        AlreadyRevokedError
            If the entry is already revoked.

        """
        with self._lock:
            key = self._find_key(serial, issuer_id)
            entry = self._entries[key]
            if entry.status is RevocationStatus.REVOKED:
                msg = (
                    f"Serial {format_serial(serial)} of issuer '{entry.issuer_id}' "
                    "is already revoked"
                )
                raise AlreadyRevokedError(msg, artifact=entry.name)
            entry = replace(
                entry,
                status=RevocationStatus.REVOKED,
                revoked_at=revoked_at or datetime.now(UTC),
            )
            self._entries[key] = entry

        log.info(
            "Revoked serial %s (issuer=%s, name=%s)",
            format_serial(serial),
            entry.issuer_id,
            entry.name,
        )
        return entry

    def _find_key(self, serial: int, issuer_id: str | None) -> tuple[str, int]:
        if issuer_id is not None:
            key = (issuer_id, serial)
            if key not in self._entries:
                msg = f"Serial {format_serial(serial)} of issuer '{issuer_id}' was never recorded"
                raise UnknownSerialError(msg)
            return key

        matches = [key for key in self._entries if key[1] == serial]
        if not matches:
            msg = f"Serial {format_serial(serial)} was never recorded"
            raise UnknownSerialError(msg)
        if len(matches) > 1:
            issuers = sorted(key[0] for key in matches)
            msg = f"Serial {format_serial(serial)} is ambiguous across issuers {issuers}; pass issuer_id"
            raise UnknownSerialError(msg)
        return matches[0]

    # -- queries -------------------------------------------------------------

    def entries(self, issuer_id: str | None = None) -> list[RevocationEntry]:
        """Return entries in insertion order, optionally for one issuer."""
        with self._lock:
            values = list(self._entries.values())
        if issuer_id is None:
            return values
        return [entry for entry in values if entry.issuer_id == issuer_id]

    def get(self, serial: int, *, issuer_id: str | None = None) -> RevocationEntry:
        with self._lock:
            return self._entries[self._find_key(serial, issuer_id)]

    def status_of(self, serial: int, *, issuer_id: str | None = None) -> RevocationStatus:
        return self.get(serial, issuer_id=issuer_id).status

    def revoked(self, issuer_id: str) -> list[RevocationEntry]:
        return [
            entry
            for entry in self.entries(issuer_id)
            if entry.status is RevocationStatus.REVOKED
        ]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, serial: object) -> bool:
        return any(key[1] == serial for key in self._entries)

    # -- projections ---------------------------------------------------------

    def export_ocsp_index(
        self,
        issuer_id: str | None = None,
        *,
        fixed_expiry: str | None = None,
    ) -> list[str]:
        """Return ``index.txt`` lines in insertion order.

        Parameters
        ----------
        issuer_id:
            Restrict to one issuer; ``None`` exports every entry.
        fixed_expiry:
            Pre-formatted expiry used for every line instead of each
            certificate's own ``not_after``.

        """
        return [
            format_index_line(entry, fixed_expiry=fixed_expiry)
            for entry in self.entries(issuer_id)
        ]

    def export_crl(
        self,
        authority: Authority,
        *,
        last_update: datetime | None = None,
        next_update_days: int = DEFAULT_NEXT_UPDATE_DAYS,
        crl_number: int = DEFAULT_CRL_NUMBER,
    ) -> x509.CertificateRevocationList:
        """Build the signed CRL listing exactly *authority*'s revoked serials."""
        revoked = [
            (entry.serial_number, entry.revoked_at)
            for entry in self.revoked(authority.authority_id)
        ]
        return build_crl(
            authority,
            revoked,
            last_update=last_update,
            next_update_days=next_update_days,
            crl_number=crl_number,
        )
