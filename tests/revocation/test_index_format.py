"""Tests for pkiforge.revocation.index (index.txt formatting)."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from pkiforge.ca.names import DistinguishedName
from pkiforge.core.types import RevocationStatus
from pkiforge.revocation.index import format_index_line, format_index_time, format_serial
from pkiforge.revocation.registry import RevocationEntry

SUBJECT = DistinguishedName.build(
    C="JP",
    ST="Tokyo",
    L="Tokyo",
    O="pivGateway",
    OU="reader",
    CN="revoked-user3",
)


class TestFormatIndexTime:
    def test_utctime(self) -> None:
        assert format_index_time(datetime(2025, 11, 15, 23, 59, 59, tzinfo=UTC)) == "251115235959Z"

    def test_generalized_time_from_2050(self) -> None:
        assert format_index_time(datetime(2050, 1, 2, 3, 4, 5, tzinfo=UTC)) == "20500102030405Z"

    def test_converted_to_utc(self) -> None:
        jst = timezone(timedelta(hours=9))
        assert format_index_time(datetime(2025, 11, 16, 8, 59, 59, tzinfo=jst)) == "251115235959Z"

    def test_naive_treated_as_utc(self) -> None:
        assert format_index_time(datetime(2030, 6, 1)) == "300601000000Z"


class TestFormatSerial:
    @pytest.mark.parametrize(
        ("serial", "expected"),
        [(0x1000, "1000"), (0x100, "0100"), (0x1, "01"), (0xABCDE, "0ABCDE")],
    )
    def test_even_width_upper_hex(self, serial: int, expected: str) -> None:
        assert format_serial(serial) == expected


class TestFormatIndexLine:
    def test_valid_line(self) -> None:
        entry = RevocationEntry(
            serial_number=0x1000,
            issuer_id="root",
            subject=SUBJECT,
            expires_at=datetime(2035, 11, 13, 0, 0, 0, tzinfo=UTC),
        )
        assert format_index_line(entry) == (
            "V\t351113000000Z\t\t1000\tunknown\t"
            "/C=JP/ST=Tokyo/L=Tokyo/O=pivGateway/OU=reader/CN=revoked-user3"
        )

    def test_revoked_line(self) -> None:
        entry = RevocationEntry(
            serial_number=0x1005,
            issuer_id="root",
            subject=SUBJECT,
            expires_at=datetime(2035, 11, 13, tzinfo=UTC),
            status=RevocationStatus.REVOKED,
            revoked_at=datetime(2025, 11, 15, 23, 59, 59, tzinfo=UTC),
        )
        fields = format_index_line(entry).split("\t")
        assert len(fields) == 6
        assert fields[0] == "R"
        assert fields[2] == "251115235959Z"
        assert fields[3] == "1005"

    def test_fixed_expiry_override(self) -> None:
        entry = RevocationEntry(
            serial_number=0x1000,
            issuer_id="root",
            subject=SUBJECT,
            expires_at=datetime(2035, 11, 13, tzinfo=UTC),
        )
        line = format_index_line(entry, fixed_expiry="251115235959Z")
        assert line.split("\t")[1] == "251115235959Z"
