"""Tests for pkiforge.revocation.registry."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from pkiforge.ca.authority import Authority
from pkiforge.ca.names import DistinguishedName
from pkiforge.core.types import RevocationStatus
from pkiforge.errors import AlreadyRevokedError, DuplicateSerialError, UnknownSerialError
from pkiforge.revocation.registry import RevocationRegistry

REVOKED_AT = datetime(2025, 11, 15, 23, 59, 59, tzinfo=UTC)


def _issue(authority: Authority, name: str, ou: str = "test"):
    return authority.issue(
        name,
        DistinguishedName.build(C="JP", O="pivGateway", OU=ou, CN=name),
        key_algorithm="EC-P256",
        profile="signing",
        validity_days=30,
    )


@pytest.fixture()
def registry() -> RevocationRegistry:
    return RevocationRegistry()


class TestRecord:
    def test_record_valid_entry(self, registry, root_authority) -> None:
        issued = _issue(root_authority, "door1")
        entry = registry.record(issued)
        assert entry.status is RevocationStatus.VALID
        assert entry.revoked_at is None
        assert entry.expires_at == issued.not_after
        assert entry.name == "door1"
        assert len(registry) == 1
        assert issued.serial_number in registry

    def test_record_revoked_sets_time(self, registry, root_authority) -> None:
        entry = registry.record(
            _issue(root_authority, "revoked-user3"),
            RevocationStatus.REVOKED,
            revoked_at=REVOKED_AT,
        )
        assert entry.status is RevocationStatus.REVOKED
        assert entry.revoked_at == REVOKED_AT

    def test_duplicate_rejected(self, registry, root_authority) -> None:
        issued = _issue(root_authority, "door1")
        registry.record(issued)
        with pytest.raises(DuplicateSerialError) as exc_info:
            registry.record(issued)
        assert exc_info.value.artifact == "door1"
        assert len(registry) == 1

    def test_same_serial_under_two_issuers_allowed(self, registry, catalog, root_authority) -> None:
        other = Authority.create(
            "user",
            DistinguishedName.build(CN="User CA"),
            key_algorithm="EC-P256",
            validity_days=30,
            catalog=catalog,
        )
        a = _issue(root_authority, "a")
        b = _issue(other, "b")
        assert a.serial_number == b.serial_number
        registry.record(a)
        registry.record(b)
        assert len(registry) == 2


class TestRevoke:
    def test_revoke_valid_entry(self, registry, root_authority) -> None:
        issued = _issue(root_authority, "revoked-user3")
        registry.record(issued)
        entry = registry.revoke(issued.serial_number, revoked_at=REVOKED_AT)
        assert entry.status is RevocationStatus.REVOKED
        assert entry.revoked_at == REVOKED_AT
        assert registry.status_of(issued.serial_number) is RevocationStatus.REVOKED

    def test_unknown_serial(self, registry) -> None:
        with pytest.raises(UnknownSerialError, match="never recorded"):
            registry.revoke(0xDEAD)

    def test_unknown_serial_for_issuer(self, registry, root_authority) -> None:
        issued = _issue(root_authority, "a")
        registry.record(issued)
        with pytest.raises(UnknownSerialError):
            registry.revoke(issued.serial_number, issuer_id="user")

    def test_already_revoked(self, registry, root_authority) -> None:
        issued = _issue(root_authority, "a")
        registry.record(issued)
        registry.revoke(issued.serial_number)
        with pytest.raises(AlreadyRevokedError) as exc_info:
            registry.revoke(issued.serial_number)
        assert exc_info.value.artifact == "a"

    def test_ambiguous_serial_requires_issuer(self, registry, catalog, root_authority) -> None:
        other = Authority.create(
            "user",
            DistinguishedName.build(CN="User CA"),
            key_algorithm="EC-P256",
            validity_days=30,
            catalog=catalog,
        )
        a = _issue(root_authority, "a")
        b = _issue(other, "b")
        registry.record(a)
        registry.record(b)
        with pytest.raises(UnknownSerialError, match="ambiguous"):
            registry.revoke(a.serial_number)
        registry.revoke(b.serial_number, issuer_id="user")
        assert registry.status_of(a.serial_number, issuer_id="root") is RevocationStatus.VALID
        assert registry.status_of(b.serial_number, issuer_id="user") is RevocationStatus.REVOKED


class TestProjections:
    def test_entries_keep_insertion_order(self, registry, root_authority) -> None:
        names = ["door1", "door2", "reader1", "user1"]
        for name in names:
            registry.record(_issue(root_authority, name))
        registry.revoke(registry.entries()[1].serial_number)
        assert [e.name for e in registry.entries()] == names

    def test_index_lines_in_order_with_one_revoked(self, registry, root_authority) -> None:
        issued = [_issue(root_authority, n) for n in ("door1", "revoked-user3", "user1")]
        for cert in issued:
            registry.record(cert)
        registry.revoke(issued[1].serial_number, revoked_at=REVOKED_AT)

        lines = registry.export_ocsp_index("root")
        assert [line.split("\t")[0] for line in lines] == ["V", "R", "V"]
        assert [line.split("\t")[3] for line in lines] == ["1000", "1001", "1002"]
        assert lines[1].split("\t")[2] == "251115235959Z"

    def test_index_filters_by_issuer(self, registry, catalog, root_authority) -> None:
        other = Authority.create(
            "user",
            DistinguishedName.build(CN="User CA"),
            key_algorithm="EC-P256",
            validity_days=30,
            catalog=catalog,
        )
        registry.record(_issue(root_authority, "a"))
        registry.record(_issue(other, "b"))
        assert len(registry.export_ocsp_index("root")) == 1
        assert len(registry.export_ocsp_index()) == 2

    def test_crl_matches_revoked_entries(self, registry, root_authority) -> None:
        issued = [_issue(root_authority, f"c{i}") for i in range(4)]
        for cert in issued:
            registry.record(cert)
        registry.revoke(issued[0].serial_number, revoked_at=REVOKED_AT)
        registry.revoke(issued[2].serial_number, revoked_at=REVOKED_AT)

        crl = registry.export_crl(root_authority, last_update=REVOKED_AT)
        listed = sorted(r.serial_number for r in crl)
        expected = sorted(e.serial_number for e in registry.revoked("root"))
        assert listed == expected == [issued[0].serial_number, issued[2].serial_number]
        assert crl.is_signature_valid(root_authority.public_key)

    def test_crl_empty_when_nothing_revoked(self, registry, root_authority) -> None:
        registry.record(_issue(root_authority, "a"))
        crl = registry.export_crl(root_authority)
        assert len(crl) == 0
