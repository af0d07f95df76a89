"""Tests for pkiforge.ca.crl.build_crl."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import serialization

from pkiforge.ca.crl import build_crl, crl_pem
from pkiforge.errors import SigningError


class TestBuildCrl:
    def test_empty_crl_is_signed_and_valid(self, root_authority) -> None:
        crl = build_crl(root_authority, [])
        assert len(crl) == 0
        assert crl.issuer == root_authority.certificate.subject
        assert crl.is_signature_valid(root_authority.public_key)

    def test_extensions(self, root_authority) -> None:
        crl = build_crl(root_authority, [], crl_number=0x1000)
        number = crl.extensions.get_extension_for_class(x509.CRLNumber).value
        assert number.crl_number == 0x1000
        aki = crl.extensions.get_extension_for_class(x509.AuthorityKeyIdentifier).value
        ski = root_authority.certificate.extensions.get_extension_for_class(
            x509.SubjectKeyIdentifier,
        ).value
        assert aki.key_identifier == ski.digest

    def test_lists_exactly_given_serials(self, root_authority) -> None:
        revoked_at = datetime(2025, 11, 15, 23, 59, 59, tzinfo=UTC)
        crl = build_crl(root_authority, [(0x1005, revoked_at), (0x1007, revoked_at)])
        assert sorted(r.serial_number for r in crl) == [0x1005, 0x1007]
        entry = crl.get_revoked_certificate_by_serial_number(0x1005)
        assert entry is not None
        assert entry.revocation_date_utc == revoked_at
        assert crl.get_revoked_certificate_by_serial_number(0x1006) is None

    def test_update_window(self, root_authority) -> None:
        last = datetime(2030, 1, 1, tzinfo=UTC)
        crl = build_crl(root_authority, [], last_update=last, next_update_days=7)
        assert crl.last_update_utc == last
        assert crl.next_update_utc == last + timedelta(days=7)

    def test_signing_failure_wrapped(self, root_authority) -> None:
        with patch.object(
            x509.CertificateRevocationListBuilder,
            "sign",
            side_effect=RuntimeError("boom"),
        ):
            with pytest.raises(SigningError, match="root"):
                build_crl(root_authority, [])

    def test_pem_round_trip(self, root_authority) -> None:
        crl = build_crl(root_authority, [])
        data = crl_pem(crl)
        assert data.startswith(b"-----BEGIN X509 CRL-----")
        loaded = x509.load_pem_x509_crl(data)
        assert loaded.public_bytes(serialization.Encoding.DER) == crl.public_bytes(
            serialization.Encoding.DER,
        )
