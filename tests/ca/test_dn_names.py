"""Tests for pkiforge.ca.names.DistinguishedName."""

from __future__ import annotations

import pytest
from cryptography import x509
from cryptography.x509.oid import NameOID

from pkiforge.ca.names import DistinguishedName
from pkiforge.errors import PlanError


class TestDistinguishedName:
    def test_equality_ignores_order(self) -> None:
        a = DistinguishedName.build(C="JP", O="pivGateway", CN="door1")
        b = DistinguishedName.build([("CN", "door1"), ("C", "JP"), ("O", "pivGateway")])
        assert a == b
        assert hash(a) == hash(b)
        assert a.attributes != b.attributes

    def test_inequality_on_value(self) -> None:
        assert DistinguishedName.build(CN="a") != DistinguishedName.build(CN="b")

    def test_oneline_keeps_order(self) -> None:
        dn = DistinguishedName.build(
            C="JP",
            ST="Tokyo",
            L="Tokyo",
            O="pivGateway",
            OU="door",
            CN="door1",
        )
        assert dn.oneline() == "/C=JP/ST=Tokyo/L=Tokyo/O=pivGateway/OU=door/CN=door1"
        assert str(dn) == dn.oneline()

    def test_to_x509_and_back(self) -> None:
        dn = DistinguishedName.build(
            C="AU",
            CN="same.pivgateway.jp",
            emailAddress="same@pivgateway.jp",
        )
        name = dn.to_x509()
        assert name.get_attributes_for_oid(NameOID.EMAIL_ADDRESS)[0].value == "same@pivgateway.jp"
        assert DistinguishedName.from_x509(name) == dn

    def test_from_x509_unsupported_oid(self) -> None:
        name = x509.Name([x509.NameAttribute(NameOID.SERIAL_NUMBER, "42")])
        with pytest.raises(PlanError, match="Unsupported DN attribute OID"):
            DistinguishedName.from_x509(name)

    def test_unsupported_attribute_rejected(self) -> None:
        with pytest.raises(PlanError, match="Unsupported DN attribute"):
            DistinguishedName.build(DC="example")

    def test_empty_value_rejected(self) -> None:
        with pytest.raises(PlanError, match="must not be empty"):
            DistinguishedName.build(CN="")

    def test_replace_in_place_and_append(self) -> None:
        base = DistinguishedName.build(C="JP", O="pivGateway", OU="test")
        dn = base.replace(OU="door", CN="door2")
        assert dn.attributes == (("C", "JP"), ("O", "pivGateway"), ("OU", "door"), ("CN", "door2"))
        assert base.get("CN") is None

    def test_common_name(self) -> None:
        assert DistinguishedName.build(CN="x").common_name == "x"
        assert DistinguishedName.build(C="JP").common_name is None
