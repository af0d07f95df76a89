"""Distinguished names.

A :class:`DistinguishedName` keeps the attribute order used when the
name is encoded into a certificate, while equality ignores order: two
names are equal when they carry the same attribute/value set.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.x509.oid import NameOID

from pkiforge.errors import PlanError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

_ATTRIBUTE_OIDS: dict[str, x509.ObjectIdentifier] = {
    "C": NameOID.COUNTRY_NAME,
    "ST": NameOID.STATE_OR_PROVINCE_NAME,
    "L": NameOID.LOCALITY_NAME,
    "O": NameOID.ORGANIZATION_NAME,
    "OU": NameOID.ORGANIZATIONAL_UNIT_NAME,
    "CN": NameOID.COMMON_NAME,
    "emailAddress": NameOID.EMAIL_ADDRESS,
}

_OID_ATTRIBUTES = {oid: short for short, oid in _ATTRIBUTE_OIDS.items()}


@dataclass(frozen=True, eq=False)
class DistinguishedName:
    """Ordered attribute/value pairs over ``C, ST, L, O, OU, CN, emailAddress``."""

    attributes: tuple[tuple[str, str], ...]

    def __post_init__(self) -> None:
        for attr, value in self.attributes:
            if attr not in _ATTRIBUTE_OIDS:
                msg = f"Unsupported DN attribute '{attr}'; supported: {list(_ATTRIBUTE_OIDS)}"
                raise PlanError(msg)
            if not value:
                msg = f"DN attribute '{attr}' must not be empty"
                raise PlanError(msg)

    @classmethod
    def build(
        cls,
        pairs: Mapping[str, str] | Iterable[tuple[str, str]] | None = None,
        **attrs: str,
    ) -> DistinguishedName:
        """Build a name from a mapping or pair list, then keyword attributes."""
        items: list[tuple[str, str]] = []
        if pairs is not None:
            items.extend(pairs.items() if hasattr(pairs, "items") else pairs)
        items.extend(attrs.items())
        return cls(tuple(items))

    @classmethod
    def from_x509(cls, name: x509.Name) -> DistinguishedName:
        pairs = []
        for attribute in name:
            short = _OID_ATTRIBUTES.get(attribute.oid)
            if short is None:
                msg = f"Unsupported DN attribute OID {attribute.oid.dotted_string}"
                raise PlanError(msg)
            pairs.append((short, str(attribute.value)))
        return cls(tuple(pairs))

    def replace(self, **attrs: str) -> DistinguishedName:
        """Return a copy with the given attributes replaced (or appended)."""
        pending = dict(attrs)
        pairs = []
        for attr, value in self.attributes:
            if attr in pending:
                pairs.append((attr, pending.pop(attr)))
            else:
                pairs.append((attr, value))
        pairs.extend(pending.items())
        return DistinguishedName(tuple(pairs))

    def get(self, attr: str) -> str | None:
        for name, value in self.attributes:
            if name == attr:
                return value
        return None

    @property
    def common_name(self) -> str | None:
        return self.get("CN")

    def to_x509(self) -> x509.Name:
        return x509.Name(
            [x509.NameAttribute(_ATTRIBUTE_OIDS[attr], value) for attr, value in self.attributes],
        )

    def oneline(self) -> str:
        """Return the OpenSSL one-line form, e.g. ``/C=JP/O=pivGateway/CN=door1``."""
        return "".join(f"/{attr}={value}" for attr, value in self.attributes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DistinguishedName):
            return NotImplemented
        return frozenset(self.attributes) == frozenset(other.attributes)

    def __hash__(self) -> int:
        return hash(frozenset(self.attributes))

    def __str__(self) -> str:
        return self.oneline()
