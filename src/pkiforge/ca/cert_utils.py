"""Shared certificate-building helpers.

Provides key-usage, extended-key-usage, subject-alternative-name and
authority-information-access builders used when a profile is applied,
plus the small DER helpers those extensions need.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.x509.oid import AuthorityInformationAccessOID, ExtendedKeyUsageOID

from pkiforge.core.types import SanType
from pkiforge.errors import ProfileApplicationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pkiforge.ca.profiles import SanEntry

# ---------------------------------------------------------------------------
# ASN.1 DER helpers
# ---------------------------------------------------------------------------
# Threshold at which DER length encoding switches to long form.
_DER_LONG_FORM_THRESHOLD = 0x80
DER_UTF8_STRING_TAG = 0x0C
DER_OID_TAG = 0x06
DER_SEQUENCE_TAG = 0x30
DER_SET_TAG = 0x31


def encode_der_length(length: int) -> bytes:
    """Encode an ASN.1 DER length field."""
    if length < _DER_LONG_FORM_THRESHOLD:
        return bytes([length])
    length_bytes = length.to_bytes(
        (length.bit_length() + 7) // 8,
        "big",
    )
    return bytes([_DER_LONG_FORM_THRESHOLD | len(length_bytes)]) + length_bytes


def der_tlv(tag: int, content: bytes) -> bytes:
    """Encode a single DER tag-length-value."""
    return bytes([tag]) + encode_der_length(len(content)) + content


def der_utf8_string(value: str) -> bytes:
    """Encode *value* as an ASN.1 DER UTF8String."""
    return der_tlv(DER_UTF8_STRING_TAG, value.encode("utf-8"))


def der_oid(oid: x509.ObjectIdentifier) -> bytes:
    """Encode *oid* as an ASN.1 DER OBJECT IDENTIFIER."""
    arcs = [int(arc) for arc in oid.dotted_string.split(".")]
    content = bytearray([40 * arcs[0] + arcs[1]])
    for arc in arcs[2:]:
        chunk = [arc & 0x7F]
        arc >>= 7
        while arc:
            chunk.append(0x80 | (arc & 0x7F))
            arc >>= 7
        content.extend(reversed(chunk))
    return der_tlv(DER_OID_TAG, bytes(content))


# ---------------------------------------------------------------------------
# Hash algorithms
# ---------------------------------------------------------------------------

HASH_ALGORITHMS: dict[str, hashes.HashAlgorithm] = {
    "sha256": hashes.SHA256(),
    "sha384": hashes.SHA384(),
    "sha512": hashes.SHA512(),
}

# ---------------------------------------------------------------------------
# Key usage / EKU mappings
# ---------------------------------------------------------------------------

KEY_USAGE_FIELDS = (
    "digital_signature",
    "content_commitment",
    "key_encipherment",
    "data_encipherment",
    "key_agreement",
    "key_cert_sign",
    "crl_sign",
    "encipher_only",
    "decipher_only",
)

_EKU_OIDS = {
    "server_auth": ExtendedKeyUsageOID.SERVER_AUTH,
    "client_auth": ExtendedKeyUsageOID.CLIENT_AUTH,
    "code_signing": ExtendedKeyUsageOID.CODE_SIGNING,
    "email_protection": ExtendedKeyUsageOID.EMAIL_PROTECTION,
    "time_stamping": ExtendedKeyUsageOID.TIME_STAMPING,
    "ocsp_signing": ExtendedKeyUsageOID.OCSP_SIGNING,
}

# Microsoft User Principal Name, carried in an otherName SAN entry.
UPN_OID = x509.ObjectIdentifier("1.3.6.1.4.1.311.20.2.3")


def build_key_usage(usages: Iterable[str]) -> x509.KeyUsage:
    """Build an :class:`x509.KeyUsage` extension from usage names."""
    usage_set = set(usages)
    unknown = usage_set.difference(KEY_USAGE_FIELDS)
    if unknown:
        msg = f"Unknown key usage(s) {sorted(unknown)}; supported: {list(KEY_USAGE_FIELDS)}"
        raise ProfileApplicationError(msg)
    ka = "key_agreement" in usage_set
    return x509.KeyUsage(
        digital_signature="digital_signature" in usage_set,
        content_commitment="content_commitment" in usage_set,
        key_encipherment="key_encipherment" in usage_set,
        data_encipherment="data_encipherment" in usage_set,
        key_agreement=ka,
        key_cert_sign="key_cert_sign" in usage_set,
        crl_sign="crl_sign" in usage_set,
        encipher_only="encipher_only" in usage_set if ka else False,
        decipher_only="decipher_only" in usage_set if ka else False,
    )


def build_eku(ekus: Iterable[str]) -> x509.ExtendedKeyUsage:
    """Build an :class:`x509.ExtendedKeyUsage` extension from usage names."""
    oids = []
    for name in ekus:
        oid = _EKU_OIDS.get(name)
        if oid is None:
            msg = f"Unknown extended key usage '{name}'; supported: {sorted(_EKU_OIDS)}"
            raise ProfileApplicationError(msg)
        oids.append(oid)
    return x509.ExtendedKeyUsage(oids)


# ---------------------------------------------------------------------------
# Subject alternative names / AIA
# ---------------------------------------------------------------------------


def build_general_name(entry: SanEntry, *, common_name: str | None) -> x509.GeneralName:
    """Convert one profile SAN entry into a :class:`x509.GeneralName`.

    ``{cn}`` in the entry value is replaced by the subject common name.
    """
    value = entry.value
    if "{cn}" in value:
        if not common_name:
            msg = f"SAN entry '{value}' references the subject CN but the subject has none"
            raise ProfileApplicationError(msg)
        value = value.replace("{cn}", common_name)

    if entry.type is SanType.DNS:
        return x509.DNSName(value)
    if entry.type is SanType.URI:
        return x509.UniformResourceIdentifier(value)
    if entry.type is SanType.RFC822:
        return x509.RFC822Name(value)
    if entry.type is SanType.OTHER_NAME:
        if not entry.oid:
            msg = f"otherName SAN entry '{value}' has no type OID"
            raise ProfileApplicationError(msg)
        return x509.OtherName(x509.ObjectIdentifier(entry.oid), der_utf8_string(value))
    msg = f"Unsupported SAN entry type '{entry.type}'"
    raise ProfileApplicationError(msg)


def build_san(
    entries: Iterable[SanEntry],
    *,
    common_name: str | None,
) -> x509.SubjectAlternativeName:
    """Build a :class:`x509.SubjectAlternativeName` from profile entries."""
    return x509.SubjectAlternativeName(
        [build_general_name(entry, common_name=common_name) for entry in entries],
    )


def build_ocsp_aia(uris: Iterable[str]) -> x509.AuthorityInformationAccess:
    """Build an AIA extension advertising the given OCSP responder URIs."""
    return x509.AuthorityInformationAccess(
        [
            x509.AccessDescription(
                AuthorityInformationAccessOID.OCSP,
                x509.UniformResourceIdentifier(uri),
            )
            for uri in uris
        ],
    )
