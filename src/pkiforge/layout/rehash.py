"""OpenSSL subject-hash links for CA directories.

Reproduces what ``c_rehash`` / ``openssl rehash`` do: for every CA
certificate in a directory create a ``<hash>.<n>`` symlink, where
``<hash>`` is the 8-hex-digit subject name hash OpenSSL uses for
``-CApath`` lookups and ``<n>`` disambiguates collisions.

The hash is SHA-1 over the *canonical* name encoding (values folded to
lower case, whitespace collapsed, re-encoded as UTF8String, outer
SEQUENCE omitted); the first four digest bytes are read little-endian.
"""

from __future__ import annotations

import hashlib
import logging
import re
from typing import TYPE_CHECKING

from cryptography import x509

from pkiforge.ca.cert_utils import (
    DER_SEQUENCE_TAG,
    DER_SET_TAG,
    der_oid,
    der_tlv,
    der_utf8_string,
)

if TYPE_CHECKING:
    from pathlib import Path

log = logging.getLogger(__name__)

_CERT_SUFFIXES = (".pem", ".crt", ".cer")
_HASH_LINK_RE = re.compile(r"^[0-9a-f]{8}\.\d+$")
_WHITESPACE_RE = re.compile(r"[ \t\n\r\v\f]+")


def _canonical_value(value: str) -> str:
    collapsed = _WHITESPACE_RE.sub(" ", value).strip(" ")
    # ASCII-only case folding, as OpenSSL does byte-wise.
    return "".join(ch.lower() if ch.isascii() else ch for ch in collapsed)


def canonical_name_encoding(name: x509.Name) -> bytes:
    """Return the canonical DER of *name* without its outer SEQUENCE."""
    encoded = bytearray()
    for rdn in name.rdns:
        members = sorted(
            der_tlv(
                DER_SEQUENCE_TAG,
                der_oid(attribute.oid) + der_utf8_string(_canonical_value(str(attribute.value))),
            )
            for attribute in rdn
        )
        encoded += der_tlv(DER_SET_TAG, b"".join(members))
    return bytes(encoded)


def subject_hash(certificate: x509.Certificate) -> str:
    """Return the 8-hex-digit OpenSSL subject hash of *certificate*."""
    digest = hashlib.sha1(canonical_name_encoding(certificate.subject)).digest()  # noqa: S324
    return f"{int.from_bytes(digest[:4], 'little'):08x}"


def rehash_directory(directory: Path) -> list[Path]:
    """Create ``<hash>.<n>`` symlinks for every CA certificate in *directory*.

    Existing hash links are replaced; files that do not parse as a CA
    certificate are skipped.

    Returns
    -------
    list[Path]
        The links created, in file-name order.

    """
    for stale in directory.iterdir():
        if stale.is_symlink() and _HASH_LINK_RE.match(stale.name):
            stale.unlink()

    links: list[Path] = []
    counters: dict[str, int] = {}
    for path in sorted(directory.iterdir()):
        if path.is_symlink() or not path.is_file() or path.suffix not in _CERT_SUFFIXES:
            continue
        try:
            certificate = x509.load_pem_x509_certificate(path.read_bytes())
        except ValueError:
            log.debug("Skipping non-certificate file %s", path)
            continue
        try:
            is_ca = certificate.extensions.get_extension_for_class(x509.BasicConstraints).value.ca
        except x509.ExtensionNotFound:
            is_ca = False
        if not is_ca:
            log.debug("Skipping non-CA certificate %s", path)
            continue

        digest = subject_hash(certificate)
        index = counters.get(digest, 0)
        counters[digest] = index + 1
        link = directory / f"{digest}.{index}"
        link.symlink_to(path.name)
        links.append(link)

    log.info("Created %d hash links in %s", len(links), directory)
    return links
