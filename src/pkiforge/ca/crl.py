"""CRL generation.

Builds X.509 Certificate Revocation Lists signed by an authority key.
An authority with no revocations still gets a structurally valid,
signed, empty CRL.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.x509 import (
    CertificateRevocationListBuilder,
    RevokedCertificateBuilder,
)

from pkiforge.errors import SigningError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pkiforge.ca.authority import Authority

log = logging.getLogger(__name__)

DEFAULT_NEXT_UPDATE_DAYS = 365
DEFAULT_CRL_NUMBER = 0x1000


def build_crl(
    authority: Authority,
    revoked: Iterable[tuple[int, datetime]],
    *,
    last_update: datetime | None = None,
    next_update_days: int = DEFAULT_NEXT_UPDATE_DAYS,
    crl_number: int = DEFAULT_CRL_NUMBER,
) -> x509.CertificateRevocationList:
    """Build and sign a CRL for *authority*.

    Parameters
    ----------
    authority:
        Issuing authority; its subject becomes the CRL issuer and its
        key signs the list.
    revoked:
        ``(serial, revocation time)`` pairs to list.
    last_update:
        CRL ``thisUpdate``; defaults to now.
    next_update_days:
        Days from *last_update* to ``nextUpdate``.
    crl_number:
        Value of the CRL number extension.

    Raises
    ------
    SigningError
        If the CRL cannot be signed.

    """
    now = last_update or datetime.now(UTC)
    next_update = now + timedelta(days=next_update_days)

    builder = (
        CertificateRevocationListBuilder()
        .issuer_name(authority.certificate.subject)
        .last_update(now)
        .next_update(next_update)
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(authority.public_key),
            critical=False,
        )
        .add_extension(x509.CRLNumber(crl_number), critical=False)
    )

    count = 0
    for serial, revoked_at in revoked:
        rev_builder = RevokedCertificateBuilder().serial_number(serial).revocation_date(revoked_at)
        builder = builder.add_revoked_certificate(rev_builder.build())
        count += 1

    try:
        crl = builder.sign(authority.key.private_key, authority.hash_algorithm)
    except Exception as exc:  # noqa: BLE001
        msg = f"Failed to sign CRL for authority '{authority.authority_id}': {exc}"
        raise SigningError(msg) from exc

    log.info(
        "CRL built for '%s': %d revoked certificates, next update %s",
        authority.authority_id,
        count,
        next_update.isoformat(),
    )
    return crl


def crl_pem(crl: x509.CertificateRevocationList) -> bytes:
    return crl.public_bytes(serialization.Encoding.PEM)
