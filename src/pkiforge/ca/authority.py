"""Certificate authorities.

An :class:`Authority` owns one CA key pair, its (self-signed or
parent-signed) certificate and a serial allocator.  It issues leaf
certificates by applying a catalog profile to a subject and signing
with its own key.  Authorities are plain values scoped to one
generation run and passed explicitly to whoever needs them; there is no
process-wide CA state.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from pkiforge.ca.cert_utils import HASH_ALGORITHMS
from pkiforge.crypto.keys import generate_key, parse_algorithm
from pkiforge.errors import ProfileApplicationError, SigningError

if TYPE_CHECKING:
    from cryptography.hazmat.primitives import hashes
    from cryptography.hazmat.primitives.asymmetric.types import (
        CertificateIssuerPublicKeyTypes,
    )

    from pkiforge.ca.names import DistinguishedName
    from pkiforge.ca.profiles import ExtensionProfile, ProfileCatalog
    from pkiforge.core.types import KeyAlgorithm
    from pkiforge.crypto.keys import KeyPair

log = logging.getLogger(__name__)

DEFAULT_SERIAL_BASE = 0x1000
_CA_PROFILE = "ca"


@dataclass(frozen=True)
class IssuedCertificate:
    """An issued certificate and the key pair it certifies.

    Immutable after issuance; revocation is tracked by the revocation
    registry and never touches these bytes.

    Attributes
    ----------
    name:
        Logical fixture name (e.g. ``door1``).
    serial_number:
        Serial number, unique within the issuing authority.
    subject:
        Subject distinguished name.
    issuer_id:
        Id of the issuing :class:`Authority`.
    key:
        The certified key pair.
    profile:
        Name of the applied extension profile.
    certificate:
        The signed certificate.

    """

    name: str
    serial_number: int
    subject: DistinguishedName
    issuer_id: str
    key: KeyPair
    profile: str
    certificate: x509.Certificate

    @property
    def not_before(self) -> datetime:
        return self.certificate.not_valid_before_utc

    @property
    def not_after(self) -> datetime:
        return self.certificate.not_valid_after_utc

    @property
    def serial_hex(self) -> str:
        return format(self.serial_number, "X")

    @property
    def pem(self) -> bytes:
        return self.certificate.public_bytes(serialization.Encoding.PEM)

    @property
    def fingerprint(self) -> str:
        """SHA-256 hex digest of the DER encoding."""
        return hashlib.sha256(
            self.certificate.public_bytes(serialization.Encoding.DER),
        ).hexdigest()


class Authority:
    """A root or subordinate certificate authority.

    Use :meth:`create` to generate a new authority; the constructor wraps
    existing material.

    Parameters
    ----------
    authority_id:
        Short identifier used by plans and the revocation registry.
    subject:
        The authority's distinguished name.
    key:
        The authority key pair.
    certificate:
        The authority certificate.
    catalog:
        Profile catalog consulted when issuing.
    serial_base:
        First serial number handed out by :meth:`allocate_serial`.
    hash_algorithm:
        Signature digest name (``sha256``, ``sha384``, ``sha512``).
    parent:
        Issuing authority, ``None`` for a self-signed root.

    """

    def __init__(  # noqa: PLR0913
        self,
        authority_id: str,
        subject: DistinguishedName,
        key: KeyPair,
        certificate: x509.Certificate,
        *,
        catalog: ProfileCatalog,
        serial_base: int = DEFAULT_SERIAL_BASE,
        hash_algorithm: str = "sha256",
        parent: Authority | None = None,
    ) -> None:
        if serial_base < 1:
            msg = f"Serial base must be positive (got {serial_base})"
            raise ValueError(msg)
        self.authority_id = authority_id
        self.subject = subject
        self.key = key
        self.certificate = certificate
        self.parent = parent
        self._catalog = catalog
        self._hash_algorithm = HASH_ALGORITHMS.get(hash_algorithm, HASH_ALGORITHMS["sha256"])
        self._next_serial = serial_base
        self._lock = threading.RLock()

    # -- construction --------------------------------------------------------

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        authority_id: str,
        subject: DistinguishedName,
        *,
        key_algorithm: KeyAlgorithm | str,
        validity_days: int,
        catalog: ProfileCatalog,
        parent: Authority | None = None,
        serial_base: int = DEFAULT_SERIAL_BASE,
        hash_algorithm: str = "sha256",
        now: datetime | None = None,
    ) -> Authority:
        """Generate a key and a CA certificate for a new authority.

        A root (``parent is None``) is self-signed with a random serial;
        a subordinate's certificate is signed by *parent* with the next
        serial from the parent's allocator.  Both use the ``ca`` profile.

        Raises
        ------
        KeyGenerationError
            If the key cannot be generated.
        SigningError
            If the certificate cannot be signed or does not verify.

        """
        algorithm = parse_algorithm(key_algorithm)
        key = generate_key(algorithm)
        profile = catalog.resolve(_CA_PROFILE)
        now = now or datetime.now(UTC)

        if parent is None:
            issuer_name = subject.to_x509()
            issuer_public_key = key.public_key
            signer = key
            hash_alg = HASH_ALGORITHMS.get(hash_algorithm, HASH_ALGORITHMS["sha256"])
            serial = x509.random_serial_number()
        else:
            issuer_name = parent.certificate.subject
            issuer_public_key = parent.key.public_key
            signer = parent.key
            hash_alg = parent.hash_algorithm
            serial = parent.allocate_serial()

        builder = (
            x509.CertificateBuilder()
            .subject_name(subject.to_x509())
            .issuer_name(issuer_name)
            .public_key(key.public_key)
            .serial_number(serial)
            .not_valid_before(now)
            .not_valid_after(now + timedelta(days=validity_days))
        )
        builder = profile.apply(
            builder,
            algorithm=algorithm,
            common_name=subject.common_name,
            subject_public_key=key.public_key,
            issuer_public_key=issuer_public_key,
        )
        try:
            certificate = builder.sign(signer.private_key, hash_alg)
        except Exception as exc:  # noqa: BLE001
            msg = f"Failed to sign CA certificate for '{authority_id}': {exc}"
            raise SigningError(msg) from exc

        issuer_cert = certificate if parent is None else parent.certificate
        _verify_issued_by(certificate, issuer_cert, label=authority_id)

        log.info(
            "Created %s authority '%s' (%s, %s, serial=%X)",
            "root" if parent is None else "subordinate",
            authority_id,
            subject,
            algorithm.value,
            serial,
        )
        return cls(
            authority_id,
            subject,
            key,
            certificate,
            catalog=catalog,
            serial_base=serial_base,
            hash_algorithm=hash_algorithm,
            parent=parent,
        )

    # -- properties ----------------------------------------------------------

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def public_key(self) -> CertificateIssuerPublicKeyTypes:
        return self.key.public_key

    @property
    def hash_algorithm(self) -> hashes.HashAlgorithm:
        return self._hash_algorithm

    @property
    def pem(self) -> bytes:
        return self.certificate.public_bytes(serialization.Encoding.PEM)

    def as_issued(self) -> IssuedCertificate | None:
        """Return this authority's certificate as a record of its parent, or ``None`` for a root."""
        if self.parent is None:
            return None
        return IssuedCertificate(
            name=self.authority_id,
            serial_number=self.certificate.serial_number,
            subject=self.subject,
            issuer_id=self.parent.authority_id,
            key=self.key,
            profile=_CA_PROFILE,
            certificate=self.certificate,
        )

    @property
    def next_serial(self) -> int:
        """The serial the next :meth:`allocate_serial` call will return."""
        with self._lock:
            return self._next_serial

    # -- issuance ------------------------------------------------------------

    def allocate_serial(self) -> int:
        """Return the next serial number; serials are never handed out twice."""
        with self._lock:
            serial = self._next_serial
            self._next_serial += 1
            return serial

    def issue(  # noqa: PLR0913
        self,
        name: str,
        subject: DistinguishedName,
        *,
        key_algorithm: KeyAlgorithm | str,
        profile: str | ExtensionProfile,
        validity_days: int,
        now: datetime | None = None,
    ) -> IssuedCertificate:
        """Issue a leaf certificate with a freshly generated key.

        Parameters
        ----------
        name:
            Logical fixture name of the certificate.
        subject:
            Subject distinguished name.
        key_algorithm:
            Algorithm of the certified key.
        profile:
            Profile name (resolved via the catalog) or profile object.
        validity_days:
            Certificate lifetime in days.
        now:
            Validity start; defaults to the current time.

        Returns
        -------
        IssuedCertificate
            The signed certificate and its key.

        Raises
        ------
        UnknownProfileError
            If the profile name is not registered.
        ProfileApplicationError
            If the profile is a CA profile or conflicts with the key
            algorithm.
        KeyGenerationError
            If the key cannot be generated.
        SigningError
            If signing fails or the result does not chain to this authority.

        """
        algorithm = parse_algorithm(key_algorithm)
        resolved = self._catalog.resolve(profile) if isinstance(profile, str) else profile
        if resolved.ca:
            msg = f"Profile '{resolved.name}' is reserved for authority certificates"
            raise ProfileApplicationError(msg)
        resolved.check_algorithm(algorithm)

        with self._lock:
            key = generate_key(algorithm)
            serial = self.allocate_serial()
            now = now or datetime.now(UTC)

            builder = (
                x509.CertificateBuilder()
                .subject_name(subject.to_x509())
                .issuer_name(self.certificate.subject)
                .public_key(key.public_key)
                .serial_number(serial)
                .not_valid_before(now)
                .not_valid_after(now + timedelta(days=validity_days))
            )
            builder = resolved.apply(
                builder,
                algorithm=algorithm,
                common_name=subject.common_name,
                subject_public_key=key.public_key,
                issuer_public_key=self.public_key,
            )
            try:
                certificate = builder.sign(self.key.private_key, self._hash_algorithm)
            except Exception as exc:  # noqa: BLE001
                msg = f"Failed to sign certificate '{name}' with authority '{self.authority_id}': {exc}"
                raise SigningError(msg) from exc

        _verify_issued_by(certificate, self.certificate, label=name)

        log.info(
            "Authority '%s' issued '%s': serial=%X, profile=%s, key=%s, validity=%d days",
            self.authority_id,
            name,
            serial,
            resolved.name,
            algorithm.value,
            validity_days,
        )
        return IssuedCertificate(
            name=name,
            serial_number=serial,
            subject=subject,
            issuer_id=self.authority_id,
            key=key,
            profile=resolved.name,
            certificate=certificate,
        )

    def __repr__(self) -> str:
        return f"<Authority id={self.authority_id} subject={self.subject}>"


def _verify_issued_by(
    certificate: x509.Certificate,
    issuer: x509.Certificate,
    *,
    label: str,
) -> None:
    """Check that *certificate* names and is signed by *issuer*."""
    if certificate.issuer != issuer.subject:
        msg = (
            f"Certificate '{label}' issuer {certificate.issuer.rfc4514_string()} "
            f"does not match authority subject {issuer.subject.rfc4514_string()}"
        )
        raise SigningError(msg)
    try:
        certificate.verify_directly_issued_by(issuer)
    except Exception as exc:  # noqa: BLE001
        msg = f"Certificate '{label}' does not verify against its issuer key: {exc}"
        raise SigningError(msg) from exc
