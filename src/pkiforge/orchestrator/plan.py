"""Declarative fixture plan.

A :class:`FixturePlan` is a table: which authorities exist, which
certificates each issues (subject, profile, key algorithm, where the
certificate and key copies go, whether it ends up revoked), which bare
keys are needed, and where the revocation artifacts and bookkeeping
files land.  One generic routine in
:mod:`pkiforge.orchestrator.generator` evaluates any plan;
:func:`default_plan` is the fixture set the test suites consume.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pkiforge.ca.names import DistinguishedName
from pkiforge.core.types import KeyAlgorithm
from pkiforge.errors import PlanError

if TYPE_CHECKING:
    from pkiforge.config.settings import ForgeSettings

# ---------------------------------------------------------------------------
# Plan entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuthoritySpec:
    """One certificate authority.

    An authority with no certificate destinations is *unpublished*: it
    signs certificates but its own certificate, key and CRL never reach
    the output tree (relying parties must not trust it).
    """

    id: str
    subject: DistinguishedName
    key_algorithm: KeyAlgorithm = KeyAlgorithm.RSA_2048
    parent: str | None = None
    certificate_destinations: tuple[str, ...] = ()
    key_destinations: tuple[str, ...] = ()
    crl_destinations: tuple[str, ...] = ()
    crl_number_destinations: tuple[str, ...] = ()

    @property
    def published(self) -> bool:
        return bool(self.certificate_destinations)


@dataclass(frozen=True)
class CertificateSpec:
    """One leaf certificate and its key."""

    name: str
    authority: str
    subject: DistinguishedName
    profile: str
    key_algorithm: KeyAlgorithm = KeyAlgorithm.RSA_2048
    certificate_destinations: tuple[str, ...] = ()
    key_destinations: tuple[str, ...] = ()
    revoked: bool = False


@dataclass(frozen=True)
class KeySpec:
    """A private key with no certificate (e.g. for CSR tests)."""

    name: str
    key_algorithm: KeyAlgorithm = KeyAlgorithm.RSA_2048
    destinations: tuple[str, ...] = ()


@dataclass(frozen=True)
class FixturePlan:
    """The complete fixture table evaluated by the generator.

    Attributes
    ----------
    authorities:
        Authorities in creation order; parents precede children.
    certificates:
        Leaf certificates in issuance order.
    keys:
        Key-only entries.
    index_authority:
        Authority whose ledger is exported as the OCSP index.
    index_destinations:
        Where ``index.txt`` copies go.
    serial_destinations:
        Where the index authority's next-serial file goes.
    directories:
        Directories that must exist even when empty.
    rehash_directories:
        CA directories that receive subject-hash links.

    """

    authorities: tuple[AuthoritySpec, ...]
    certificates: tuple[CertificateSpec, ...] = ()
    keys: tuple[KeySpec, ...] = ()
    index_authority: str | None = None
    index_destinations: tuple[str, ...] = ()
    serial_destinations: tuple[str, ...] = ()
    directories: tuple[str, ...] = ()
    rehash_directories: tuple[str, ...] = ()

    def authority(self, authority_id: str) -> AuthoritySpec:
        for spec in self.authorities:
            if spec.id == authority_id:
                return spec
        msg = f"Unknown authority '{authority_id}'"
        raise PlanError(msg)

    def validate(self) -> None:
        """Check references and name uniqueness.

        Raises
        ------
        PlanError
            On the first inconsistency found.

        """
        seen_authorities: set[str] = set()
        for spec in self.authorities:
            if spec.id in seen_authorities:
                msg = f"Authority '{spec.id}' is declared twice"
                raise PlanError(msg, artifact=spec.id)
            if spec.parent is not None and spec.parent not in seen_authorities:
                msg = f"Parent authority '{spec.parent}' must be declared before '{spec.id}'"
                raise PlanError(msg, artifact=spec.id)
            if spec.crl_destinations and not spec.published:
                msg = "An unpublished authority cannot publish a CRL"
                raise PlanError(msg, artifact=spec.id)
            seen_authorities.add(spec.id)

        names: set[str] = set(seen_authorities)
        for cert in self.certificates:
            if cert.name in names:
                msg = "Name is used by more than one plan entry"
                raise PlanError(msg, artifact=cert.name)
            if cert.authority not in seen_authorities:
                msg = f"Certificate refers to unknown authority '{cert.authority}'"
                raise PlanError(msg, artifact=cert.name)
            if not cert.certificate_destinations:
                msg = "Certificate has no destination"
                raise PlanError(msg, artifact=cert.name)
            names.add(cert.name)

        for key in self.keys:
            if key.name in names:
                msg = "Name is used by more than one plan entry"
                raise PlanError(msg, artifact=key.name)
            if not key.destinations:
                msg = "Key has no destination"
                raise PlanError(msg, artifact=key.name)
            names.add(key.name)

        if self.index_authority is not None and self.index_authority not in seen_authorities:
            msg = f"OCSP index refers to unknown authority '{self.index_authority}'"
            raise PlanError(msg)
        if (self.index_destinations or self.serial_destinations) and self.index_authority is None:
            msg = "index_destinations and serial_destinations require an index_authority"
            raise PlanError(msg)


# ---------------------------------------------------------------------------
# Default plan
# ---------------------------------------------------------------------------

_ORG = DistinguishedName.build(C="JP", ST="Tokyo", L="Tokyo", O="pivGateway")
_ID_CHECK = DistinguishedName.build(
    C="AU",
    ST="Some-State",
    O="Internet Widgits Pty Ltd",
    CN="same.pivgateway.jp",
    emailAddress="same@pivgateway.jp",
)


def _subject(ou: str, cn: str) -> DistinguishedName:
    return _ORG.replace(OU=ou, CN=cn)


def _leaf(  # noqa: PLR0913
    name: str,
    directory: str,
    subject: DistinguishedName,
    profile: str,
    *,
    authority: str = "root",
    key_algorithm: KeyAlgorithm = KeyAlgorithm.RSA_2048,
    cert_aliases: tuple[str, ...] = (),
    key_aliases: tuple[str, ...] = (),
    revoked: bool = False,
) -> CertificateSpec:
    """Certificate at ``<dir>/<name>.pem`` with its key beside it."""
    return CertificateSpec(
        name=name,
        authority=authority,
        subject=subject,
        profile=profile,
        key_algorithm=key_algorithm,
        certificate_destinations=(f"{directory}/{name}.pem", *cert_aliases),
        key_destinations=(f"{directory}/{name}.key", *key_aliases),
        revoked=revoked,
    )


def default_plan(settings: ForgeSettings) -> FixturePlan:
    """Return the standard fixture layout.

    ``settings.layout.rehash`` decides whether the ``cas/*`` directories
    receive subject-hash links.
    """
    authorities = (
        AuthoritySpec(
            id="root",
            subject=_subject("test", "Example CA"),
            certificate_destinations=(
                "certs/ca.pem",
                "ca_server.pem",
                "cas/all/ca.pem",
                "cas/servers/ca.pem",
            ),
            key_destinations=("private/ca.key", "ca_server.key"),
            crl_destinations=("crl/ca.crl", "ca.crl"),
            crl_number_destinations=("private/crlnumber",),
        ),
        AuthoritySpec(
            id="user",
            subject=_subject("user", "User CA"),
            certificate_destinations=(
                "certs/ca_user.pem",
                "ca_user.pem",
                "ca_user.cer",
                "cas/users/ca_user.pem",
            ),
            key_destinations=("private/ca_user.key", "ca_user.key"),
            crl_destinations=("crl/ca_user.crl", "ca_user.crl"),
            crl_number_destinations=("private/crlnumber_user",),
        ),
        AuthoritySpec(
            id="unknown",
            subject=DistinguishedName.build(
                C="JP",
                ST="Tokyo",
                L="Tokyo",
                O="UnknownOrg",
                OU="test",
                CN="unknown.ca",
            ),
        ),
    )

    certificates = (
        _leaf(
            "door1",
            "door_certs",
            _subject("door", "door1"),
            "client-and-server-auth",
            key_aliases=("door_req/door1.key",),
        ),
        _leaf(
            "door2",
            "door_certs",
            _subject("door", "door2"),
            "client-and-server-auth",
            key_aliases=("door_req/door2.key",),
        ),
        _leaf(
            "reader1",
            "reader_certs",
            _subject("reader", "reader1"),
            "signing",
            cert_aliases=("door_certs/reader1.pem",),
            key_aliases=("door_req/reader1.key",),
        ),
        _leaf(
            "user1",
            "user_certs",
            _subject("user", "user1"),
            "signing",
            cert_aliases=("user_certs/user1.crt",),
            key_aliases=("user_req/user1.key",),
        ),
        _leaf(
            "user2",
            "user_certs",
            _subject("user", "user2"),
            "signing",
            cert_aliases=("user_certs/user2.crt",),
            key_aliases=("user_req/user2.key",),
        ),
        _leaf(
            "revoked-user3",
            "revoked",
            _subject("reader", "revoked-user3"),
            "signing",
            revoked=True,
        ),
        _leaf("signer1", "user_certs", _subject("signer", "signer1"), "signing"),
        CertificateSpec(
            name="signer1-door",
            authority="root",
            subject=_subject("test", "signer1"),
            profile="signing",
            certificate_destinations=("door_certs/signer1.pem",),
            key_destinations=("door_req/signer1.key",),
        ),
        _leaf("has_san", "id_check", _ID_CHECK, "san-full"),
        _leaf("no_san", "id_check", _ID_CHECK, "signing"),
        _leaf("minimal", "id_check", _subject("test", "minimal"), "minimal"),
        _leaf(
            "no-ocsp-uri",
            "no-ocsp-uri",
            _subject("test", "no-ocsp-uri.pivgateway.jp"),
            "no-ocsp-uri",
        ),
        _leaf(
            "cmssigner",
            "unknown_certs",
            DistinguishedName.build(
                C="JP",
                ST="Tokyo",
                L="Tokyo",
                O="UnknownOrg",
                OU="test",
                CN="cmssigner",
            ),
            "signing",
            authority="unknown",
        ),
        CertificateSpec(
            name="ecc-door1",
            authority="root",
            subject=_subject("door", "door1.pivgateway.jp"),
            profile="client-and-server-auth",
            key_algorithm=KeyAlgorithm.EC_P256,
            certificate_destinations=("ECC/door_certs/door1.pem",),
            key_destinations=("ECC/door_req/door1.key",),
        ),
        _leaf(
            "ldap_server",
            "server_certs",
            _subject("test", "ldap.pivgateway.jp"),
            "server-auth",
        ),
        _leaf(
            "access_server",
            "server_certs",
            _subject("test", "access_server"),
            "server-auth",
            key_aliases=("server_req/access_server.key",),
        ),
        _leaf(
            "ocsp_server",
            "server_certs",
            _subject("OCSP", "OCSP Responder"),
            "ocsp-responder",
        ),
        _leaf("localhost", "localhost", _subject("test", "localhost"), "server-auth"),
        _leaf(
            "localhost_grpc_client",
            "localhost",
            _subject("test", "localhost"),
            "client-auth",
        ),
    )

    keys = (KeySpec(name="reader2", destinations=("reader_req/reader2.key",)),)

    rehash = ("cas/all", "cas/servers", "cas/users")
    return FixturePlan(
        authorities=authorities,
        certificates=certificates,
        keys=keys,
        index_authority="root",
        index_destinations=("ocsp/index.txt", "private/index.txt"),
        serial_destinations=("private/serial",),
        directories=("csr", "keys", *rehash),
        rehash_directories=rehash if settings.layout.rehash else (),
    )
