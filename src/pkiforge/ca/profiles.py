"""Extension profile catalog.

A profile is a named, immutable bundle of X.509v3 extensions applied at
issuance.  Profile names and extension content are defined
independently: every profile owns its own extension set, so two
certificate types can never become coupled through a shared section.

Usage::

    from pkiforge.ca.profiles import build_default_catalog

    catalog = build_default_catalog(ocsp_uri="http://ocsp.example.test/")
    profile = catalog.resolve("server-auth")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from cryptography import x509

from pkiforge.ca.cert_utils import (
    UPN_OID,
    build_eku,
    build_key_usage,
    build_ocsp_aia,
    build_san,
)
from pkiforge.core.types import KeyAlgorithm, SanType
from pkiforge.errors import ProfileApplicationError, UnknownProfileError

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from cryptography.hazmat.primitives.asymmetric.types import (
        CertificateIssuerPublicKeyTypes,
    )

log = logging.getLogger(__name__)

# Key usages that only make sense for one key family in this catalog.
_EC_ONLY_USAGES = frozenset({"key_agreement"})
_RSA_ONLY_USAGES = frozenset({"key_encipherment", "data_encipherment"})


@dataclass(frozen=True)
class SanEntry:
    """One typed subjectAltName entry.

    ``value`` may contain ``{cn}``, replaced by the subject common name
    when the profile is applied.  ``oid`` is the type-id of an
    ``other_name`` entry; its value is encoded as a UTF8String.
    """

    type: SanType
    value: str
    oid: str | None = None


@dataclass(frozen=True)
class ExtensionProfile:
    """Declarative extension set applied to a certificate at issuance.

    Attributes
    ----------
    name:
        Catalog name of the profile.
    ca:
        ``True``/``False`` adds basicConstraints with that CA flag,
        ``None`` omits the extension.
    key_usages:
        Key usage names (see :data:`pkiforge.ca.cert_utils.KEY_USAGE_FIELDS`).
    key_usage_overrides:
        Per-algorithm replacement for ``key_usages``.
    extended_key_usages:
        EKU names; empty omits the extension.
    subject_alt_names:
        SAN entries; empty omits the extension.
    ocsp_uris:
        OCSP responder URIs advertised in authorityInfoAccess; empty
        omits the extension.
    key_identifiers:
        Add subjectKeyIdentifier and authorityKeyIdentifier.

    """

    name: str
    ca: bool | None = None
    basic_constraints_critical: bool = False
    key_usages: tuple[str, ...] = ()
    key_usage_overrides: Mapping[KeyAlgorithm, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({}),
        hash=False,
    )
    key_usage_critical: bool = True
    extended_key_usages: tuple[str, ...] = ()
    extended_key_usage_critical: bool = False
    subject_alt_names: tuple[SanEntry, ...] = ()
    ocsp_uris: tuple[str, ...] = ()
    key_identifiers: bool = True

    def key_usages_for(self, algorithm: KeyAlgorithm) -> tuple[str, ...]:
        return self.key_usage_overrides.get(algorithm, self.key_usages)

    def check_algorithm(self, algorithm: KeyAlgorithm) -> None:
        """Raise ``ProfileApplicationError`` if a key usage conflicts with *algorithm*."""
        usages = set(self.key_usages_for(algorithm))
        if algorithm is KeyAlgorithm.RSA_2048:
            conflicting = usages & _EC_ONLY_USAGES
        else:
            conflicting = usages & _RSA_ONLY_USAGES
        if conflicting:
            msg = (
                f"Profile '{self.name}' requests key usage {sorted(conflicting)} "
                f"which is incompatible with {algorithm.value} keys"
            )
            raise ProfileApplicationError(msg)

    def apply(  # noqa: PLR0913
        self,
        builder: x509.CertificateBuilder,
        *,
        algorithm: KeyAlgorithm,
        common_name: str | None,
        subject_public_key: CertificateIssuerPublicKeyTypes,
        issuer_public_key: CertificateIssuerPublicKeyTypes,
    ) -> x509.CertificateBuilder:
        """Add this profile's extensions to *builder* and return it.

        Raises
        ------
        ProfileApplicationError
            If the profile conflicts with the key algorithm or an
            extension value cannot be built.

        """
        self.check_algorithm(algorithm)

        if self.ca is not None:
            builder = builder.add_extension(
                x509.BasicConstraints(ca=self.ca, path_length=None),
                critical=self.basic_constraints_critical,
            )

        usages = self.key_usages_for(algorithm)
        if usages:
            builder = builder.add_extension(
                build_key_usage(usages),
                critical=self.key_usage_critical,
            )

        if self.extended_key_usages:
            builder = builder.add_extension(
                build_eku(self.extended_key_usages),
                critical=self.extended_key_usage_critical,
            )

        if self.subject_alt_names:
            builder = builder.add_extension(
                build_san(self.subject_alt_names, common_name=common_name),
                critical=False,
            )

        if self.ocsp_uris:
            builder = builder.add_extension(
                build_ocsp_aia(self.ocsp_uris),
                critical=False,
            )

        if self.key_identifiers:
            builder = builder.add_extension(
                x509.SubjectKeyIdentifier.from_public_key(subject_public_key),
                critical=False,
            ).add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer_public_key),
                critical=False,
            )

        return builder


class ProfileCatalog:
    """Registry mapping profile names to :class:`ExtensionProfile` values."""

    def __init__(self, profiles: tuple[ExtensionProfile, ...] = ()) -> None:
        self._profiles: dict[str, ExtensionProfile] = {}
        for profile in profiles:
            self.register(profile)

    def register(self, profile: ExtensionProfile) -> None:
        if profile.name in self._profiles:
            msg = f"Profile '{profile.name}' is already registered"
            raise ValueError(msg)
        self._profiles[profile.name] = profile

    def resolve(self, name: str) -> ExtensionProfile:
        """Return the profile registered as *name*.

        Raises
        ------
        UnknownProfileError
            If no profile with that name is registered.

        """
        try:
            return self._profiles[name]
        except KeyError:
            msg = f"Unknown profile '{name}'; registered: {sorted(self._profiles)}"
            raise UnknownProfileError(msg) from None

    def names(self) -> list[str]:
        return sorted(self._profiles)

    def __contains__(self, name: object) -> bool:
        return name in self._profiles

    def __iter__(self) -> Iterator[ExtensionProfile]:
        return iter(self._profiles.values())

    def __len__(self) -> int:
        return len(self._profiles)


# ---------------------------------------------------------------------------
# Default catalog
# ---------------------------------------------------------------------------

_TLS_KEY_USAGES = ("digital_signature", "key_encipherment")
_EC_TLS_KEY_USAGES = ("digital_signature", "key_agreement")
_SIGNING_EKUS = ("email_protection", "code_signing")
_EC_SIGNATURE_ONLY = MappingProxyType({KeyAlgorithm.EC_P256: ("digital_signature",)})

DEFAULT_SAN_FULL_ENTRIES = (
    SanEntry(SanType.DNS, "same.pivgateway.jp"),
    SanEntry(SanType.URI, "uuid:12345678-1234-5678-1234-567812345678"),
    SanEntry(SanType.RFC822, "alt_email@pivgateway.jp"),
    SanEntry(SanType.OTHER_NAME, "alt_upn@pivgateway.jp", oid=UPN_OID.dotted_string),
)


def build_default_catalog(
    ocsp_uri: str,
    *,
    san_full_entries: tuple[SanEntry, ...] = DEFAULT_SAN_FULL_ENTRIES,
) -> ProfileCatalog:
    """Return the catalog of profiles used by the default fixture plan.

    Parameters
    ----------
    ocsp_uri:
        OCSP responder URI advertised by every AIA-carrying profile.
    san_full_entries:
        The four typed SAN entries of the ``san-full`` profile.

    """
    aia = (ocsp_uri,)
    return ProfileCatalog(
        (
            ExtensionProfile(name="minimal", key_identifiers=False),
            ExtensionProfile(
                name="ca",
                ca=True,
                basic_constraints_critical=True,
                key_usages=("key_cert_sign", "crl_sign"),
            ),
            ExtensionProfile(
                name="san-full",
                ca=False,
                key_usages=_TLS_KEY_USAGES,
                key_usage_overrides=_EC_SIGNATURE_ONLY,
                extended_key_usages=_SIGNING_EKUS,
                subject_alt_names=san_full_entries,
                ocsp_uris=aia,
            ),
            ExtensionProfile(
                name="server-auth",
                ca=False,
                key_usages=_TLS_KEY_USAGES,
                key_usage_overrides=_EC_SIGNATURE_ONLY,
                extended_key_usages=("server_auth",),
                subject_alt_names=(SanEntry(SanType.DNS, "{cn}"),),
                ocsp_uris=aia,
            ),
            ExtensionProfile(
                name="no-ocsp-uri",
                ca=False,
                key_usages=_TLS_KEY_USAGES,
                key_usage_overrides=_EC_SIGNATURE_ONLY,
                extended_key_usages=("server_auth",),
                subject_alt_names=(SanEntry(SanType.DNS, "{cn}"),),
            ),
            ExtensionProfile(
                name="client-and-server-auth",
                ca=False,
                key_usages=_TLS_KEY_USAGES,
                key_usage_overrides=MappingProxyType(
                    {KeyAlgorithm.EC_P256: _EC_TLS_KEY_USAGES},
                ),
                extended_key_usages=("server_auth", "client_auth"),
                ocsp_uris=aia,
            ),
            ExtensionProfile(
                name="client-auth",
                ca=False,
                key_usages=_TLS_KEY_USAGES,
                key_usage_overrides=MappingProxyType(
                    {KeyAlgorithm.EC_P256: _EC_TLS_KEY_USAGES},
                ),
                extended_key_usages=("client_auth",),
                ocsp_uris=aia,
            ),
            ExtensionProfile(
                name="signing",
                ca=False,
                key_usages=_TLS_KEY_USAGES,
                key_usage_overrides=_EC_SIGNATURE_ONLY,
                extended_key_usages=_SIGNING_EKUS,
                ocsp_uris=aia,
            ),
            ExtensionProfile(
                name="ocsp-responder",
                ca=False,
                key_usages=("digital_signature", "content_commitment"),
                extended_key_usages=("ocsp_signing",),
                extended_key_usage_critical=True,
            ),
        ),
    )
