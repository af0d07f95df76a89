"""Fixture generator.

Evaluates a :class:`FixturePlan` end to end: creates the authorities,
issues and records every certificate, applies the planned revocations,
exports the OCSP index and CRLs from the registry, places every
artifact in the layout planner and finally publishes the tree.

Publication is all-or-nothing.  The tree is written to a scratch
directory beside the output, verified, and only then swapped into
place; on any failure the scratch directory is removed and a previous
output directory is left untouched.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from pkiforge.ca.authority import Authority
from pkiforge.ca.crl import crl_pem
from pkiforge.ca.profiles import build_default_catalog
from pkiforge.core.types import ArtifactKind
from pkiforge.crypto.keys import generate_key
from pkiforge.errors import PKIForgeError
from pkiforge.layout.planner import FixtureArtifact, LayoutPlanner
from pkiforge.layout.rehash import rehash_directory
from pkiforge.logging.setup import artifact_context, run_context
from pkiforge.orchestrator.plan import default_plan
from pkiforge.revocation.index import INDEX_ATTR_DATA, INDEX_ATTR_SUFFIX, format_serial
from pkiforge.revocation.registry import RevocationRegistry

if TYPE_CHECKING:
    from collections.abc import Iterator

    from cryptography import x509

    from pkiforge.ca.authority import IssuedCertificate
    from pkiforge.ca.profiles import ProfileCatalog
    from pkiforge.config.settings import ForgeSettings
    from pkiforge.crypto.keys import KeyPair
    from pkiforge.orchestrator.plan import AuthoritySpec, FixturePlan

log = logging.getLogger(__name__)

_PUBLISHED_DIR_MODE = 0o755


@dataclass
class GenerationResult:
    """Everything one in-memory generation run produced."""

    run_id: str
    authorities: dict[str, Authority] = field(default_factory=dict)
    certificates: dict[str, IssuedCertificate] = field(default_factory=dict)
    keys: dict[str, KeyPair] = field(default_factory=dict)
    crls: dict[str, x509.CertificateRevocationList] = field(default_factory=dict)
    ocsp_index: list[str] = field(default_factory=list)
    registry: RevocationRegistry = field(default_factory=RevocationRegistry)
    planner: LayoutPlanner = field(default_factory=LayoutPlanner)
    rehash_directories: tuple[str, ...] = ()


@contextmanager
def _producing(name: str) -> Iterator[None]:
    """Attribute errors and log records raised inside the block to *name*."""
    with artifact_context(name):
        try:
            yield
        except PKIForgeError as exc:
            if exc.artifact is None:
                exc.artifact = name
            raise


class FixtureGenerator:
    """Runs a fixture plan.

    Parameters
    ----------
    settings:
        Validated settings.
    plan:
        Plan to evaluate; defaults to :func:`default_plan`.
    catalog:
        Profile catalog; defaults to the standard catalog built with
        ``settings.pki.ocsp_uri``.

    """

    def __init__(
        self,
        settings: ForgeSettings,
        plan: FixturePlan | None = None,
        *,
        catalog: ProfileCatalog | None = None,
    ) -> None:
        self._settings = settings
        self._plan = plan or default_plan(settings)
        self._catalog = catalog or build_default_catalog(settings.pki.ocsp_uri)

    @property
    def plan(self) -> FixturePlan:
        return self._plan

    # -- in-memory evaluation ------------------------------------------------

    def build(self, *, now: datetime | None = None) -> GenerationResult:
        """Evaluate the plan in memory and return every produced artifact.

        Raises
        ------
        PKIForgeError
            The first failure, annotated with the failing artifact name.

        """
        self._plan.validate()
        result = GenerationResult(run_id=uuid.uuid4().hex[:12])
        now = now or datetime.now(UTC)

        with run_context(result.run_id):
            log.info(
                "Generation run started: %d authorities, %d certificates, %d keys",
                len(self._plan.authorities),
                len(self._plan.certificates),
                len(self._plan.keys),
            )
            self._create_authorities(result, now)
            self._issue_certificates(result, now)
            self._generate_keys(result)
            self._export_revocation(result, now)
            self._place_bookkeeping(result)
            for directory in self._plan.directories:
                result.planner.add_directory(directory)
            result.rehash_directories = self._plan.rehash_directories
            log.info(
                "Generation run finished: %d artifacts, %d revoked",
                len(result.planner),
                sum(len(result.registry.revoked(a)) for a in result.authorities),
            )
        return result

    def _create_authorities(self, result: GenerationResult, now: datetime) -> None:
        pki = self._settings.pki
        for spec in self._plan.authorities:
            with _producing(spec.id):
                parent = result.authorities[spec.parent] if spec.parent else None
                authority = Authority.create(
                    spec.id,
                    spec.subject,
                    key_algorithm=spec.key_algorithm,
                    validity_days=pki.ca_validity_days,
                    catalog=self._catalog,
                    parent=parent,
                    serial_base=pki.serial_base,
                    hash_algorithm=pki.hash_algorithm,
                    now=now,
                )
                result.authorities[spec.id] = authority
                issued = authority.as_issued()
                if issued is not None:
                    result.registry.record(issued)
                self._place_authority(result, spec, authority)

    def _place_authority(
        self,
        result: GenerationResult,
        spec: AuthoritySpec,
        authority: Authority,
    ) -> None:
        if not spec.published:
            log.debug("Authority '%s' is unpublished", spec.id)
            return
        result.planner.place(
            FixtureArtifact(f"{spec.id}.cert", ArtifactKind.CA_BUNDLE, authority.pem),
            spec.certificate_destinations,
        )
        if spec.key_destinations:
            result.planner.place(
                FixtureArtifact(
                    f"{spec.id}.key",
                    ArtifactKind.PRIVATE_KEY,
                    authority.key.private_pem,
                ),
                spec.key_destinations,
            )

    def _issue_certificates(self, result: GenerationResult, now: datetime) -> None:
        for spec in self._plan.certificates:
            with _producing(spec.name):
                authority = result.authorities[spec.authority]
                issued = authority.issue(
                    spec.name,
                    spec.subject,
                    key_algorithm=spec.key_algorithm,
                    profile=spec.profile,
                    validity_days=self._settings.pki.leaf_validity_days,
                    now=now,
                )
                result.certificates[spec.name] = issued
                result.registry.record(issued)
                if spec.revoked:
                    result.registry.revoke(
                        issued.serial_number,
                        issuer_id=authority.authority_id,
                        revoked_at=now,
                    )

                result.planner.place(
                    FixtureArtifact(f"{spec.name}.cert", ArtifactKind.CERTIFICATE, issued.pem),
                    spec.certificate_destinations,
                )
                if spec.key_destinations:
                    result.planner.place(
                        FixtureArtifact(
                            f"{spec.name}.key",
                            ArtifactKind.PRIVATE_KEY,
                            issued.key.private_pem,
                        ),
                        spec.key_destinations,
                    )

    def _generate_keys(self, result: GenerationResult) -> None:
        for spec in self._plan.keys:
            with _producing(spec.name):
                key = generate_key(spec.key_algorithm)
                result.keys[spec.name] = key
                result.planner.place(
                    FixtureArtifact(f"{spec.name}.key", ArtifactKind.PRIVATE_KEY, key.private_pem),
                    spec.destinations,
                )

    def _export_revocation(self, result: GenerationResult, now: datetime) -> None:
        revocation = self._settings.revocation
        for spec in self._plan.authorities:
            if not spec.crl_destinations:
                continue
            name = f"{spec.id}.crl"
            with _producing(name):
                crl = result.registry.export_crl(
                    result.authorities[spec.id],
                    last_update=now,
                    next_update_days=revocation.crl_next_update_days,
                    crl_number=revocation.crl_number_base,
                )
                result.crls[spec.id] = crl
                result.planner.place(
                    FixtureArtifact(name, ArtifactKind.CRL, crl_pem(crl)),
                    spec.crl_destinations,
                )

        if self._plan.index_authority is None:
            return
        with _producing("ocsp-index"):
            result.ocsp_index = result.registry.export_ocsp_index(
                self._plan.index_authority,
                fixed_expiry=revocation.fixed_index_expiry,
            )
            if self._plan.index_destinations:
                data = "".join(f"{line}\n" for line in result.ocsp_index).encode("utf-8")
                result.planner.place(
                    FixtureArtifact("ocsp-index", ArtifactKind.DATABASE, data),
                    self._plan.index_destinations,
                )
                result.planner.place(
                    FixtureArtifact("ocsp-index.attr", ArtifactKind.DATABASE, INDEX_ATTR_DATA),
                    [f"{dest}{INDEX_ATTR_SUFFIX}" for dest in self._plan.index_destinations],
                )

    def _place_bookkeeping(self, result: GenerationResult) -> None:
        """OpenSSL ``ca`` bookkeeping: next serial and next CRL number (hex)."""
        if self._plan.index_authority is not None and self._plan.serial_destinations:
            authority = result.authorities[self._plan.index_authority]
            with _producing("serial"):
                result.planner.place(
                    FixtureArtifact(
                        "serial",
                        ArtifactKind.DATABASE,
                        f"{format_serial(authority.next_serial)}\n".encode("ascii"),
                    ),
                    self._plan.serial_destinations,
                )

        next_crl_number = self._settings.revocation.crl_number_base + 1
        for spec in self._plan.authorities:
            if not spec.crl_number_destinations:
                continue
            name = f"{spec.id}.crlnumber"
            with _producing(name):
                result.planner.place(
                    FixtureArtifact(
                        name,
                        ArtifactKind.DATABASE,
                        f"{format_serial(next_crl_number)}\n".encode("ascii"),
                    ),
                    spec.crl_number_destinations,
                )

    # -- publication ---------------------------------------------------------

    def run(self, output_dir: str | Path | None = None) -> GenerationResult:
        """Generate the fixture tree and publish it at *output_dir*.

        Parameters
        ----------
        output_dir:
            Destination directory; defaults to ``settings.output_dir``.

        Raises
        ------
        PKIForgeError
            Any generation failure; nothing is published.
        OSError
            If the tree cannot be written or swapped into place.

        """
        output = Path(output_dir or self._settings.output_dir).resolve()
        output.parent.mkdir(parents=True, exist_ok=True)
        scratch = Path(
            tempfile.mkdtemp(prefix=f".{output.name}.", suffix=".tmp", dir=output.parent),
        )
        try:
            result = self.build()
            with run_context(result.run_id):
                result.planner.materialize(scratch)
                result.planner.verify(scratch)
                for directory in result.rehash_directories:
                    rehash_directory(scratch / directory)
                os.chmod(scratch, _PUBLISHED_DIR_MODE)
                _publish(scratch, output)
                log.info("Published fixture tree at %s", output)
        except BaseException:
            shutil.rmtree(scratch, ignore_errors=True)
            raise
        return result


def _publish(scratch: Path, output: Path) -> None:
    """Swap *scratch* into place at *output*, keeping the old tree until the swap succeeds."""
    if not output.exists():
        scratch.rename(output)
        return

    backup = output.with_name(f".{output.name}.{uuid.uuid4().hex[:8]}.old")
    output.rename(backup)
    try:
        scratch.rename(output)
    except OSError:
        backup.rename(output)
        raise
    shutil.rmtree(backup)
