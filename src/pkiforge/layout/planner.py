"""Fixture layout planner.

Maps every logical artifact to the ordered list of paths its bytes are
written to.  The bytes are taken once from the artifact and copied to
every destination, so aliases of one certificate or key can never
diverge; :meth:`LayoutPlanner.verify` re-reads the tree to prove it.
"""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from pkiforge.core.types import ArtifactKind
from pkiforge.errors import PathConflictError, PlanError

if TYPE_CHECKING:
    from collections.abc import Iterable

log = logging.getLogger(__name__)

_PRIVATE_MODE = stat.S_IRUSR | stat.S_IWUSR


@dataclass(frozen=True)
class FixtureArtifact:
    """A named blob of fixture bytes and where copies of it go.

    Attributes
    ----------
    name:
        Logical artifact name (e.g. ``door1.cert``).
    kind:
        What the bytes are; private keys are written with mode 0600.
    data:
        The single source of truth for every copy.
    destinations:
        Ordered relative paths; filled in by :meth:`LayoutPlanner.place`.

    """

    name: str
    kind: ArtifactKind
    data: bytes = field(repr=False)
    destinations: tuple[PurePosixPath, ...] = ()


def normalize_destination(path: str | PurePosixPath) -> PurePosixPath:
    """Return *path* as a relative POSIX path that stays inside the root.

    Raises
    ------
    PlanError
        If the path is empty, absolute or climbs out with ``..``.

    """
    pure = PurePosixPath(path)
    if pure.is_absolute():
        msg = f"Destination '{path}' must be relative to the output root"
        raise PlanError(msg)
    if ".." in pure.parts:
        msg = f"Destination '{path}' escapes the output root"
        raise PlanError(msg)
    if not pure.parts:
        msg = "Destination path must not be empty"
        raise PlanError(msg)
    return pure


class LayoutPlanner:
    """Collects artifact placements, then writes and checks them."""

    def __init__(self) -> None:
        self._artifacts: dict[str, FixtureArtifact] = {}
        self._owners: dict[PurePosixPath, str] = {}
        self._directories: list[PurePosixPath] = []

    # -- planning ------------------------------------------------------------

    def place(
        self,
        artifact: FixtureArtifact,
        destinations: Iterable[str | PurePosixPath],
    ) -> FixtureArtifact:
        """Register *destinations* for *artifact* and return the merged artifact.

        Placing the same artifact at a path it already owns is a no-op.

        Raises
        ------
        PathConflictError
            If a path is already owned by another artifact, a path nests
            inside or around another artifact's file or a declared
            directory, or the name is reused with different bytes.
        PlanError
            If a path is not a relative path inside the root.

        """
        paths = [normalize_destination(dest) for dest in destinations]

        existing = self._artifacts.get(artifact.name)
        if existing is not None and (existing.data != artifact.data or existing.kind != artifact.kind):
            msg = "Artifact name is already placed with different content"
            raise PathConflictError(msg, artifact=artifact.name)

        for path in paths:
            owner = self._owners.get(path)
            if owner is not None and owner != artifact.name:
                msg = f"Destination '{path}' is already planned for artifact '{owner}'"
                raise PathConflictError(msg, artifact=artifact.name)
            self._check_nesting(path, artifact.name, pending=paths)

        merged = list(existing.destinations if existing else artifact.destinations)
        for path in paths:
            if path not in merged:
                merged.append(path)
            self._owners[path] = artifact.name

        placed = FixtureArtifact(
            name=artifact.name,
            kind=artifact.kind,
            data=artifact.data,
            destinations=tuple(merged),
        )
        self._artifacts[artifact.name] = placed
        return placed

    def add_directory(self, path: str | PurePosixPath) -> None:
        """Declare a directory that must exist even when nothing is written to it."""
        pure = normalize_destination(path)
        for candidate in (pure, *self._parents(pure)):
            owner = self._owners.get(candidate)
            if owner is not None:
                msg = f"Directory '{pure}' collides with file '{candidate}'"
                raise PathConflictError(msg, artifact=owner)
        if pure not in self._directories:
            self._directories.append(pure)

    @staticmethod
    def _parents(path: PurePosixPath) -> list[PurePosixPath]:
        return [parent for parent in path.parents if parent.parts]

    def _check_nesting(
        self,
        path: PurePosixPath,
        name: str,
        *,
        pending: list[PurePosixPath],
    ) -> None:
        """Reject *path* when it nests above or below another file or a declared directory."""
        parents = self._parents(path)
        for parent in parents:
            owner = self._owners.get(parent)
            if owner is not None:
                msg = f"Destination '{path}' lies under file '{parent}' of artifact '{owner}'"
                raise PathConflictError(msg, artifact=name)
            if parent in pending:
                msg = f"Destination '{path}' lies under file '{parent}' of the same artifact"
                raise PathConflictError(msg, artifact=name)
        for owned, owner in self._owners.items():
            if path in owned.parents:
                msg = f"Destination '{path}' would shadow file '{owned}' of artifact '{owner}'"
                raise PathConflictError(msg, artifact=name)
        for directory in self._directories:
            if directory == path or path in directory.parents:
                msg = f"Destination '{path}' collides with declared directory '{directory}'"
                raise PathConflictError(msg, artifact=name)

    # -- inspection ----------------------------------------------------------

    def artifacts(self) -> list[FixtureArtifact]:
        return list(self._artifacts.values())

    def get(self, name: str) -> FixtureArtifact:
        return self._artifacts[name]

    def owner_of(self, path: str | PurePosixPath) -> str | None:
        return self._owners.get(PurePosixPath(path))

    @property
    def directories(self) -> list[PurePosixPath]:
        return list(self._directories)

    def __len__(self) -> int:
        return len(self._artifacts)

    def __contains__(self, name: object) -> bool:
        return name in self._artifacts

    # -- output --------------------------------------------------------------

    def materialize(self, root: Path) -> int:
        """Write every artifact copy under *root*; return the number of files written."""
        written = 0
        for directory in self._directories:
            (root / directory).mkdir(parents=True, exist_ok=True)

        for artifact in self._artifacts.values():
            for dest in artifact.destinations:
                target = root / dest
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(artifact.data)
                if artifact.kind is ArtifactKind.PRIVATE_KEY:
                    os.chmod(target, _PRIVATE_MODE)
                written += 1

        log.info(
            "Materialized %d files for %d artifacts under %s",
            written,
            len(self._artifacts),
            root,
        )
        return written

    def verify(self, root: Path) -> None:
        """Check that every destination under *root* holds its artifact's bytes.

        Raises
        ------
        PathConflictError
            If a copy is missing or differs from the source bytes.

        """
        for artifact in self._artifacts.values():
            for dest in artifact.destinations:
                target = root / dest
                try:
                    data = target.read_bytes()
                except FileNotFoundError:
                    msg = f"Copy '{dest}' is missing"
                    raise PathConflictError(msg, artifact=artifact.name) from None
                if data != artifact.data:
                    msg = f"Copy '{dest}' differs from the artifact source bytes"
                    raise PathConflictError(msg, artifact=artifact.name)

        for directory in self._directories:
            if not (root / directory).is_dir():
                msg = f"Declared directory '{directory}' is missing"
                raise PathConflictError(msg)

        log.debug("Verified byte identity of %d artifacts", len(self._artifacts))
