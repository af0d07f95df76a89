"""Error taxonomy for fixture generation.

Every error is fatal to a generation run: fixture generation failures
are deterministic planning or configuration bugs, never transient
conditions, so nothing here is retried.  All errors derive from
:class:`PKIForgeError`, which carries a human-readable ``detail`` and
the logical ``artifact`` name the failure belongs to (filled in by the
generator when the raising component does not know it).
"""

from __future__ import annotations


class PKIForgeError(Exception):
    """Base class for all fixture generation failures.

    Parameters
    ----------
    detail:
        Human-readable description of the failure, naming the
        violated invariant.
    artifact:
        Logical name of the fixture artifact being produced, if known.

    """

    def __init__(self, detail: str, *, artifact: str | None = None) -> None:
        self.detail = detail
        self.artifact = artifact
        super().__init__(detail)

    def __str__(self) -> str:
        if self.artifact:
            return f"{self.artifact}: {self.detail}"
        return self.detail


class KeyGenerationError(PKIForgeError):
    """The key provider could not produce a key pair."""


class UnknownProfileError(PKIForgeError):
    """A profile name is not registered in the catalog."""


class ProfileApplicationError(PKIForgeError):
    """A profile cannot be applied to the requested key or certificate."""


class SigningError(PKIForgeError):
    """Signing failed or the result does not verify against the issuer."""


class DuplicateSerialError(PKIForgeError):
    """A serial number was recorded twice for the same issuer."""


class UnknownSerialError(PKIForgeError):
    """A serial number has no entry in the revocation registry."""


class AlreadyRevokedError(PKIForgeError):
    """A serial number was revoked twice."""


class PathConflictError(PKIForgeError):
    """Two artifacts share a destination, or copies of one diverge."""


class PlanError(PKIForgeError):
    """The fixture plan is internally inconsistent."""
