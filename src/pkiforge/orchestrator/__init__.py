"""Fixture plan evaluation and atomic publication."""

from pkiforge.orchestrator.generator import FixtureGenerator, GenerationResult
from pkiforge.orchestrator.plan import (
    AuthoritySpec,
    CertificateSpec,
    FixturePlan,
    KeySpec,
    default_plan,
)

__all__ = [
    "AuthoritySpec",
    "CertificateSpec",
    "FixtureGenerator",
    "FixturePlan",
    "GenerationResult",
    "KeySpec",
    "default_plan",
]
