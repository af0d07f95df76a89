"""The ``plan`` subcommand."""

from __future__ import annotations

import sys


def run_plan(settings, args) -> None:  # noqa: ARG001
    """Print every artifact of the default plan with its destinations."""
    from pkiforge.orchestrator import FixtureGenerator

    result = FixtureGenerator(settings).build()
    for artifact in result.planner.artifacts():
        destinations = ", ".join(str(d) for d in artifact.destinations)
        print(f"{artifact.name:<28} {artifact.kind.value:<12} {destinations}", file=sys.stdout)  # noqa: T201
    for directory in result.planner.directories:
        print(f"{'(directory)':<28} {'':<12} {directory}/", file=sys.stdout)  # noqa: T201
