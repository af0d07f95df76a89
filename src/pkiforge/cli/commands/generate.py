"""The ``generate`` subcommand."""

from __future__ import annotations

import logging
import sys

log = logging.getLogger(__name__)


def run_generate(settings, args) -> None:
    """Generate and publish the fixture tree."""
    from pkiforge.orchestrator import FixtureGenerator

    output = getattr(args, "output", None) or settings.output_dir
    result = FixtureGenerator(settings).run(output)

    files = sum(len(a.destinations) for a in result.planner.artifacts())
    print(  # noqa: T201
        f"Generated {len(result.certificates)} certificates, "
        f"{len(result.authorities)} authorities and {files} files in {output}",
        file=sys.stdout,
    )
