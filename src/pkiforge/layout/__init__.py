"""Fixture directory layout: artifact placement and CA hash links."""

from pkiforge.layout.planner import FixtureArtifact, LayoutPlanner
from pkiforge.layout.rehash import rehash_directory

__all__ = ["FixtureArtifact", "LayoutPlanner", "rehash_directory"]
