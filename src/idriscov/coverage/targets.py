"""High-impact test targets.

Ranks functions by how much actionable work they carry: uncovered
canonical branches plus unhandled-input and unknown fallbacks. Exclusions
are applied here and only here.
"""

from __future__ import annotations

from dataclasses import dataclass

from idriscov.coverage.exclusions import ExclusionSet
from idriscov.coverage.models import AggregatedCoverage, StaticBranchAnalysis


@dataclass(frozen=True, slots=True)
class Target:
    full_name: str
    module_name: str
    func_name: str
    canonical: int
    covered: int
    bugs: int
    unknown: int

    @property
    def uncovered(self) -> int:
        return self.canonical - self.covered

    @property
    def impact(self) -> int:
        return self.uncovered + self.bugs + self.unknown


def rank_targets(
    source: AggregatedCoverage | StaticBranchAnalysis,
    exclusions: ExclusionSet | None = None,
    *,
    top: int | None = None,
) -> list[Target]:
    """Functions with actionable branches, highest impact first.

    Args:
        source: Aggregated coverage, or a static analysis when no run was
            recorded (every canonical branch then counts as uncovered).
        exclusions: Names to hide. Compiler-generated functions are never
            targets regardless of exclusions.
        top: Keep at most this many targets. None = all.

    Returns:
        Targets ordered by impact descending, then full name.
    """
    if isinstance(source, AggregatedCoverage):
        static = source.static
        coverage: AggregatedCoverage | None = source
    else:
        static = source
        coverage = None

    targets: list[Target] = []
    for func in static.functions:
        if func.is_compiler_generated:
            continue
        if exclusions is not None and exclusions.is_excluded(func.full_name):
            continue
        target = Target(
            full_name=func.full_name,
            module_name=func.module_name,
            func_name=func.func_name,
            canonical=func.total_canonical,
            covered=coverage.covered_in(func) if coverage is not None else 0,
            bugs=func.total_bugs,
            unknown=func.total_unknown,
        )
        if target.impact > 0:
            targets.append(target)

    targets.sort(key=lambda t: (-t.impact, t.full_name))
    if top is not None:
        targets = targets[:top]
    return targets
