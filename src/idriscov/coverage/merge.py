"""Run aggregation with OR semantics.

Branch hits from any number of independent test runs are combined by set
union: a branch is covered if at least one run hit it. Hit counts are never
summed, so merging is commutative, associative and idempotent, and adding
runs can only raise coverage.

Totals (canonical, bugs, unknown) come from the static analysis alone and
do not depend on which runs were supplied.
"""

from collections.abc import Iterable

from idriscov.coverage.models import (
    AggregatedCoverage,
    BranchId,
    CompiledFunction,
    StaticBranchAnalysis,
    TestRunHits,
    aggregated_coverage_percent,
)

__all__ = [
    "aggregated_coverage_percent",
    "function_coverage_percent",
    "merge",
    "merge_branch_hits",
    "merge_runs",
]


def merge_branch_hits(runs: Iterable[TestRunHits]) -> frozenset[BranchId]:
    """Union of every BranchId hit at least once across runs."""
    return frozenset(
        hit.branch_id for run in runs for hit in run.hits if hit.hit_count > 0
    )


def merge_runs(static: StaticBranchAnalysis, runs: Iterable[TestRunHits]) -> AggregatedCoverage:
    """Aggregate runs against one static snapshot.

    Hits for BranchIds outside the snapshot are kept in the covered set but
    never reach canonical_covered, which only counts canonical branches of
    the snapshot.

    Args:
        static: The static analysis all runs were matched against.
        runs: Per-run hits, in any order.

    Returns:
        Fresh AggregatedCoverage.
    """
    runs_list = tuple(runs)
    covered = merge_branch_hits(runs_list)
    canonical_covered = sum(
        1
        for b in static.branches
        if b.branch_class.counts_in_denominator and b.branch_id in covered
    )
    return AggregatedCoverage(
        static=static,
        runs=runs_list,
        covered=covered,
        canonical_total=static.canonical_total,
        canonical_covered=canonical_covered,
        bugs_total=static.bugs_total,
        unknown_total=static.unknown_total,
    )


def merge(static: StaticBranchAnalysis, *runs: TestRunHits) -> AggregatedCoverage:
    """Convenience function to merge runs as varargs."""
    return merge_runs(static, runs)


def function_coverage_percent(coverage: AggregatedCoverage, function: CompiledFunction) -> float:
    """Per-function coverage; a function with no canonical branches is 100%."""
    return aggregated_coverage_percent(coverage.covered_in(function), function.total_canonical)
