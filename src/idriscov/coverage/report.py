"""Structured coverage report generation.

Output schema for build_summary:
{
    "summary": {
        "functions": int,
        "canonical_total": int,
        "canonical_covered": int,
        "coverage_percent": float,
        "bugs_total": int,
        "unknown_total": int,
        "excluded_total": int,
        "excluded_breakdown": {"no_clauses": int, "optimizer_artifact": int,
                               "compiler_generated": int},
        "runs": int,
        "unmapped_functions": int
    },
    "runs": [str, ...],
    "high_impact_targets": [
        {"funcName": str, "moduleName": str, "uncovered": int, "canonical": int,
         "bugs": int, "unknown": int},
        ...
    ]
}

build_static_summary has the same shape without the covered/run fields.
"""

from typing import Any

from idriscov.coverage.models import AggregatedCoverage, StaticBranchAnalysis
from idriscov.coverage.targets import Target


def _target_dict(target: Target) -> dict[str, Any]:
    return {
        "funcName": target.full_name,
        "moduleName": target.module_name,
        "uncovered": target.uncovered,
        "canonical": target.canonical,
        "bugs": target.bugs,
        "unknown": target.unknown,
    }


def _static_counts(static: StaticBranchAnalysis) -> dict[str, Any]:
    return {
        "functions": len(static.functions),
        "canonical_total": static.canonical_total,
        "bugs_total": static.bugs_total,
        "unknown_total": static.unknown_total,
        "excluded_total": static.excluded_total,
        "excluded_breakdown": {
            "no_clauses": static.no_clauses_total,
            "optimizer_artifact": static.optimizer_artifact_total,
            "compiler_generated": static.compiler_generated_total,
        },
    }


def build_static_summary(
    static: StaticBranchAnalysis,
    targets: list[Target] | None = None,
) -> dict[str, Any]:
    """Summary of a dump with no runtime data."""
    result: dict[str, Any] = {"summary": _static_counts(static)}
    if targets is not None:
        result["high_impact_targets"] = [_target_dict(t) for t in targets]
    return result


def build_summary(
    coverage: AggregatedCoverage,
    targets: list[Target] | None = None,
) -> dict[str, Any]:
    """Build a structured summary suitable for JSON serialization.

    Args:
        coverage: The aggregated coverage to summarize.
        targets: Ranked targets to include. None omits the section.
    """
    summary = _static_counts(coverage.static)
    summary.update(
        {
            "canonical_covered": coverage.canonical_covered,
            "coverage_percent": round(coverage.coverage_percent, 2),
            "runs": len(coverage.runs),
            "unmapped_functions": len(coverage.unmapped_functions),
        }
    )
    result: dict[str, Any] = {"summary": summary, "runs": list(coverage.run_ids)}
    if targets is not None:
        result["high_impact_targets"] = [_target_dict(t) for t in targets]
    return result


def build_text_summary(source: AggregatedCoverage | StaticBranchAnalysis) -> str:
    """One-line summary for display contexts."""
    if isinstance(source, StaticBranchAnalysis):
        if not source.functions:
            return "No case trees"
        return (
            f"Branches: {source.canonical_total} canonical, "
            f"{source.excluded_total} excluded, {source.bugs_total} unhandled input, "
            f"{source.unknown_total} unknown"
        )

    text = (
        f"Coverage: {source.coverage_percent:.1f}% "
        f"({source.canonical_covered}/{source.canonical_total} canonical branches)"
    )
    if source.bugs_total or source.unknown_total:
        text += f", {source.bugs_total} unhandled input, {source.unknown_total} unknown"
    return text
