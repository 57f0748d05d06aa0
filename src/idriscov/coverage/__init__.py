"""Pragmatic branch coverage for Idris2 programs.

This package provides:
- Case-tree dump parsing and branch classification
- Runtime identifier mangling (swappable scheme)
- Chez profiler artifact parsing and hit attribution
- OR-merge across test runs
- Exclusion-aware high-impact targets and structured summaries

Usage:
    from idriscov.coverage import analyze_static, compute_coverage, build_summary

    static = analyze_static(dump_text)
    coverage = compute_coverage(static, [RunArtifacts("run-1", html, scheme_src)])
    summary = build_summary(coverage)
"""

from idriscov.coverage.dumpcases import (
    build_static_analysis,
    classify_crash_message,
    parse_dump,
    parse_dump_line,
)
from idriscov.coverage.exclusions import (
    ExclusionPattern,
    ExclusionSet,
    build_exclusions,
    detect_leaks,
    suggest_pattern,
)
from idriscov.coverage.mangle import ManglingScheme, get_scheme, mangle
from idriscov.coverage.matcher import (
    FunctionMatch,
    MatchStatus,
    hits_from_matches,
    match_function,
    match_functions,
)
from idriscov.coverage.merge import (
    aggregated_coverage_percent,
    merge,
    merge_branch_hits,
    merge_runs,
)
from idriscov.coverage.models import (
    AggregatedCoverage,
    BranchClass,
    BranchHit,
    BranchId,
    BranchKind,
    ClassifiedBranch,
    CompiledFunction,
    CrashKind,
    CrashReason,
    StaticBranchAnalysis,
    TestRunHits,
)
from idriscov.coverage.pipeline import (
    RunAnalysis,
    RunArtifacts,
    analyze_run,
    analyze_runs,
    analyze_static,
    compute_coverage,
    read_artifact,
)
from idriscov.coverage.profiler import ProfileData, parse_profile
from idriscov.coverage.report import build_static_summary, build_summary, build_text_summary
from idriscov.coverage.targets import Target, rank_targets

__all__ = [
    # Models
    "AggregatedCoverage",
    "BranchClass",
    "BranchHit",
    "BranchId",
    "BranchKind",
    "ClassifiedBranch",
    "CompiledFunction",
    "CrashKind",
    "CrashReason",
    "StaticBranchAnalysis",
    "TestRunHits",
    # Parsing
    "build_static_analysis",
    "classify_crash_message",
    "parse_dump",
    "parse_dump_line",
    "ProfileData",
    "parse_profile",
    # Mangling / matching
    "ManglingScheme",
    "get_scheme",
    "mangle",
    "FunctionMatch",
    "MatchStatus",
    "hits_from_matches",
    "match_function",
    "match_functions",
    # Merge
    "aggregated_coverage_percent",
    "merge",
    "merge_branch_hits",
    "merge_runs",
    # Exclusions / targets
    "ExclusionPattern",
    "ExclusionSet",
    "build_exclusions",
    "detect_leaks",
    "suggest_pattern",
    "Target",
    "rank_targets",
    # Pipeline
    "RunAnalysis",
    "RunArtifacts",
    "analyze_run",
    "analyze_runs",
    "analyze_static",
    "compute_coverage",
    "read_artifact",
    # Report
    "build_static_summary",
    "build_summary",
    "build_text_summary",
]
