"""End-to-end coverage computation over already-produced artifacts.

dump text -> StaticBranchAnalysis (once, read-only)
per run:   profiler artifacts -> ProfileData -> matches -> TestRunHits
all runs:  OR-merge -> AggregatedCoverage

Runs are independent and may be matched in parallel; merging is
order-independent, so the result does not depend on completion order.
"""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

import structlog

from idriscov.core.errors import ArtifactError
from idriscov.core.logging import clear_run_id, set_run_id
from idriscov.coverage.dumpcases import build_static_analysis, parse_dump
from idriscov.coverage.mangle import ManglingScheme
from idriscov.coverage.matcher import FunctionMatch, hits_from_matches, match_functions
from idriscov.coverage.merge import merge_runs
from idriscov.coverage.models import AggregatedCoverage, StaticBranchAnalysis, TestRunHits
from idriscov.coverage.profiler import parse_profile

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class RunArtifacts:
    """Contents of one test run's profiler outputs."""

    run_id: str
    annotated: str
    definitions: str


@dataclass(frozen=True, slots=True)
class RunAnalysis:
    hits: TestRunHits
    matches: tuple[FunctionMatch, ...]

    @property
    def unmapped(self) -> int:
        return sum(1 for m in self.matches if not m.matched)


def read_artifact(path: Path, kind: str) -> str:
    """Read an artifact file.

    Raises:
        ArtifactError: Missing or unreadable file.
    """
    if not path.exists():
        raise ArtifactError.missing(kind, str(path))
    try:
        return path.read_text(errors="replace")
    except OSError as e:
        raise ArtifactError.unreadable(kind, str(path), str(e)) from e


def analyze_static(dump_text: str) -> StaticBranchAnalysis:
    """Parse and classify a dump.

    Raises:
        ArtifactError: The dump holds no case trees at all.
    """
    functions = parse_dump(dump_text)
    if not functions:
        raise ArtifactError.empty("dumpcases", "no function definitions found")
    static = build_static_analysis(functions)
    logger.info(
        "static_analysis_done",
        functions=len(static.functions),
        branches=len(static.branches),
        canonical=static.canonical_total,
    )
    return static


def analyze_run(
    artifacts: RunArtifacts,
    static: StaticBranchAnalysis,
    *,
    scheme: ManglingScheme | None = None,
) -> RunAnalysis:
    """Match one run's profile against the static analysis.

    Raises:
        ArtifactError: The definitions artifact defines nothing.
    """
    set_run_id(artifacts.run_id)
    try:
        profile = parse_profile(artifacts.annotated, artifacts.definitions)
        if not profile.definitions:
            raise ArtifactError.empty(
                "definitions", f"no (define ...) forms in run {artifacts.run_id}"
            )
        matches = match_functions(static, profile, scheme=scheme)
        hits = hits_from_matches(artifacts.run_id, matches)
        logger.info(
            "run_matched",
            definitions=len(profile.definitions),
            hits=len(hits.hits),
            unmapped=len(hits.unmapped_functions),
        )
        return RunAnalysis(hits=hits, matches=tuple(matches))
    finally:
        clear_run_id()


def analyze_runs(
    static: StaticBranchAnalysis,
    runs: Sequence[RunArtifacts],
    *,
    scheme: ManglingScheme | None = None,
    max_workers: int = 1,
) -> list[RunAnalysis]:
    """Analyze runs, in parallel when max_workers > 1. Results keep input order."""
    if max_workers <= 1 or len(runs) <= 1:
        return [analyze_run(r, static, scheme=scheme) for r in runs]
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(lambda r: analyze_run(r, static, scheme=scheme), runs))


def compute_coverage(
    static: StaticBranchAnalysis,
    runs: Sequence[RunArtifacts],
    *,
    scheme: ManglingScheme | None = None,
    max_workers: int = 1,
) -> AggregatedCoverage:
    """Analyze every run and OR-merge the hits."""
    analyses = analyze_runs(static, runs, scheme=scheme, max_workers=max_workers)
    return merge_runs(static, (a.hits for a in analyses))
