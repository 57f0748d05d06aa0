"""Attribute runtime profile hits to statically known functions.

For each compiled function the expected runtime identifier is computed
with the configured mangling scheme and looked up among the profiled
definitions:

1. an exact match wins;
2. otherwise a single definition ending with the expected identifier;
3. otherwise the function is UNKNOWN_MAPPING and contributes nothing.

Infix matches are never considered: two unrelated mangled names can share
an infix, and attributing one function's hits to another is worse than
reporting it as unmapped.

The matched definition owns every profiled line from its own line up to the
next definition (or end of file). Branch-level hits are not observable in
the profile, so the executed branch count is approximated by scaling the
canonical branch count with the executed/total marker ratio of that range.
"""

from __future__ import annotations

import bisect
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

import structlog

from idriscov.coverage.mangle import ManglingScheme, mangle
from idriscov.coverage.models import (
    BranchHit,
    CompiledFunction,
    StaticBranchAnalysis,
    TestRunHits,
)
from idriscov.coverage.profiler import Definition, ProfileData

logger = structlog.get_logger()


class MatchStatus(Enum):
    EXACT = "exact"
    SUFFIX = "suffix"
    UNKNOWN_MAPPING = "unknown_mapping"


@dataclass(frozen=True, slots=True)
class FunctionMatch:
    """Result of mapping one function onto the profiled definitions."""

    function: CompiledFunction
    expected_id: str
    status: MatchStatus
    definition: Definition | None = None
    range_end: int | None = None  # exclusive
    executed: int = 0
    total: int = 0

    @property
    def matched(self) -> bool:
        return self.status is not MatchStatus.UNKNOWN_MAPPING

    @property
    def canonical_count(self) -> int:
        return self.function.total_canonical

    @property
    def approximate_executed(self) -> int:
        """Canonical branches assumed executed; an approximation, rounded down."""
        if not self.matched or self.total == 0:
            return 0
        return self.canonical_count * self.executed // self.total


class ProfileIndex:
    """Lookup structures over one ProfileData, built once per run.

    Exact lookups go through a dict, suffix lookups through the sorted
    reversed identifiers (a suffix of the id is a prefix of its reverse),
    and range sums through prefix sums over the sorted profiled lines.
    """

    def __init__(self, profile: ProfileData) -> None:
        self.profile = profile
        self._by_id: dict[str, Definition] = {}
        for d in profile.definitions:
            self._by_id.setdefault(d.runtime_id, d)
        reversed_ids = sorted((d.runtime_id[::-1], i) for i, d in enumerate(profile.definitions))
        self._reversed_keys = [r for r, _ in reversed_ids]
        self._reversed_defs = [profile.definitions[i] for _, i in reversed_ids]
        self._def_lines = sorted({d.line for d in profile.definitions})

        self._lines = sorted(profile.line_hits)
        self._executed_sums = [0]
        self._total_sums = [0]
        for line in self._lines:
            hits = profile.line_hits[line]
            self._executed_sums.append(self._executed_sums[-1] + hits.executed)
            self._total_sums.append(self._total_sums[-1] + hits.total)

    def exact(self, runtime_id: str) -> Definition | None:
        return self._by_id.get(runtime_id)

    def ending_with(self, suffix: str) -> list[Definition]:
        """Definitions whose identifier ends with suffix, in file order."""
        key = suffix[::-1]
        lo = bisect.bisect_left(self._reversed_keys, key)
        hi = lo
        while hi < len(self._reversed_keys) and self._reversed_keys[hi].startswith(key):
            hi += 1
        return sorted(self._reversed_defs[lo:hi], key=lambda d: d.line)

    def range_end(self, definition: Definition) -> int:
        """Smallest definition line after this one, or one past end of file."""
        idx = bisect.bisect_right(self._def_lines, definition.line)
        if idx < len(self._def_lines):
            return self._def_lines[idx]
        return max(self.profile.line_count, definition.line) + 1

    def sum_range(self, start: int, end: int) -> tuple[int, int]:
        """(executed, total) marker counts over lines in [start, end)."""
        lo = bisect.bisect_left(self._lines, start)
        hi = bisect.bisect_left(self._lines, end)
        return (
            self._executed_sums[hi] - self._executed_sums[lo],
            self._total_sums[hi] - self._total_sums[lo],
        )


def find_definition(
    expected_id: str, definitions: ProfileIndex | Iterable[Definition]
) -> tuple[Definition | None, MatchStatus]:
    """Locate the definition for expected_id: exact, else a unique suffix."""
    index = definitions if isinstance(definitions, ProfileIndex) else _index_of(definitions)
    exact = index.exact(expected_id)
    if exact is not None:
        return exact, MatchStatus.EXACT
    suffix_matches = index.ending_with(expected_id)
    if len(suffix_matches) == 1:
        return suffix_matches[0], MatchStatus.SUFFIX
    if len(suffix_matches) > 1:
        logger.debug(
            "ambiguous_suffix_match",
            expected=expected_id,
            candidates=[d.runtime_id for d in suffix_matches],
        )
    return None, MatchStatus.UNKNOWN_MAPPING


def _index_of(definitions: Iterable[Definition]) -> ProfileIndex:
    return ProfileIndex(ProfileData(definitions=list(definitions)))


def match_function(
    function: CompiledFunction,
    profile: ProfileData | ProfileIndex,
    *,
    scheme: ManglingScheme | None = None,
) -> FunctionMatch:
    """Map one function and sum the marker counts of its line range."""
    index = profile if isinstance(profile, ProfileIndex) else ProfileIndex(profile)
    expected = mangle(function.full_name, scheme)
    definition, status = find_definition(expected, index)
    if definition is None:
        return FunctionMatch(function=function, expected_id=expected, status=status)

    end = index.range_end(definition)
    executed, total = index.sum_range(definition.line, end)
    return FunctionMatch(
        function=function,
        expected_id=expected,
        status=status,
        definition=definition,
        range_end=end,
        executed=executed,
        total=total,
    )


def match_functions(
    static: StaticBranchAnalysis,
    profile: ProfileData,
    *,
    scheme: ManglingScheme | None = None,
) -> list[FunctionMatch]:
    """Map every function of the snapshot, in snapshot order."""
    index = ProfileIndex(profile)
    matches = [match_function(f, index, scheme=scheme) for f in static.functions]
    unmapped = sum(1 for m in matches if not m.matched)
    logger.debug("functions_matched", total=len(matches), unmapped=unmapped)
    return matches


def hits_from_matches(run_id: str, matches: Iterable[FunctionMatch]) -> TestRunHits:
    """Turn approximate per-function counts into branch hits for one run.

    The first approximate_executed canonical branches (BranchId order) of a
    matched function are reported hit, with the range's executed marker
    count as hit count. Unmatched functions are recorded by name.
    """
    hits: list[BranchHit] = []
    unmapped: set[str] = set()
    for m in matches:
        if not m.matched:
            unmapped.add(m.function.full_name)
            continue
        covered = sorted(m.function.canonical_branches, key=lambda b: b.branch_id)
        for branch in covered[: m.approximate_executed]:
            hits.append(BranchHit(branch_id=branch.branch_id, hit_count=m.executed))
    return TestRunHits(run_id=run_id, hits=tuple(hits), unmapped_functions=frozenset(unmapped))
