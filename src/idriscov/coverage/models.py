"""Branch-level coverage data model.

Function-centric model: every compiled function contributes an ordered list
of classified branches, runtime artifacts contribute branch hits, and the
aggregate is recomputed from scratch on every invocation.

Only CANONICAL branches form the coverage denominator. Branches the compiler
proved impossible (no clauses), optimiser fallbacks and compiler-generated
code are dropped from both sides of the ratio; unhandled-input and unknown
crashes stay in the denominator and are also counted separately for triage.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from enum import Enum

import structlog

logger = structlog.get_logger()

# =============================================================================
# Classification
# =============================================================================


class CrashKind(Enum):
    """Why the compiler inserted a CRASH fallback."""

    NO_CLAUSES = "no_clauses"
    UNHANDLED_INPUT = "unhandled_input"
    OPTIMIZER_ARTIFACT = "optimizer_artifact"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class CrashReason:
    """Classified CRASH message. UNKNOWN keeps the original text verbatim."""

    kind: CrashKind
    message: str = ""

    @classmethod
    def unknown(cls, message: str) -> CrashReason:
        return cls(CrashKind.UNKNOWN, message)


NO_CLAUSES = CrashReason(CrashKind.NO_CLAUSES)
UNHANDLED_INPUT = CrashReason(CrashKind.UNHANDLED_INPUT)
OPTIMIZER_ARTIFACT = CrashReason(CrashKind.OPTIMIZER_ARTIFACT)


class BranchKind(Enum):
    """Semantic class of a single branch."""

    CANONICAL = "canonical"
    EXCLUDED_NO_CLAUSES = "excluded_no_clauses"
    BUG_UNHANDLED_INPUT = "bug_unhandled_input"
    OPTIMIZER_ARTIFACT = "optimizer_artifact"
    UNKNOWN_CRASH = "unknown_crash"
    COMPILER_GENERATED = "compiler_generated"


@dataclass(frozen=True, slots=True)
class BranchClass:
    """Branch classification; UNKNOWN_CRASH carries the crash message."""

    kind: BranchKind
    message: str = ""

    @classmethod
    def from_crash(cls, reason: CrashReason) -> BranchClass:
        """Map a fallback's crash reason onto its branch class."""
        match reason.kind:
            case CrashKind.NO_CLAUSES:
                return cls(BranchKind.EXCLUDED_NO_CLAUSES)
            case CrashKind.UNHANDLED_INPUT:
                return cls(BranchKind.BUG_UNHANDLED_INPUT)
            case CrashKind.OPTIMIZER_ARTIFACT:
                return cls(BranchKind.OPTIMIZER_ARTIFACT)
            case CrashKind.UNKNOWN:
                return cls(BranchKind.UNKNOWN_CRASH, reason.message)

    @property
    def counts_in_denominator(self) -> bool:
        return self.kind is BranchKind.CANONICAL

    @property
    def is_excluded(self) -> bool:
        """Dropped from numerator and denominator."""
        return self.kind in _EXCLUDED_KINDS

    @property
    def is_bug(self) -> bool:
        return self.kind is BranchKind.BUG_UNHANDLED_INPUT

    @property
    def is_unknown(self) -> bool:
        return self.kind is BranchKind.UNKNOWN_CRASH


CANONICAL = BranchClass(BranchKind.CANONICAL)
COMPILER_GENERATED = BranchClass(BranchKind.COMPILER_GENERATED)

_EXCLUDED_KINDS = frozenset(
    {
        BranchKind.EXCLUDED_NO_CLAUSES,
        BranchKind.OPTIMIZER_ARTIFACT,
        BranchKind.COMPILER_GENERATED,
    }
)


# =============================================================================
# Static side
# =============================================================================


@dataclass(frozen=True, slots=True, order=True)
class BranchId:
    """Stable branch key, ordered field by field."""

    module_name: str
    func_name: str
    case_index: int
    branch_index: int

    @property
    def full_name(self) -> str:
        return f"{self.module_name}.{self.func_name}" if self.module_name else self.func_name


@dataclass(frozen=True, slots=True)
class ClassifiedBranch:
    branch_id: BranchId
    branch_class: BranchClass
    pattern: str


@dataclass(frozen=True, slots=True)
class CompiledFunction:
    """One function from the case-tree dump with its branches in BranchId order."""

    full_name: str
    module_name: str
    func_name: str
    branches: tuple[ClassifiedBranch, ...] = ()
    has_default_case: bool = False

    def _count(self, kind: BranchKind) -> int:
        return sum(1 for b in self.branches if b.branch_class.kind is kind)

    @property
    def total_branches(self) -> int:
        return len(self.branches)

    @property
    def total_canonical(self) -> int:
        return self._count(BranchKind.CANONICAL)

    @property
    def total_excluded(self) -> int:
        return sum(1 for b in self.branches if b.branch_class.is_excluded)

    @property
    def total_bugs(self) -> int:
        return self._count(BranchKind.BUG_UNHANDLED_INPUT)

    @property
    def total_unknown(self) -> int:
        return self._count(BranchKind.UNKNOWN_CRASH)

    @property
    def is_compiler_generated(self) -> bool:
        return any(b.branch_class.kind is BranchKind.COMPILER_GENERATED for b in self.branches)

    @property
    def canonical_branches(self) -> tuple[ClassifiedBranch, ...]:
        return tuple(b for b in self.branches if b.branch_class.counts_in_denominator)


def _disambiguate(functions: Iterable[CompiledFunction]) -> tuple[CompiledFunction, ...]:
    """Keep BranchIds unique across a snapshot.

    A dump that repeats a name, or two names that split to the same
    (module, function) pair such as ``.x`` and ``x``, would otherwise share
    BranchIds and a hit on one would cover the other. Later functions are
    moved to the next free case index.
    """
    used: dict[tuple[str, str], set[int]] = {}
    result: list[CompiledFunction] = []
    for func in functions:
        key = (func.module_name, func.func_name)
        taken = used.setdefault(key, set())
        own = {b.branch_id.case_index for b in func.branches}
        if own & taken:
            shift = max(taken) + 1 - min(own)
            logger.warning(
                "duplicate_branch_ids",
                function=func.full_name,
                case_index_shift=shift,
            )
            func = replace(
                func,
                branches=tuple(
                    replace(
                        b,
                        branch_id=replace(
                            b.branch_id, case_index=b.branch_id.case_index + shift
                        ),
                    )
                    for b in func.branches
                ),
            )
            own = {b.branch_id.case_index for b in func.branches}
        taken.update(own)
        result.append(func)
    return tuple(result)


@dataclass(frozen=True, slots=True)
class StaticBranchAnalysis:
    """Flattened, read-only view over every function of one dump.

    Build with from_functions(); the flat branch list and canonical total
    are computed once there.
    """

    functions: tuple[CompiledFunction, ...]
    branches: tuple[ClassifiedBranch, ...]
    canonical_total: int

    @classmethod
    def from_functions(cls, functions: Iterable[CompiledFunction]) -> StaticBranchAnalysis:
        funcs = _disambiguate(functions)
        branches = tuple(b for f in funcs for b in f.branches)
        canonical = sum(1 for b in branches if b.branch_class.counts_in_denominator)
        return cls(functions=funcs, branches=branches, canonical_total=canonical)

    def _count(self, kind: BranchKind) -> int:
        return sum(1 for b in self.branches if b.branch_class.kind is kind)

    @property
    def bugs_total(self) -> int:
        return self._count(BranchKind.BUG_UNHANDLED_INPUT)

    @property
    def unknown_total(self) -> int:
        return self._count(BranchKind.UNKNOWN_CRASH)

    @property
    def excluded_total(self) -> int:
        return sum(1 for b in self.branches if b.branch_class.is_excluded)

    @property
    def no_clauses_total(self) -> int:
        return self._count(BranchKind.EXCLUDED_NO_CLAUSES)

    @property
    def optimizer_artifact_total(self) -> int:
        return self._count(BranchKind.OPTIMIZER_ARTIFACT)

    @property
    def compiler_generated_total(self) -> int:
        return self._count(BranchKind.COMPILER_GENERATED)

    def get_function(self, full_name: str) -> CompiledFunction | None:
        for func in self.functions:
            if func.full_name == full_name:
                return func
        return None


# =============================================================================
# Runtime side
# =============================================================================


@dataclass(frozen=True, slots=True)
class BranchHit:
    branch_id: BranchId
    hit_count: int


@dataclass(frozen=True, slots=True)
class TestRunHits:
    """Branch hits observed in one test execution."""

    __test__ = False  # not a pytest class

    run_id: str
    hits: tuple[BranchHit, ...] = ()
    unmapped_functions: frozenset[str] = field(default_factory=frozenset)


def aggregated_coverage_percent(covered: int, total: int) -> float:
    """Coverage percentage; an empty denominator is fully covered."""
    if total == 0:
        return 100.0
    return covered / total * 100.0


@dataclass(frozen=True, slots=True)
class AggregatedCoverage:
    """Terminal coverage value for one invocation.

    Built by merge_runs(); never updated in place.
    """

    static: StaticBranchAnalysis
    runs: tuple[TestRunHits, ...]
    covered: frozenset[BranchId]
    canonical_total: int
    canonical_covered: int
    bugs_total: int
    unknown_total: int

    @property
    def coverage_percent(self) -> float:
        return aggregated_coverage_percent(self.canonical_covered, self.canonical_total)

    @property
    def run_ids(self) -> tuple[str, ...]:
        return tuple(run.run_id for run in self.runs)

    @property
    def unmapped_functions(self) -> frozenset[str]:
        """Functions no run could map to a runtime definition."""
        if not self.runs:
            return frozenset()
        return frozenset.intersection(*(run.unmapped_functions for run in self.runs))

    def covered_in(self, function: CompiledFunction) -> int:
        """Canonical branches of one function present in the covered set."""
        return sum(1 for b in function.canonical_branches if b.branch_id in self.covered)
