"""Chez Scheme profiler artifact parser.

Two inputs, both plain text:

- The annotated profile (HTML from the Chez profiler) wraps executed
  sub-expressions in elements carrying ``title="line L char C count N"``.
  The surrounding markup is ignored; only the title attributes matter.
- The compiled Scheme source, where each top-level definition starts a
  line with ``(define <runtimeId> ...)``. Its 1-based line numbers are the
  same line numbers the annotated profile refers to.

Markers with a missing or non-numeric field are dropped and counted; a
noisy profile never aborts parsing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import structlog

logger = structlog.get_logger()

_TITLE_RE = re.compile(r'title="([^"]*)"')
_FIELD_RE = re.compile(r"\b(line|char|count)\s+(\S+)")
_DEFINE_RE = re.compile(r"^\s*\(define\s+([^\s()]+)")


@dataclass(frozen=True, slots=True)
class ProfileMarker:
    line: int
    char: int
    count: int


@dataclass(frozen=True, slots=True)
class LineHits:
    """Markers on one source line: how many ran at least once, out of how many."""

    executed: int
    total: int


@dataclass(frozen=True, slots=True)
class Definition:
    runtime_id: str
    line: int


@dataclass(slots=True)
class ProfileData:
    """Parsed profiler output for one test run."""

    line_hits: dict[int, LineHits] = field(default_factory=dict)
    definitions: list[Definition] = field(default_factory=list)
    line_count: int = 0  # lines in the definitions artifact (end of the last range)
    malformed_markers: int = 0


def _parse_title(title: str) -> ProfileMarker | None:
    fields: dict[str, int] = {}
    for name, raw in _FIELD_RE.findall(title):
        try:
            fields[name] = int(raw)
        except ValueError:
            return None
    if len(fields) != 3:
        return None
    return ProfileMarker(line=fields["line"], char=fields["char"], count=fields["count"])


def parse_markers(annotated: str) -> tuple[list[ProfileMarker], int]:
    """Every well-formed marker in document order, plus the malformed count.

    Titles that mention none of the marker fields are unrelated markup and
    are not counted as malformed.
    """
    markers: list[ProfileMarker] = []
    malformed = 0
    for match in _TITLE_RE.finditer(annotated):
        title = match.group(1)
        marker = _parse_title(title)
        if marker is not None:
            markers.append(marker)
        elif _FIELD_RE.search(title):
            malformed += 1
    return markers, malformed


def reduce_by_line(markers: list[ProfileMarker]) -> dict[int, LineHits]:
    """Fold markers into per-line (executed, total) pairs."""
    executed: dict[int, int] = {}
    total: dict[int, int] = {}
    for m in markers:
        total[m.line] = total.get(m.line, 0) + 1
        if m.count > 0:
            executed[m.line] = executed.get(m.line, 0) + 1
    return {
        line: LineHits(executed=executed.get(line, 0), total=count)
        for line, count in sorted(total.items())
    }


def parse_definitions(source: str) -> list[Definition]:
    """Top-level ``(define <id> ...)`` forms in file order."""
    definitions: list[Definition] = []
    for line_num, line in enumerate(source.splitlines(), start=1):
        match = _DEFINE_RE.match(line)
        if match:
            definitions.append(Definition(runtime_id=match.group(1), line=line_num))
    return definitions


def parse_profile(annotated: str, definitions_source: str) -> ProfileData:
    """Parse both profiler artifacts of one run."""
    markers, malformed = parse_markers(annotated)
    if malformed:
        logger.debug("profile_markers_dropped", malformed=malformed, kept=len(markers))
    return ProfileData(
        line_hits=reduce_by_line(markers),
        definitions=parse_definitions(definitions_source),
        line_count=len(definitions_source.splitlines()),
        malformed_markers=malformed,
    )
