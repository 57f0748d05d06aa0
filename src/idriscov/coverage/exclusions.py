"""Exclusion patterns for the high-impact target list.

Two tiers:

Tier 0 (DEFAULT_PATTERNS): standard library namespaces and compiler-generated
    names. Applied unless ``exclusions.use_defaults`` is off.
Tier 1 (versioned files): ``base.txt`` plus ``<idris2 semver>.txt`` from the
    configured exclusions directory, for names that leak from one compiler
    release only.
Tier 2 (user patterns): from config or pattern files, one per line.

Pattern syntax: lines starting with ``#`` are comments, blank lines are
ignored. A ``*`` makes the pattern a prefix match on everything before it
(``Prelude.*``, ``{csegen:*}``); anything else must match the whole name.

Exclusions only hide names from the suggested test targets. They are applied
after classification and aggregation and never change coverage numbers.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from idriscov.core.errors import ConfigError
from idriscov.coverage.dumpcases import is_compiler_generated


@dataclass(frozen=True, slots=True)
class ExclusionPattern:
    pattern: str
    is_prefix: bool = False

    def matches(self, name: str) -> bool:
        if self.is_prefix:
            return name.startswith(self.pattern)
        return name == self.pattern

    @classmethod
    def parse(cls, text: str) -> ExclusionPattern | None:
        """Parse one pattern line; None for blanks and comments."""
        text = text.strip()
        if not text or text.startswith("#"):
            return None
        star = text.find("*")
        if star >= 0:
            return cls(text[:star], is_prefix=True)
        return cls(text)

    def __str__(self) -> str:
        return f"{self.pattern}*" if self.is_prefix else self.pattern


STDLIB_PREFIXES: tuple[str, ...] = (
    "Prelude.",
    "Data.",
    "System.",
    "Control.",
    "Decidable.",
    "Language.",
    "Debug.",
)

GENERATED_PREFIXES: tuple[str, ...] = ("{", "_builtin.", "prim__")

DEFAULT_PATTERNS: tuple[ExclusionPattern, ...] = tuple(
    ExclusionPattern(p, is_prefix=True) for p in (*GENERATED_PREFIXES, *STDLIB_PREFIXES)
)


@dataclass(frozen=True, slots=True)
class ExclusionSet:
    """Ordered, immutable collection of exclusion patterns."""

    patterns: tuple[ExclusionPattern, ...] = ()

    def is_excluded(self, name: str) -> bool:
        return any(p.matches(name) for p in self.patterns)

    def __iter__(self) -> Iterator[ExclusionPattern]:
        return iter(self.patterns)

    def __len__(self) -> int:
        return len(self.patterns)

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> ExclusionSet:
        parsed = (ExclusionPattern.parse(line) for line in lines)
        return cls(tuple(p for p in parsed if p is not None))

    def extend(self, other: Iterable[ExclusionPattern]) -> ExclusionSet:
        seen = set(self.patterns)
        merged = list(self.patterns)
        for p in other:
            if p not in seen:
                seen.add(p)
                merged.append(p)
        return ExclusionSet(tuple(merged))


def load_pattern_file(path: Path) -> ExclusionSet:
    """Read a pattern file.

    Raises:
        ConfigError: If the file does not exist or cannot be read.
    """
    if not path.exists():
        raise ConfigError.file_not_found(str(path))
    try:
        content = path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    return ExclusionSet.from_lines(content.splitlines())


BASE_PATTERN_FILE = "base.txt"


def load_versioned_patterns(directory: Path, version: str | None) -> ExclusionSet:
    """Read base.txt and <version>.txt from a pattern directory.

    Either file may be absent; a compiler release without its own file only
    gets the base patterns.
    """
    names = [BASE_PATTERN_FILE]
    if version:
        names.append(f"{version}.txt")
    result = ExclusionSet()
    for name in names:
        path = directory / name
        if path.exists():
            result = result.extend(load_pattern_file(path))
    return result


def build_exclusions(
    patterns: Iterable[str] = (),
    files: Iterable[Path] = (),
    *,
    use_defaults: bool = True,
    versioned: ExclusionSet | None = None,
) -> ExclusionSet:
    """Combine defaults, versioned patterns, pattern files and inline patterns, in that order."""
    result = ExclusionSet(DEFAULT_PATTERNS if use_defaults else ())
    if versioned is not None:
        result = result.extend(versioned)
    for path in files:
        result = result.extend(load_pattern_file(path))
    return result.extend(ExclusionSet.from_lines(patterns))


# =============================================================================
# Leak detection
# =============================================================================

_MACHINE_COUNTER_RE = re.compile(r"(\{\w+:)\d+")

# Prelude-level modules shipped with the compiler but not in the default list
LEAK_EXTRA_PREFIXES: tuple[str, ...] = ("Builtin.", "PrimIO.")


def is_type_constructor(name: str) -> bool:
    """Type constructors are dumped with a trailing dot, e.g. ``Main.Shape.``."""
    return len(name) > 1 and name.endswith(".")


def looks_like_leak(name: str) -> bool:
    """Name that should never be an actionable target.

    Covers stdlib namespaces, compiler-generated code and type constructors.
    """
    if is_compiler_generated(name) or is_type_constructor(name):
        return True
    return name.startswith((*GENERATED_PREFIXES, *STDLIB_PREFIXES, *LEAK_EXTRA_PREFIXES))


def detect_leaks(names: Iterable[str]) -> list[str]:
    """Sorted unique names that slipped past the exclusions."""
    return sorted({n for n in names if looks_like_leak(n)})


def suggest_pattern(name: str) -> str:
    """Normalise machine-name counters: ``{csegen:123}`` -> ``{csegen:*}``."""
    return _MACHINE_COUNTER_RE.sub(r"\1*", name)
