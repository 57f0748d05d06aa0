"""Case-tree dump parser (`idris2 --dumpcases`).

Each definition is one line of the form::

    Main.safeHead = [{arg:0}]: (%case !{arg:0} [(%concase [cons] Prelude.Basics.:: Just 1 [{e:1}, {e:2}] !{e:1})] Just (CRASH "No clauses in Main.safeHead"))

The body is not parsed structurally. Reachable alternatives are found by
scanning for the ``%concase`` / ``%constcase`` tokens and the fallback by
scanning for ``(CRASH "``. Branch indices are minted constructor cases first,
then constant cases, then the single fallback.

Lines that do not look like a definition are skipped, never fatal: the dump
interleaves build messages and other noise.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

import structlog

from idriscov.coverage.models import (
    CANONICAL,
    COMPILER_GENERATED,
    NO_CLAUSES,
    OPTIMIZER_ARTIFACT,
    UNHANDLED_INPUT,
    BranchClass,
    BranchId,
    ClassifiedBranch,
    CompiledFunction,
    CrashReason,
    StaticBranchAnalysis,
)

logger = structlog.get_logger()

CONCASE_TOKEN = "%concase"
CONSTCASE_TOKEN = "%constcase"
CRASH_MARKER = '(CRASH "'

# Priority order matters: a message may contain more than one of these.
_CRASH_SUBSTRINGS: tuple[tuple[str, CrashReason], ...] = (
    ("No clauses in", NO_CLAUSES),
    ("Unhandled input for", UNHANDLED_INPUT),
    ("Nat case not covered", OPTIMIZER_ARTIFACT),
)

# Name prefixes of machine-generated definitions
_GENERATED_FULL_PREFIXES = ("_builtin.",)
_GENERATED_FUNC_PREFIXES = ("{", "prim__")

_PATTERN_TOKEN_RE = re.compile(r'"(?:[^"\\]|\\.)*"|\'(?:[^\'\\]|\\.)*\'|[^\s()\[\]]+')
_DEFINITION_SEP_RE = re.compile(r"\s*=\s*(?=\[)")


def classify_crash_message(message: str) -> CrashReason:
    """Classify a CRASH message. Total: unrecognised text is UNKNOWN, verbatim."""
    for needle, reason in _CRASH_SUBSTRINGS:
        if needle in message:
            return reason
    return CrashReason.unknown(message)


def split_full_name(full_name: str) -> tuple[str, str]:
    """Split on the last '.' that leaves a non-empty function name.

    Operator names keep their dots: ``Main..`` is (``Main``, ``.``) and
    ``Prelude.EqOrd.==`` is (``Prelude.EqOrd``, ``==``). No dot means an
    empty module.
    """
    idx = full_name.rfind(".", 0, len(full_name) - 1)
    if idx < 0:
        return "", full_name
    return full_name[:idx], full_name[idx + 1 :]


def is_compiler_generated(full_name: str) -> bool:
    """Machine names ({csegen:N}, {eta:N}), _builtin.* and prim__* primitives."""
    if full_name.startswith(_GENERATED_FULL_PREFIXES):
        return True
    _, func_name = split_full_name(full_name)
    return func_name.startswith(_GENERATED_FUNC_PREFIXES)


def _split_definition(line: str) -> tuple[str, str] | None:
    """Return (full_name, body) or None if the line is not a definition.

    The separator is the first ``=`` that opens the argument list
    (``= [`` or ``=[``), so operator names such as ``==`` survive and an
    ``=`` inside a string constant in the body is never taken. Lines with no
    argument list fall back to the first ``" = "``, then the first ``=``.
    """
    match = _DEFINITION_SEP_RE.search(line)
    if match is not None:
        name, body = line[: match.start()], line[match.end() :]
    elif (sep := line.find(" = ")) >= 0:
        name, body = line[:sep], line[sep + 3 :]
    else:
        sep = line.find("=")
        if sep < 0:
            return None
        name, body = line[:sep], line[sep + 1 :]
    name = name.strip()
    if not name:
        return None
    return name, body


def _find_token_patterns(body: str, token: str) -> list[str]:
    """Pattern text (constructor or constant) following each token occurrence."""
    patterns: list[str] = []
    start = 0
    while (idx := body.find(token, start)) >= 0:
        rest = body[idx + len(token) :].lstrip()
        # Constructor cases may carry a hint tag first, e.g. "[cons]"
        if rest.startswith("["):
            close = rest.find("]")
            if close >= 0:
                rest = rest[close + 1 :].lstrip()
        match = _PATTERN_TOKEN_RE.match(rest)
        patterns.append(match.group(0) if match else "")
        start = idx + len(token)
    return patterns


def extract_crash_message(body: str) -> str | None:
    """Message of the first ``(CRASH "...")`` fallback, or None if absent.

    An unterminated message runs to the end of the body.
    """
    idx = body.find(CRASH_MARKER)
    if idx < 0:
        return None
    chars: list[str] = []
    i = idx + len(CRASH_MARKER)
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            chars.append(body[i + 1])
            i += 2
            continue
        if ch == '"':
            return "".join(chars)
        chars.append(ch)
        i += 1
    return "".join(chars)


def parse_dump_line(line: str, *, case_index: int = 0) -> CompiledFunction | None:
    """Parse one dump line into a classified function, or None to skip it."""
    split = _split_definition(line)
    if split is None:
        return None
    full_name, body = split
    module_name, func_name = split_full_name(full_name)
    generated = is_compiler_generated(full_name)
    reachable_class = COMPILER_GENERATED if generated else CANONICAL

    patterns = _find_token_patterns(body, CONCASE_TOKEN) + _find_token_patterns(
        body, CONSTCASE_TOKEN
    )
    branches = [
        ClassifiedBranch(
            branch_id=BranchId(module_name, func_name, case_index, index),
            branch_class=reachable_class,
            pattern=pattern,
        )
        for index, pattern in enumerate(patterns)
    ]

    message = extract_crash_message(body)
    if message is not None:
        branches.append(
            ClassifiedBranch(
                branch_id=BranchId(module_name, func_name, case_index, len(branches)),
                branch_class=BranchClass.from_crash(classify_crash_message(message)),
                pattern=f'(CRASH "{message}")',
            )
        )

    return CompiledFunction(
        full_name=full_name,
        module_name=module_name,
        func_name=func_name,
        branches=tuple(branches),
        has_default_case=message is not None,
    )


def parse_dump(text: str) -> list[CompiledFunction]:
    """Parse a whole dump, one definition per line, in file order."""
    functions: list[CompiledFunction] = []
    skipped = 0
    for line in text.splitlines():
        if not line.strip():
            continue
        func = parse_dump_line(line)
        if func is None:
            skipped += 1
            continue
        functions.append(func)
    if skipped:
        logger.debug("dumpcases_lines_skipped", skipped=skipped, parsed=len(functions))
    return functions


def build_static_analysis(functions: Iterable[CompiledFunction]) -> StaticBranchAnalysis:
    return StaticBranchAnalysis.from_functions(functions)
