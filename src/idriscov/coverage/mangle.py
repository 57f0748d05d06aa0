"""Runtime identifier mangling.

Reproduces the Scheme backend's identifier encoding so a static
fully-qualified name maps to exactly one runtime definition name:
``[A-Za-z0-9_]`` passes through, any other character becomes ``C-<code>``
with its decimal code point.

The namespace separator is the one detail that differs between compiler
versions, so the rule is kept behind ManglingScheme and selected by name
(``analysis.mangling`` in config). Nothing else in the pipeline knows how
names are encoded.
"""

from typing import Protocol

from idriscov.core.errors import ConfigError
from idriscov.coverage.dumpcases import split_full_name


def _encode_char(ch: str) -> str:
    if ch == "_" or (ch.isascii() and ch.isalnum()):
        return ch
    return f"C-{ord(ch)}"


def encode(text: str) -> str:
    """Encode every character of text, with no special cases."""
    return "".join(_encode_char(ch) for ch in text)


class ManglingScheme(Protocol):
    """Static name -> runtime identifier."""

    @property
    def scheme_id(self) -> str: ...

    def mangle(self, full_name: str) -> str: ...


class UniformScheme:
    """Every non-identifier character is encoded, separators included.

    ``Main.safeHead`` -> ``MainC-46safeHead``
    """

    @property
    def scheme_id(self) -> str:
        return "uniform"

    def mangle(self, full_name: str) -> str:
        return encode(full_name)


class NamespaceJoinScheme:
    """Namespace segments encoded separately and joined by a literal ``-``.

    ``Data.List.++`` -> ``DataC-45List-C-43C-43``: the namespace is first
    rendered with ``-`` separators and then encoded, the final name segment
    is appended after one literal ``-``.
    """

    @property
    def scheme_id(self) -> str:
        return "namespace-join"

    def mangle(self, full_name: str) -> str:
        module_name, func_name = split_full_name(full_name)
        if not module_name:
            return encode(func_name)
        return f"{encode(module_name.replace('.', '-'))}-{encode(func_name)}"


SCHEMES: dict[str, ManglingScheme] = {
    s.scheme_id: s for s in (UniformScheme(), NamespaceJoinScheme())
}

DEFAULT_SCHEME: ManglingScheme = SCHEMES["uniform"]


def get_scheme(scheme_id: str) -> ManglingScheme:
    """Look up a scheme by config key.

    Raises:
        ConfigError: If the key names no known scheme.
    """
    scheme = SCHEMES.get(scheme_id)
    if scheme is None:
        valid = ", ".join(sorted(SCHEMES))
        raise ConfigError.invalid_value(
            "analysis.mangling", scheme_id, f"unknown scheme, expected one of: {valid}"
        )
    return scheme


def mangle(full_name: str, scheme: ManglingScheme | None = None) -> str:
    """Mangle with the given scheme (default: uniform)."""
    return (scheme or DEFAULT_SCHEME).mangle(full_name)
