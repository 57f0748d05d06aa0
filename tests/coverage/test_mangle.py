"""Tests for runtime identifier mangling."""

import itertools
import string

import pytest

from idriscov.core.errors import ConfigError
from idriscov.coverage.mangle import (
    DEFAULT_SCHEME,
    NamespaceJoinScheme,
    UniformScheme,
    encode,
    get_scheme,
    mangle,
)


class TestEncode:
    def test_identifier_characters_pass_through(self) -> None:
        assert encode("safe_Head42") == "safe_Head42"

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            (".", "C-46"),
            ("-", "C-45"),
            ("=", "C-61"),
            ("+", "C-43"),
            ("'", "C-39"),
            (" ", "C-32"),
        ],
    )
    def test_other_characters_use_code_point(self, text: str, expected: str) -> None:
        assert encode(text) == expected


class TestUniformScheme:
    """Tests for the default uniform encoding."""

    def test_is_default(self) -> None:
        assert DEFAULT_SCHEME.scheme_id == "uniform"

    def test_namespace_separator_is_encoded(self) -> None:
        assert mangle("Main.safeHead") == "MainC-46safeHead"

    def test_operator_suffix(self) -> None:
        assert mangle("Module.==").endswith("C-61C-61")

    def test_operator_suffix_independent_of_scheme(self) -> None:
        for scheme in (UniformScheme(), NamespaceJoinScheme()):
            assert mangle("Module.==", scheme).endswith("C-61C-61")

    def test_deterministic(self) -> None:
        assert mangle("Data.List.++") == mangle("Data.List.++")

    def test_distinct_names_never_collide(self) -> None:
        alphabet = string.ascii_letters[:4] + string.digits[:3] + "._=+-'<>{}:"
        names = ["".join(p) for n in range(1, 4) for p in itertools.product(alphabet, repeat=n)]
        mangled = {mangle(name) for name in names}
        assert len(mangled) == len(names)


class TestNamespaceJoinScheme:
    def test_single_level_namespace(self) -> None:
        assert NamespaceJoinScheme().mangle("Main.safeHead") == "Main-safeHead"

    def test_multi_level_namespace(self) -> None:
        assert NamespaceJoinScheme().mangle("Data.List.++") == "DataC-45List-C-43C-43"

    def test_no_namespace(self) -> None:
        assert NamespaceJoinScheme().mangle("{csegen:1}") == "C-123csegenC-581C-125"


class TestGetScheme:
    @pytest.mark.parametrize("scheme_id", ["uniform", "namespace-join"])
    def test_known(self, scheme_id: str) -> None:
        assert get_scheme(scheme_id).scheme_id == scheme_id

    def test_unknown_raises_config_error(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            get_scheme("hyphen")
        assert exc_info.value.details["field"] == "analysis.mangling"
