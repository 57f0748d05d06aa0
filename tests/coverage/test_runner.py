"""Tests for compiler and test-binary invocation."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from idriscov.config.models import ToolchainConfig
from idriscov.core.errors import ArtifactError, ErrorCode, ToolchainError
from idriscov.coverage.runner import (
    dump_case_trees,
    find_profile_artifacts,
    idris2_version,
    profile_executable,
    run_profiled,
)


def _completed(command: list[str], returncode: int = 0, stderr: str = "") -> Any:
    return subprocess.CompletedProcess(command, returncode, stdout="", stderr=stderr)


@pytest.fixture
def ipkg(tmp_path: Path) -> Path:
    path = tmp_path / "demo.ipkg"
    path.write_text("package demo\nmain = Main\nexecutable = demo\n")
    return path


class TestDumpCaseTrees:
    def test_builds_and_reads_dump(self, ipkg: Path) -> None:
        calls: list[list[str]] = []

        def fake_run(command: list[str], **kwargs: Any) -> Any:
            calls.append(command)
            Path(command[2]).write_text("Main.main = [{ext:0}]: 0\n")
            assert kwargs["cwd"] == ipkg.parent
            assert kwargs["timeout"] == 300
            return _completed(command)

        with patch("idriscov.coverage.runner.subprocess.run", side_effect=fake_run):
            text = dump_case_trees(ipkg, ToolchainConfig())

        assert text == "Main.main = [{ext:0}]: 0\n"
        expected_out = str(ipkg.parent / "build" / "dumpcases.txt")
        assert calls == [["idris2", "--dumpcases", expected_out, "--build", "demo.ipkg"]]

    def test_custom_executable_and_output(self, ipkg: Path, tmp_path: Path) -> None:
        output = tmp_path / "out" / "cases.txt"

        def fake_run(command: list[str], **kwargs: Any) -> Any:
            output.write_text("x = 1\n")
            return _completed(command)

        with patch("idriscov.coverage.runner.subprocess.run", side_effect=fake_run) as run:
            dump_case_trees(ipkg, ToolchainConfig(idris2="/opt/idris2"), output=output)

        assert run.call_args.args[0][0] == "/opt/idris2"
        assert run.call_args.args[0][2] == str(output)

    def test_profile_flag(self, ipkg: Path) -> None:
        def fake_run(command: list[str], **kwargs: Any) -> Any:
            Path(command[2]).write_text("x = 1\n")
            return _completed(command)

        with patch("idriscov.coverage.runner.subprocess.run", side_effect=fake_run) as run:
            dump_case_trees(ipkg, ToolchainConfig(), profile=True)

        assert run.call_args.args[0][3:] == ["--profile", "--build", "demo.ipkg"]

    def test_missing_dump(self, ipkg: Path) -> None:
        with patch(
            "idriscov.coverage.runner.subprocess.run",
            side_effect=lambda command, **_: _completed(command),
        ):
            with pytest.raises(ArtifactError) as exc_info:
                dump_case_trees(ipkg, ToolchainConfig())
        assert exc_info.value.code == ErrorCode.ARTIFACT_MISSING

    def test_build_failure(self, ipkg: Path) -> None:
        with patch(
            "idriscov.coverage.runner.subprocess.run",
            side_effect=lambda command, **_: _completed(command, 1, "Error: Main.idr:3:1"),
        ):
            with pytest.raises(ToolchainError) as exc_info:
                dump_case_trees(ipkg, ToolchainConfig())
        assert exc_info.value.code == ErrorCode.TOOLCHAIN_FAILED
        assert exc_info.value.details["returncode"] == 1
        assert "Main.idr:3:1" in exc_info.value.details["stderr"]

    def test_missing_executable(self, ipkg: Path) -> None:
        with patch(
            "idriscov.coverage.runner.subprocess.run",
            side_effect=FileNotFoundError("idris2"),
        ):
            with pytest.raises(ToolchainError) as exc_info:
                dump_case_trees(ipkg, ToolchainConfig())
        assert exc_info.value.code == ErrorCode.TOOLCHAIN_NOT_FOUND


class TestRunProfiled:
    def test_timeout_is_retryable(self, tmp_path: Path) -> None:
        with patch(
            "idriscov.coverage.runner.subprocess.run",
            side_effect=subprocess.TimeoutExpired(["./demo"], 5),
        ):
            with pytest.raises(ToolchainError) as exc_info:
                run_profiled(["./demo"], tmp_path, ToolchainConfig(run_timeout_sec=5))
        assert exc_info.value.code == ErrorCode.TOOLCHAIN_TIMEOUT
        assert exc_info.value.retryable

    def test_uses_run_timeout(self, tmp_path: Path) -> None:
        with patch(
            "idriscov.coverage.runner.subprocess.run",
            side_effect=lambda command, **_: _completed(command),
        ) as run:
            run_profiled(["./demo"], tmp_path, ToolchainConfig(run_timeout_sec=7))
        assert run.call_args.kwargs["timeout"] == 7


def _make_app(root: Path, exe: str) -> Path:
    app = root / "build" / "exec" / f"{exe}_app"
    app.mkdir(parents=True)
    source = app / f"{exe}.ss"
    source.write_text("(define MainC-46main (lambda () 0))\n")
    return source


class TestFindProfileArtifacts:
    def test_named_profile(self, tmp_path: Path) -> None:
        source = _make_app(tmp_path, "demo")
        (tmp_path / "demo.ss.html").write_text("<html></html>")
        found = find_profile_artifacts(tmp_path, "demo")
        assert found.definitions == source
        assert found.annotated == tmp_path / "demo.ss.html"

    def test_falls_back_to_any_profile(self, tmp_path: Path) -> None:
        _make_app(tmp_path, "demo")
        (tmp_path / "other.ss.html").write_text("<html></html>")
        assert find_profile_artifacts(tmp_path, "demo").annotated == tmp_path / "other.ss.html"

    def test_missing_definitions(self, tmp_path: Path) -> None:
        with pytest.raises(ArtifactError) as exc_info:
            find_profile_artifacts(tmp_path, "demo")
        assert exc_info.value.details["kind"] == "definitions"

    def test_missing_profile(self, tmp_path: Path) -> None:
        _make_app(tmp_path, "demo")
        with pytest.raises(ArtifactError) as exc_info:
            find_profile_artifacts(tmp_path, "demo")
        assert exc_info.value.details["kind"] == "profile"


class TestProfileExecutable:
    def test_runs_binary_and_finds_profile(self, tmp_path: Path) -> None:
        source = _make_app(tmp_path, "demo")

        def fake_run(command: list[str], **kwargs: Any) -> Any:
            (kwargs["cwd"] / "demo.ss.html").write_text("<html></html>")
            return _completed(command)

        with patch("idriscov.coverage.runner.subprocess.run", side_effect=fake_run) as run:
            found = profile_executable(tmp_path, "demo", ["--seed", "1"], ToolchainConfig())

        assert run.call_args.args[0] == [str(tmp_path / "build" / "exec" / "demo"), "--seed", "1"]
        assert found.definitions == source
        assert found.annotated == tmp_path / "demo.ss.html"

    def test_removes_stale_profile_first(self, tmp_path: Path) -> None:
        _make_app(tmp_path, "demo")
        (tmp_path / "demo.ss.html").write_text("stale")

        with patch(
            "idriscov.coverage.runner.subprocess.run",
            side_effect=lambda command, **_: _completed(command),
        ):
            with pytest.raises(ArtifactError) as exc_info:
                profile_executable(tmp_path, "demo", [], ToolchainConfig())

        assert exc_info.value.details["kind"] == "profile"
        assert not (tmp_path / "demo.ss.html").exists()


class TestIdris2Version:
    @pytest.mark.parametrize(
        ("stdout", "expected"),
        [
            ("Idris 2, version 0.8.0-95333b3ad\n", "0.8.0"),
            ("Idris 2, version 0.7.0\n", "0.7.0"),
            ("Idris 2, version unknown\n", None),
            ("", None),
        ],
    )
    def test_extracts_semver(self, stdout: str, expected: str | None) -> None:
        completed = subprocess.CompletedProcess(
            ["idris2", "--version"], 0, stdout=stdout, stderr=""
        )
        with patch("idriscov.coverage.runner.subprocess.run", return_value=completed) as run:
            assert idris2_version(ToolchainConfig(idris2="/opt/idris2")) == expected
        assert run.call_args.args[0] == ["/opt/idris2", "--version"]

    def test_missing_compiler(self) -> None:
        with patch("idriscov.coverage.runner.subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(ToolchainError) as exc_info:
                idris2_version(ToolchainConfig())
        assert exc_info.value.code == ErrorCode.TOOLCHAIN_NOT_FOUND
