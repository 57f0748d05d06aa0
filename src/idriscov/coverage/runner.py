"""Compiler and test-binary invocation.

The only blocking part of the tool. Every command runs under the timeout
from ToolchainConfig; a timeout, a non-zero exit or a missing executable is
raised as ToolchainError. Artifact contents are returned as strings for the
pure pipeline to consume.
"""

from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass
from pathlib import Path

import structlog

from idriscov.config.models import ToolchainConfig
from idriscov.core.errors import ArtifactError, ToolchainError

logger = structlog.get_logger()

DUMPCASES_FILE = "dumpcases.txt"

_SEMVER_RE = re.compile(r"\d+\.\d+\.\d+")


def _run(command: list[str], *, cwd: Path, timeout: float) -> subprocess.CompletedProcess[str]:
    logger.debug("subprocess_start", command=command, cwd=str(cwd), timeout=timeout)
    try:
        result = subprocess.run(
            command,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise ToolchainError.not_found(command[0]) from e
    except subprocess.TimeoutExpired as e:
        raise ToolchainError.timeout(command, timeout) from e

    if result.returncode != 0:
        raise ToolchainError.failed(command, result.returncode, result.stderr[-2000:])
    logger.debug("subprocess_done", command=command, returncode=result.returncode)
    return result


def dump_case_trees(
    ipkg: Path,
    config: ToolchainConfig,
    *,
    output: Path | None = None,
    profile: bool = False,
) -> str:
    """Build a package with --dumpcases and return the dump text.

    Args:
        ipkg: Package file to build.
        config: Executable and timeout.
        output: Where idris2 writes the dump. Defaults to build/dumpcases.txt
            next to the package.
        profile: Also compile with Chez profiling so the built executables
            write annotated profiles when run.

    Raises:
        ToolchainError: Build failed, timed out, or idris2 is missing.
        ArtifactError: The build succeeded but wrote no dump.
    """
    project_dir = ipkg.parent
    output = output or project_dir / "build" / DUMPCASES_FILE
    output.parent.mkdir(parents=True, exist_ok=True)

    command = [config.idris2, "--dumpcases", str(output)]
    if profile:
        command.append("--profile")
    command += ["--build", ipkg.name]
    _run(command, cwd=project_dir, timeout=config.build_timeout_sec)

    if not output.exists():
        raise ArtifactError.missing("dumpcases", str(output))
    return output.read_text()


@dataclass(frozen=True, slots=True)
class ProfileArtifacts:
    """Locations of one profiled run's outputs."""

    annotated: Path
    definitions: Path


def find_profile_artifacts(project_dir: Path, executable: str) -> ProfileArtifacts:
    """Locate the Chez profiler outputs of a built test executable.

    The Scheme source lives at build/exec/<exe>_app/<exe>.ss and the profiler
    writes its annotated copy as <exe>.ss.html in the working directory.

    Raises:
        ArtifactError: Either artifact is missing.
    """
    definitions = project_dir / "build" / "exec" / f"{executable}_app" / f"{executable}.ss"
    if not definitions.exists():
        raise ArtifactError.missing("definitions", str(definitions))

    annotated = project_dir / f"{executable}.ss.html"
    if not annotated.exists():
        candidates = sorted(project_dir.glob("*.ss.html"))
        if not candidates:
            raise ArtifactError.missing("profile", str(annotated))
        annotated = candidates[0]

    return ProfileArtifacts(annotated=annotated, definitions=definitions)


def run_profiled(
    command: list[str],
    project_dir: Path,
    config: ToolchainConfig,
) -> subprocess.CompletedProcess[str]:
    """Run a profiled test binary to completion under the run timeout."""
    return _run(command, cwd=project_dir, timeout=config.run_timeout_sec)


def profile_executable(
    project_dir: Path,
    executable: str,
    args: list[str],
    config: ToolchainConfig,
) -> ProfileArtifacts:
    """Run build/exec/<executable> once and locate the profile it wrote.

    A profile left over from an earlier run is removed first so it can never
    be mistaken for this run's output.
    """
    (project_dir / f"{executable}.ss.html").unlink(missing_ok=True)
    binary = project_dir / "build" / "exec" / executable
    run_profiled([str(binary), *args], project_dir, config)
    artifacts = find_profile_artifacts(project_dir, executable)
    logger.debug("profile_found", executable=executable, annotated=str(artifacts.annotated))
    return artifacts


def idris2_version(config: ToolchainConfig) -> str | None:
    """Semantic version of the configured compiler.

    ``Idris 2, version 0.8.0-95333b3ad`` gives ``0.8.0``; output without a
    version number gives None.
    """
    result = _run([config.idris2, "--version"], cwd=Path.cwd(), timeout=config.build_timeout_sec)
    lines = result.stdout.splitlines()
    match = _SEMVER_RE.search(lines[0]) if lines else None
    return match.group(0) if match else None
