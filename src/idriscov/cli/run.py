"""idris2-cov run command - build, run profiled tests, report."""

from __future__ import annotations

from pathlib import Path

import click

from idriscov.cli.analyze import emit, exclude_option, exclusions_from_config
from idriscov.config.models import CoverageConfig
from idriscov.core.errors import CoverageError
from idriscov.core.progress import pluralize, spinner, status
from idriscov.coverage.mangle import get_scheme
from idriscov.coverage.pipeline import (
    RunArtifacts,
    analyze_static,
    compute_coverage,
    read_artifact,
)
from idriscov.coverage.runner import dump_case_trees, profile_executable


@click.command()
@click.argument("ipkg", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--exec",
    "executables",
    multiple=True,
    required=True,
    help="Test executable under build/exec to run with profiling. Repeatable; one run each.",
)
@click.argument("test_args", nargs=-1, type=click.UNPROCESSED)
@exclude_option
@click.option("--top", type=int, default=None, help="Number of high-impact targets")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def run_command(
    ctx: click.Context,
    ipkg: Path,
    executables: tuple[str, ...],
    test_args: tuple[str, ...],
    excludes: tuple[str, ...],
    top: int | None,
    as_json: bool,
) -> None:
    """Build IPKG with profiling, run its test executables and report coverage.

    Arguments after `--` are passed to every test executable.
    """
    config: CoverageConfig = ctx.obj["config"]
    ipkg = ipkg.resolve()
    project_dir = ipkg.parent
    try:
        with spinner(f"Building {ipkg.name} with --dumpcases --profile"):
            static = analyze_static(dump_case_trees(ipkg, config.toolchain, profile=True))

        runs: list[RunArtifacts] = []
        for executable in executables:
            with spinner(f"Running {executable}"):
                found = profile_executable(
                    project_dir, executable, list(test_args), config.toolchain
                )
            runs.append(
                RunArtifacts(
                    run_id=executable,
                    annotated=read_artifact(found.annotated, "profile"),
                    definitions=read_artifact(found.definitions, "definitions"),
                )
            )

        coverage = compute_coverage(
            static,
            runs,
            scheme=get_scheme(config.analysis.mangling),
            max_workers=config.analysis.max_workers,
        )
        exclusions = exclusions_from_config(config, excludes)
    except CoverageError as e:
        raise click.ClickException(str(e)) from e

    status(f"Profiled {pluralize(len(runs), 'run')}", style="success")
    emit(coverage, exclusions, config.analysis.top if top is None else top, as_json)
