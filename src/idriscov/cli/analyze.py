"""idris2-cov analyze / dumpcases commands."""

from __future__ import annotations

import json
from pathlib import Path

import click

from idriscov.config.models import CoverageConfig
from idriscov.core.errors import CoverageError
from idriscov.core.progress import pluralize, spinner, status
from idriscov.coverage.exclusions import ExclusionSet, build_exclusions, load_versioned_patterns
from idriscov.coverage.mangle import get_scheme
from idriscov.coverage.models import AggregatedCoverage, StaticBranchAnalysis
from idriscov.coverage.pipeline import (
    RunArtifacts,
    analyze_static,
    compute_coverage,
    read_artifact,
)
from idriscov.coverage.report import build_static_summary, build_summary, build_text_summary
from idriscov.coverage.runner import dump_case_trees, idris2_version
from idriscov.coverage.targets import rank_targets

profile_option = click.option(
    "--profile",
    "profiles",
    multiple=True,
    nargs=2,
    type=click.Path(path_type=Path),
    metavar="ANNOTATED DEFINITIONS",
    help="Profiler output of one test run: annotated .ss.html and its .ss source. Repeatable.",
)
exclude_option = click.option(
    "--exclude",
    "excludes",
    multiple=True,
    help="Hide names from targets; a '*' makes a prefix pattern. Repeatable.",
)


def exclusions_from_config(config: CoverageConfig, extra: tuple[str, ...] = ()) -> ExclusionSet:
    settings = config.exclusions
    versioned = None
    if settings.directory:
        version = settings.idris2_version or idris2_version(config.toolchain)
        versioned = load_versioned_patterns(Path(settings.directory).expanduser(), version)
    return build_exclusions(
        [*settings.patterns, *extra],
        [Path(f).expanduser() for f in settings.files],
        use_defaults=settings.use_defaults,
        versioned=versioned,
    )


def load_runs(profiles: tuple[tuple[Path, Path], ...]) -> list[RunArtifacts]:
    return [
        RunArtifacts(
            run_id=annotated.name if len(profiles) == 1 else f"{i}:{annotated.name}",
            annotated=read_artifact(annotated, "profile"),
            definitions=read_artifact(definitions, "definitions"),
        )
        for i, (annotated, definitions) in enumerate(profiles, start=1)
    ]


def compute(
    config: CoverageConfig,
    dump: Path,
    profiles: tuple[tuple[Path, Path], ...],
) -> StaticBranchAnalysis | AggregatedCoverage:
    """Static analysis, aggregated with runs when any profile is given."""
    static = analyze_static(read_artifact(dump, "dumpcases"))
    if not profiles:
        return static
    return compute_coverage(
        static,
        load_runs(profiles),
        scheme=get_scheme(config.analysis.mangling),
        max_workers=config.analysis.max_workers,
    )


def emit(
    result: StaticBranchAnalysis | AggregatedCoverage,
    exclusions: ExclusionSet,
    top: int,
    as_json: bool,
) -> None:
    targets = rank_targets(result, exclusions, top=top)
    if isinstance(result, AggregatedCoverage):
        summary = build_summary(result, targets)
    else:
        summary = build_static_summary(result, targets)

    if as_json:
        click.echo(json.dumps(summary, indent=2))
        return

    click.echo(build_text_summary(result))
    if isinstance(result, AggregatedCoverage) and result.unmapped_functions:
        status(
            f"{pluralize(len(result.unmapped_functions), 'function')} without a runtime mapping",
            style="warning",
        )
    for target in targets:
        click.echo(
            f"  {target.full_name}: {target.uncovered}/{target.canonical} uncovered"
            + (f", {target.bugs} unhandled" if target.bugs else "")
            + (f", {target.unknown} unknown" if target.unknown else "")
        )


@click.command()
@click.argument("dump", type=click.Path(path_type=Path))
@profile_option
@exclude_option
@click.option("--top", type=int, default=None, help="Number of high-impact targets")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def analyze_command(
    ctx: click.Context,
    dump: Path,
    profiles: tuple[tuple[Path, Path], ...],
    excludes: tuple[str, ...],
    top: int | None,
    as_json: bool,
) -> None:
    """Compute branch coverage from a case-tree dump and profiled runs.

    DUMP is the output of `idris2 --dumpcases`. Without --profile only the
    static branch classification is reported.
    """
    config: CoverageConfig = ctx.obj["config"]
    try:
        result = compute(config, dump, profiles)
        exclusions = exclusions_from_config(config, excludes)
    except CoverageError as e:
        raise click.ClickException(str(e)) from e
    emit(result, exclusions, config.analysis.top if top is None else top, as_json)


@click.command()
@click.argument("ipkg", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", type=click.Path(path_type=Path), default=None, help="Dump file path")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def dumpcases_command(ctx: click.Context, ipkg: Path, output: Path | None, as_json: bool) -> None:
    """Build IPKG with --dumpcases and report its static branch classification."""
    config: CoverageConfig = ctx.obj["config"]
    try:
        with spinner(f"Building {ipkg.name} with --dumpcases"):
            text = dump_case_trees(ipkg.resolve(), config.toolchain, output=output)
        static = analyze_static(text)
        exclusions = exclusions_from_config(config)
    except CoverageError as e:
        raise click.ClickException(str(e)) from e
    status(f"Parsed {pluralize(len(static.functions), 'function')}", style="success")
    emit(static, exclusions, config.analysis.top, as_json)
