"""idris2-cov leaks command - find stdlib/generated names among targets."""

from __future__ import annotations

import json
from pathlib import Path

import click

from idriscov.cli.analyze import compute, exclude_option, exclusions_from_config, profile_option
from idriscov.config.models import CoverageConfig
from idriscov.core.errors import CoverageError
from idriscov.coverage.exclusions import detect_leaks, suggest_pattern
from idriscov.coverage.targets import rank_targets


@click.command()
@click.argument("dump", type=click.Path(path_type=Path))
@profile_option
@exclude_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def leaks_command(
    ctx: click.Context,
    dump: Path,
    profiles: tuple[tuple[Path, Path], ...],
    excludes: tuple[str, ...],
    as_json: bool,
) -> None:
    """Report targets that look like stdlib or compiler-generated code.

    Exits with status 1 when leaks are found, printing suggested exclusion
    patterns.
    """
    config: CoverageConfig = ctx.obj["config"]
    try:
        result = compute(config, dump, profiles)
        exclusions = exclusions_from_config(config, excludes)
    except CoverageError as e:
        raise click.ClickException(str(e)) from e

    targets = rank_targets(result, exclusions)
    leaks = detect_leaks(t.full_name for t in targets)
    suggestions = sorted({suggest_pattern(name) for name in leaks})

    if as_json:
        click.echo(json.dumps({"leaks": leaks, "suggested_patterns": suggestions}, indent=2))
    elif leaks:
        click.echo("LEAKS DETECTED:")
        for name in leaks:
            click.echo(f"  - {name}")
        click.echo("Suggested exclusion patterns:")
        for pattern in suggestions:
            click.echo(f"  {pattern}")
    else:
        click.echo("No leaks detected.")

    if leaks:
        ctx.exit(1)
