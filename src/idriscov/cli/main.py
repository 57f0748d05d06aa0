"""idris2-coverage CLI - idris2-cov command."""

from pathlib import Path

import click

from idriscov.cli.analyze import analyze_command, dumpcases_command
from idriscov.cli.leaks import leaks_command
from idriscov.cli.run import run_command
from idriscov.config.loader import load_config
from idriscov.core.errors import ConfigError
from idriscov.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="idris2-cov")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "--project",
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory holding .idris2-cov.yaml (default: current directory)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, project: Path) -> None:
    """Pragmatic branch coverage for Idris2 programs."""
    ctx.ensure_object(dict)
    try:
        config = load_config(project)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    if verbose:
        config.logging.level = "DEBUG"
    configure_logging(config=config.logging)
    ctx.obj["verbose"] = verbose
    ctx.obj["config"] = config


cli.add_command(analyze_command, name="analyze")
cli.add_command(dumpcases_command, name="dumpcases")
cli.add_command(leaks_command, name="leaks")
cli.add_command(run_command, name="run")


if __name__ == "__main__":
    cli()
