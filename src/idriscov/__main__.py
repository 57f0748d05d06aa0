"""Allow running as python -m idriscov."""

from idriscov.cli.main import cli

if __name__ == "__main__":
    cli()
