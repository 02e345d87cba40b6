"""The piccrack command line: text from screenshots and word frequency analysis."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import click
import yaml

from piccrack.cli.api import api
from piccrack.cli.words import words

DEFAULT_ENV_FILE_PATH = ".env"
DEFAULT_OUTPUT_PATH = "./output"
HOME_CONFIG_NAME = ".piccrack.yaml"


@dataclass
class _RootOptions:
    config: str
    verbose: bool


def _readable_config(path: Path) -> bool:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return False
    if path.suffix in (".yaml", ".yml"):
        try:
            yaml.safe_load(text)
        except yaml.YAMLError:
            return False
    return True


def _config_candidates(config_file: str) -> list[Path]:
    if config_file:
        return [Path(config_file)]
    try:
        home = Path.home()
    except RuntimeError as exc:
        raise click.ClickException(str(exc)) from exc
    return [home / HOME_CONFIG_NAME, Path.cwd() / DEFAULT_ENV_FILE_PATH]


def _init_config(config_file: str) -> None:
    """Report the first configuration file that can be read."""
    for candidate in _config_candidates(config_file):
        if _readable_config(candidate):
            click.echo(f"Using config file: {candidate}", err=True)
            return


@click.group(
    name="piccrack",
    invoke_without_command=True,
    help="Analyze text from screenshots and performing word frequency analysis.",
)
@click.option("--config", default="", help="config file (default is $HOME/.piccrack.yaml)")
@click.option("-v", "--verbose", is_flag=True, default=False, help="print verbose actions")
@click.pass_context
def cli(ctx: click.Context, config: str, verbose: bool) -> None:
    """Read the configuration; without a subcommand show help."""
    ctx.obj = _RootOptions(config=config, verbose=verbose)
    _init_config(config)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


cli.add_command(api)
cli.add_command(words)


def main(argv: list[str] | None = None) -> int:
    """Run the command line and return its exit status."""
    try:
        code = cli.main(args=argv, prog_name="piccrack", standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return 1
    except click.Abort:
        click.echo("Aborted!", err=True)
        return 1
    return code if isinstance(code, int) else 0


if __name__ == "__main__":
    raise SystemExit(main())