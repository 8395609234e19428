"""Baitulmal CLI — entry point for assess and nisab commands."""

import click

from baitulmal import __version__


@click.group()
@click.version_option(version=__version__, package_name="baitulmal")
@click.option(
    "--config", "config_file", type=click.Path(exists=True, dir_okay=False), help="YAML or JSON config file."
)
@click.option("--log-level", default="WARNING", show_default=True, help="Log level for stderr output.")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also write log records to this file.")
@click.pass_context
def main(ctx: click.Context, config_file: str | None, log_level: str, log_file: str | None) -> None:
    """Baitulmal — zakat and khairat fund tools."""
    from baitulmal.core.utils.logging import setup_logging

    setup_logging(level=log_level.upper(), log_file=log_file)
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file


# Register subcommands (lazy imports keep startup fast)
from .assess_cmd import assess
from .nisab_cmd import nisab

main.add_command(assess)
main.add_command(nisab)
