"""Shared setup logic for CLI commands."""

from __future__ import annotations

import json
import sys
from typing import Any

import click


def load_config(ctx: click.Context):
    """Load config from the ``--config`` file, defaults and BAITULMAL_ env vars."""
    from baitulmal.core.config import Config

    config_file = (ctx.obj or {}).get("config_file")
    return Config(config_file=config_file)


def load_nisab_table(ctx: click.Context):
    """Validated nisab table, or exit with the configuration error."""
    from baitulmal.core.exceptions import ConfigurationError
    from baitulmal.zakat.nisab import NisabTable

    try:
        return NisabTable.from_config(load_config(ctx))
    except ConfigurationError as e:
        fail(str(e))


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2))


def fail(message: str, code: int = 1) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(code)
