"""baitulmal nisab — show the nisab table in effect."""

from __future__ import annotations

import click


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Print the table as JSON.")
@click.pass_context
def nisab(ctx: click.Context, as_json: bool) -> None:
    """Show thresholds and rates per zakat type."""
    from baitulmal.core.cli.common import echo_json, load_nisab_table

    table = load_nisab_table(ctx)
    if as_json:
        echo_json(table.to_dict())
        return

    for zakat_type, rule in table.to_dict().items():
        click.echo(f"{zakat_type:<12} threshold={rule['threshold']:>10,.2f} {rule['unit']:<9} rate={rule['rate']}")
