"""baitulmal assess — compute zakat owed for one ledger."""

from __future__ import annotations

import click

from baitulmal.zakat.nisab import ZakatType


@click.command()
@click.argument("zakat_type", type=click.Choice([t.value for t in ZakatType], case_sensitive=False))
@click.option("--cash", type=float, default=0.0, help="Cash in hand (harta).")
@click.option("--savings", type=float, default=0.0, help="Bank savings (harta).")
@click.option("--investments", type=float, default=0.0, help="Investments (harta).")
@click.option("--gold-value", type=float, default=0.0, help="Value of gold held (harta).")
@click.option("--silver-value", type=float, default=0.0, help="Value of silver held (harta).")
@click.option("--debts", type=float, default=0.0, help="Debts due (harta).")
@click.option("--inventory", type=float, default=0.0, help="Stock value (perniagaan).")
@click.option("--receivables", type=float, default=0.0, help="Amounts owed to the business (perniagaan).")
@click.option("--business-cash", type=float, default=0.0, help="Business cash (perniagaan).")
@click.option("--business-debts", type=float, default=0.0, help="Business liabilities (perniagaan).")
@click.option("--weight", "weight_grams", type=float, default=0.0, help="Metal weight in grams (emas/perak).")
@click.option("--unit-price", type=float, default=0.0, help="Price per gram (emas/perak).")
@click.option("--heads", "head_count", type=int, default=1, show_default=True, help="Household size (fitrah).")
@click.pass_context
def assess(ctx: click.Context, zakat_type: str, **fields: float) -> None:
    """Assess ZAKAT_TYPE against the configured nisab and print the result as JSON."""
    from baitulmal.core.cli.common import echo_json, fail, load_nisab_table
    from baitulmal.core.exceptions import DomainRuleError
    from baitulmal.zakat.calculator import AssetLedger, BusinessLedger, FitrahLedger, MetalLedger
    from baitulmal.zakat.calculator import assess as run_assessment

    table = load_nisab_table(ctx)
    zakat_type = ZakatType(zakat_type.lower())

    match zakat_type:
        case ZakatType.HARTA:
            ledger = AssetLedger(
                cash=fields["cash"],
                savings=fields["savings"],
                investments=fields["investments"],
                gold_value=fields["gold_value"],
                silver_value=fields["silver_value"],
                debts=fields["debts"],
            )
        case ZakatType.PERNIAGAAN:
            ledger = BusinessLedger(
                inventory=fields["inventory"],
                receivables=fields["receivables"],
                business_cash=fields["business_cash"],
                business_debts=fields["business_debts"],
            )
        case ZakatType.EMAS | ZakatType.PERAK:
            ledger = MetalLedger(weight_grams=fields["weight_grams"], unit_price=fields["unit_price"])
        case ZakatType.FITRAH:
            ledger = FitrahLedger(head_count=fields["head_count"])

    try:
        result = run_assessment(ledger, zakat_type, table)
    except DomainRuleError as e:
        fail(e.message)

    echo_json(result.to_dict())
