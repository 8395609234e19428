"""
Zakat Calculator — nisab eligibility and amount owed per zakat type.

Implements:
- Zakat harta: net worth of cash, savings, investments and precious-metal
  holdings less debts
- Zakat perniagaan: net business assets
- Zakat emas / perak: metal value, with eligibility measured by weight
- Zakat fitrah: flat per-head amount, always due

Below nisab nothing is owed; there is no partial zakat. Net amounts are
clamped at zero so a debtor never owes a negative amount. Money is rounded
half-up to cents with Decimal.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from decimal import ROUND_HALF_UP, Decimal

from loguru import logger

from baitulmal.core.exceptions import InvalidInput

from .nisab import DEFAULT_NISAB_TABLE, NisabTable, ZakatType, parse_zakat_type

_CENT = Decimal("0.01")


def round_money(value: float) -> float:
    """Round half-up to cents."""
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def _require_non_negative(ledger) -> None:
    for f in fields(ledger):
        value = getattr(ledger, f.name)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidInput(
                f"{type(ledger).__name__}.{f.name} must be a number, got {value!r}",
                action="assess",
                field=f.name,
            )
        if not math.isfinite(value) or value < 0:
            raise InvalidInput(
                f"{type(ledger).__name__}.{f.name} must be a finite non-negative number, got {value}",
                action="assess",
                field=f.name,
            )


# === Ledgers ===


@dataclass(frozen=True)
class AssetLedger:
    """Personal wealth snapshot for zakat harta."""

    cash: float = 0.0
    savings: float = 0.0
    investments: float = 0.0
    gold_value: float = 0.0
    silver_value: float = 0.0
    debts: float = 0.0

    @property
    def gross(self) -> float:
        return self.cash + self.savings + self.investments + self.gold_value + self.silver_value


@dataclass(frozen=True)
class BusinessLedger:
    """Business assets for zakat perniagaan."""

    inventory: float = 0.0
    receivables: float = 0.0
    business_cash: float = 0.0
    business_debts: float = 0.0

    @property
    def gross(self) -> float:
        return self.inventory + self.receivables + self.business_cash


@dataclass(frozen=True)
class MetalLedger:
    """Gold or silver holding.

    ``purity`` is informational only; the value used is weight x unit_price.
    """

    weight_grams: float = 0.0
    unit_price: float = 0.0
    purity: float = 0.999


@dataclass(frozen=True)
class FitrahLedger:
    """Household head count for zakat fitrah."""

    head_count: int = 1
    rate_per_head: float | None = None  # overrides the table rate when set


Ledger = AssetLedger | BusinessLedger | MetalLedger | FitrahLedger

_LEDGER_FOR_TYPE: dict[ZakatType, type] = {
    ZakatType.HARTA: AssetLedger,
    ZakatType.PERNIAGAAN: BusinessLedger,
    ZakatType.EMAS: MetalLedger,
    ZakatType.PERAK: MetalLedger,
    ZakatType.FITRAH: FitrahLedger,
}


@dataclass(frozen=True)
class ZakatAssessment:
    """Result of one assessment."""

    zakat_type: ZakatType
    gross_amount: float
    net_qualifying_amount: float
    nisab_threshold: float
    rate: float
    is_eligible: bool
    amount_due: float
    head_count: int | None = None

    @property
    def shortfall(self) -> float:
        """Amount still needed to reach nisab (0 once eligible)."""
        if self.is_eligible or self.zakat_type in (ZakatType.FITRAH, ZakatType.EMAS, ZakatType.PERAK):
            return 0.0
        return round_money(self.nisab_threshold - self.net_qualifying_amount)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        data = {
            "zakat_type": self.zakat_type.value,
            "gross_amount": round_money(self.gross_amount),
            "net_qualifying_amount": round_money(self.net_qualifying_amount),
            "nisab_threshold": self.nisab_threshold,
            "rate": self.rate,
            "is_eligible": self.is_eligible,
            "amount_due": self.amount_due,
        }
        if self.head_count is not None:
            data["head_count"] = self.head_count
        return data


# === Calculations ===


def calculate_zakat(net_amount: float, rate: float) -> float:
    """Calculate zakat due on a qualifying amount.

    Uses Decimal for precise calculation, returns float.
    """
    if net_amount <= 0:
        return 0.0
    zakat = (Decimal(str(net_amount)) * Decimal(str(rate))).quantize(_CENT, rounding=ROUND_HALF_UP)
    return float(zakat)


def _assess_harta(ledger: AssetLedger, table: NisabTable) -> ZakatAssessment:
    rule = table.rule_for(ZakatType.HARTA)
    net = max(0.0, ledger.gross - ledger.debts)
    eligible = net >= rule.threshold
    return ZakatAssessment(
        zakat_type=ZakatType.HARTA,
        gross_amount=ledger.gross,
        net_qualifying_amount=net,
        nisab_threshold=rule.threshold,
        rate=rule.rate,
        is_eligible=eligible,
        amount_due=calculate_zakat(net, rule.rate) if eligible else 0.0,
    )


def _assess_business(ledger: BusinessLedger, table: NisabTable) -> ZakatAssessment:
    rule = table.rule_for(ZakatType.PERNIAGAAN)
    net = max(0.0, ledger.gross - ledger.business_debts)
    eligible = net >= rule.threshold
    return ZakatAssessment(
        zakat_type=ZakatType.PERNIAGAAN,
        gross_amount=ledger.gross,
        net_qualifying_amount=net,
        nisab_threshold=rule.threshold,
        rate=rule.rate,
        is_eligible=eligible,
        amount_due=calculate_zakat(net, rule.rate) if eligible else 0.0,
    )


def _assess_metal(ledger: MetalLedger, zakat_type: ZakatType, table: NisabTable) -> ZakatAssessment:
    if not 0 <= ledger.purity <= 1:
        raise InvalidInput(f"purity must be a fraction between 0 and 1, got {ledger.purity}", action="assess")
    rule = table.rule_for(zakat_type)
    value = ledger.weight_grams * ledger.unit_price
    # Nisab for metals is in grams, so weight decides eligibility
    eligible = ledger.weight_grams >= rule.threshold
    return ZakatAssessment(
        zakat_type=zakat_type,
        gross_amount=value,
        net_qualifying_amount=value,
        nisab_threshold=rule.threshold,
        rate=rule.rate,
        is_eligible=eligible,
        amount_due=calculate_zakat(value, rule.rate) if eligible else 0.0,
    )


def _assess_fitrah(ledger: FitrahLedger, table: NisabTable) -> ZakatAssessment:
    if isinstance(ledger.head_count, bool) or not isinstance(ledger.head_count, int) or ledger.head_count < 1:
        raise InvalidInput(f"head_count must be a whole number >= 1, got {ledger.head_count!r}", action="assess")
    rate = ledger.rate_per_head if ledger.rate_per_head is not None else table.rate(ZakatType.FITRAH)
    due = (Decimal(ledger.head_count) * Decimal(str(rate))).quantize(_CENT, rounding=ROUND_HALF_UP)
    return ZakatAssessment(
        zakat_type=ZakatType.FITRAH,
        gross_amount=float(ledger.head_count),
        net_qualifying_amount=float(ledger.head_count),
        nisab_threshold=0.0,
        rate=rate,
        is_eligible=True,
        amount_due=float(due),
        head_count=ledger.head_count,
    )


def assess(ledger: Ledger, zakat_type: ZakatType | str, table: NisabTable | None = None) -> ZakatAssessment:
    """Assess zakat owed for one ledger.

    Raises:
        InvalidInput: negative field, unrecognized type, or a ledger that
            does not match the zakat type.
    """
    zakat_type = parse_zakat_type(zakat_type)
    table = table or DEFAULT_NISAB_TABLE

    expected = _LEDGER_FOR_TYPE[zakat_type]
    if not isinstance(ledger, expected):
        raise InvalidInput(
            f"zakat {zakat_type.value} requires {expected.__name__}, got {type(ledger).__name__}",
            action="assess",
        )
    _require_non_negative(ledger)

    match zakat_type:
        case ZakatType.HARTA:
            result = _assess_harta(ledger, table)
        case ZakatType.PERNIAGAAN:
            result = _assess_business(ledger, table)
        case ZakatType.EMAS | ZakatType.PERAK:
            result = _assess_metal(ledger, zakat_type, table)
        case ZakatType.FITRAH:
            result = _assess_fitrah(ledger, table)

    logger.debug(
        f"Zakat {zakat_type.value}: net {result.net_qualifying_amount:,.2f} vs nisab {result.nisab_threshold:,.2f} "
        f"-> eligible={result.is_eligible}, due={result.amount_due:,.2f}"
    )
    return result


class ZakatCalculator:
    """Assesses ledgers against a fixed nisab table."""

    def __init__(self, table: NisabTable | None = None):
        self.table = table or DEFAULT_NISAB_TABLE

    def assess(self, ledger: Ledger, zakat_type: ZakatType | str) -> ZakatAssessment:
        return assess(ledger, zakat_type, self.table)

    def reload(self, table: NisabTable) -> None:
        """Swap in a new nisab table (administrative action)."""
        self.table = table
        logger.info(f"Nisab table reloaded: {table.to_dict()}")
