"""Khairat benefit schedule and payout split.

A death-benefit claim requests a flat amount set by the deceased member's
plan. On payout the approved amount is apportioned across the member's
beneficiaries by share.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal
from typing import TYPE_CHECKING

from baitulmal.core.exceptions import InvalidInput, UnresolvedPayee

from .beneficiaries import Beneficiary

if TYPE_CHECKING:
    from baitulmal.core.config import Config

DEFAULT_BENEFIT = 5000.0
_CENT = Decimal("0.01")


@dataclass(frozen=True)
class BenefitSchedule:
    """Flat benefit per membership plan, with a default for unlisted plans."""

    default_amount: float = DEFAULT_BENEFIT
    plans: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        if self.default_amount <= 0 or any(v <= 0 for v in self.plans.values()):
            raise InvalidInput("Benefit amounts must be positive")

    def requested_amount_for(self, plan: str | None = None) -> float:
        if plan and plan in self.plans:
            return float(self.plans[plan])
        return float(self.default_amount)

    @classmethod
    def from_config(cls, config: Config) -> BenefitSchedule:
        khairat = config.validated().khairat
        return cls(default_amount=khairat.default_benefit, plans=dict(khairat.benefit_schedule))


@dataclass(frozen=True)
class PayoutShare:
    beneficiary_id: str
    name: str
    percentage: float
    amount: float


def split_payout(amount: float, beneficiaries: tuple[Beneficiary, ...] | list[Beneficiary]) -> list[PayoutShare]:
    """Apportion *amount* by percentage, rounded down to cents.

    The rounding residue goes to the first primary beneficiary so the shares
    always sum to *amount*.

    Raises:
        UnresolvedPayee: no beneficiaries, or no primary to take the residue.
    """
    if not beneficiaries:
        raise UnresolvedPayee("Cannot split a payout across an empty beneficiary set")
    primary = next((b for b in beneficiaries if b.is_primary), None)
    if primary is None:
        raise UnresolvedPayee("Beneficiary set has no primary designee")

    total = Decimal(str(amount)).quantize(_CENT)
    shares: dict[str, Decimal] = {}
    for b in beneficiaries:
        portion = total * Decimal(str(b.percentage)) / Decimal(100)
        shares[b.id] = portion.quantize(_CENT, rounding=ROUND_DOWN)

    shares[primary.id] += total - sum(shares.values())

    return [PayoutShare(b.id, b.name, b.percentage, float(shares[b.id])) for b in beneficiaries]
