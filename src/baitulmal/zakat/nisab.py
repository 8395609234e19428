"""
Nisab table — thresholds and rates per zakat type.

The table is passed explicitly into every assessment so the calculator stays
pure. Defaults follow the 2025 published figures: RM 14,454 for wealth and
business zakat, 85 g of gold, 595 g of silver, a 2.5% rate, and RM 7 per head
for fitrah.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING

from loguru import logger

from baitulmal.core.exceptions import ConfigurationError, InvalidInput

if TYPE_CHECKING:
    from collections.abc import Mapping

    from baitulmal.core.config import Config

BASE_ZAKAT_RATE = 0.025
FITRAH_RATE_PER_HEAD = 7.0


class ZakatType(StrEnum):
    HARTA = "harta"  # wealth
    FITRAH = "fitrah"  # per-head, before Eid
    PERNIAGAAN = "perniagaan"  # business
    EMAS = "emas"  # gold
    PERAK = "perak"  # silver


class NisabUnit(StrEnum):
    CURRENCY = "currency"
    GRAMS = "grams"
    PER_HEAD = "per_head"


@dataclass(frozen=True)
class NisabRule:
    """Threshold and rate for one zakat type.

    For fitrah, ``rate`` is a flat per-head amount and ``threshold`` is 0.
    """

    threshold: float
    rate: float
    unit: NisabUnit = NisabUnit.CURRENCY

    def __post_init__(self):
        if self.threshold < 0 or self.rate < 0:
            raise ConfigurationError(f"Nisab threshold and rate must be non-negative, got {self}")


DEFAULT_RULES: dict[ZakatType, NisabRule] = {
    ZakatType.HARTA: NisabRule(14454, BASE_ZAKAT_RATE),
    ZakatType.PERNIAGAAN: NisabRule(14454, BASE_ZAKAT_RATE),
    ZakatType.EMAS: NisabRule(85, BASE_ZAKAT_RATE, NisabUnit.GRAMS),
    ZakatType.PERAK: NisabRule(595, BASE_ZAKAT_RATE, NisabUnit.GRAMS),
    ZakatType.FITRAH: NisabRule(0, FITRAH_RATE_PER_HEAD, NisabUnit.PER_HEAD),
}


def parse_zakat_type(value: ZakatType | str) -> ZakatType:
    """Coerce a raw value to ZakatType, failing with InvalidInput."""
    if isinstance(value, ZakatType):
        return value
    try:
        return ZakatType(str(value).strip().lower())
    except ValueError:
        raise InvalidInput(
            f"Unrecognized zakat type: {value!r}. Expected one of: {', '.join(t.value for t in ZakatType)}",
            action="assess",
        ) from None


@dataclass(frozen=True)
class NisabTable:
    """Read-only mapping from zakat type to its rule."""

    rules: Mapping[ZakatType, NisabRule] = field(default_factory=lambda: dict(DEFAULT_RULES))

    def __post_init__(self):
        missing = set(ZakatType) - set(self.rules)
        if missing:
            raise ConfigurationError(f"Nisab table missing rules for: {sorted(t.value for t in missing)}")
        if self.rules[ZakatType.FITRAH].threshold != 0:
            raise ConfigurationError("Fitrah has no nisab threshold")
        object.__setattr__(self, "rules", MappingProxyType(dict(self.rules)))

    def rule_for(self, zakat_type: ZakatType | str) -> NisabRule:
        return self.rules[parse_zakat_type(zakat_type)]

    def threshold(self, zakat_type: ZakatType | str) -> float:
        return self.rule_for(zakat_type).threshold

    def rate(self, zakat_type: ZakatType | str) -> float:
        return self.rule_for(zakat_type).rate

    def with_rule(self, zakat_type: ZakatType | str, rule: NisabRule) -> NisabTable:
        """Return a new table with one rule replaced (administrative reload)."""
        rules = dict(self.rules)
        rules[parse_zakat_type(zakat_type)] = rule
        logger.info(f"Nisab rule for {zakat_type} updated: threshold={rule.threshold}, rate={rule.rate}")
        return NisabTable(rules)

    def to_dict(self) -> dict[str, dict]:
        return {
            t.value: {"threshold": r.threshold, "rate": r.rate, "unit": r.unit.value} for t, r in self.rules.items()
        }

    @classmethod
    def from_config(cls, config: Config) -> NisabTable:
        """Build a table from the validated ``nisab`` config section."""
        nisab = config.validated().nisab
        rules = {}
        for zakat_type in ZakatType:
            section = getattr(nisab, zakat_type.value)
            rules[zakat_type] = NisabRule(section.threshold, section.rate, NisabUnit(section.unit))
        return cls(rules)


DEFAULT_NISAB_TABLE = NisabTable()
