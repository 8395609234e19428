"""Zakat computation — nisab table and per-type assessment."""

from .calculator import (
    AssetLedger,
    BusinessLedger,
    FitrahLedger,
    MetalLedger,
    ZakatAssessment,
    ZakatCalculator,
    assess,
)
from .nisab import DEFAULT_NISAB_TABLE, NisabRule, NisabTable, NisabUnit, ZakatType

__all__ = [
    "DEFAULT_NISAB_TABLE",
    "AssetLedger",
    "BusinessLedger",
    "FitrahLedger",
    "MetalLedger",
    "NisabRule",
    "NisabTable",
    "NisabUnit",
    "ZakatAssessment",
    "ZakatCalculator",
    "ZakatType",
    "assess",
]
