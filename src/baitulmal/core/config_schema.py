"""Pydantic models for config validation.

Opt-in schema validation for ``Config.config_data``.  Call
``Config.validated()`` to obtain a typed, validated ``BaitulmalConfig``
instance.  Dict-based access keeps working unchanged.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class NisabRuleConfig(BaseModel):
    """Threshold and rate for one zakat type."""

    threshold: float = Field(ge=0)
    rate: float = Field(ge=0)
    unit: Literal["currency", "grams", "per_head"] = "currency"


class NisabConfig(BaseModel):
    """Nisab table, one rule per zakat type."""

    harta: NisabRuleConfig
    perniagaan: NisabRuleConfig
    emas: NisabRuleConfig
    perak: NisabRuleConfig
    fitrah: NisabRuleConfig

    @model_validator(mode="after")
    def _fitrah_has_no_threshold(self) -> NisabConfig:
        if self.fitrah.threshold != 0:
            raise ValueError("fitrah carries no nisab threshold; set threshold to 0")
        return self


class FundTarget(BaseModel):
    target: float = Field(gt=0)


class FundsConfig(BaseModel):
    """Collection targets used for fund-health advisories."""

    zakat: FundTarget = FundTarget(target=200000)
    khairat: FundTarget = FundTarget(target=200000)
    health_advisory_below: float = Field(default=50.0, ge=0, le=100)


class KhairatConfig(BaseModel):
    """Death-benefit schedule and claim requirements."""

    default_benefit: float = Field(default=5000, gt=0)
    benefit_schedule: dict[str, float] = {}
    required_documents: list[str] = []

    @field_validator("benefit_schedule")
    @classmethod
    def _positive_benefits(cls, v: dict[str, float]) -> dict[str, float]:
        bad = sorted(plan for plan, amount in v.items() if amount <= 0)
        if bad:
            raise ValueError(f"benefit amounts must be positive: {bad}")
        return v


class ZakatAidConfig(BaseModel):
    required_documents: list[str] = []


class BaitulmalConfig(BaseModel):
    """Root configuration model.

    Uses ``extra="allow"`` so deployments can bolt on custom sections
    without touching this schema.
    """

    model_config = ConfigDict(extra="allow")

    nisab: NisabConfig
    funds: FundsConfig = FundsConfig()
    khairat: KhairatConfig = KhairatConfig()
    zakat: ZakatAidConfig = ZakatAidConfig()
