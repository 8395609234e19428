"""Khairat death-benefit fund — beneficiary sets, benefit schedule, payout split."""

from .beneficiaries import (
    AllocationReport,
    AllocationStatus,
    Beneficiary,
    BeneficiaryAllocation,
    BeneficiaryOp,
    BeneficiaryRegistry,
    BeneficiarySetSnapshot,
)
from .benefits import BenefitSchedule, PayoutShare, split_payout

__all__ = [
    "AllocationReport",
    "AllocationStatus",
    "BenefitSchedule",
    "Beneficiary",
    "BeneficiaryAllocation",
    "BeneficiaryOp",
    "BeneficiaryRegistry",
    "BeneficiarySetSnapshot",
    "PayoutShare",
    "split_payout",
]
