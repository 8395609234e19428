"""Beneficiary allocation — a member's registered heirs for death-benefit payout.

The set of a member's beneficiaries is the unit of validation. Every
mutation is checked against the resulting set before it is applied: each
share must lie in (0, 100] and the total may never exceed 100. A set is only
payable when it totals exactly 100 and names at least one primary designee.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from enum import StrEnum
from typing import Any

from loguru import logger

from baitulmal.core.exceptions import AllocationExceeded, InvalidInput, InvalidPercentage

FULL_ALLOCATION = Decimal(100)

_PATCHABLE_FIELDS = frozenset(
    {"name", "identity_number", "relationship", "contact_phone", "address", "percentage", "is_primary"},
)


class AllocationStatus(StrEnum):
    EMPTY = "empty"  # no beneficiaries registered yet
    INCOMPLETE = "incomplete"  # shares do not total 100 or no primary
    VALID = "valid"


class BeneficiaryOp(StrEnum):
    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"


@dataclass(frozen=True)
class Beneficiary:
    id: str
    name: str
    percentage: float
    is_primary: bool = False
    identity_number: str = ""
    relationship: str = ""
    contact_phone: str = ""
    address: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "identity_number": self.identity_number,
            "relationship": self.relationship,
            "contact_phone": self.contact_phone,
            "address": self.address,
            "percentage": self.percentage,
            "is_primary": self.is_primary,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Beneficiary:
        return cls(**data)


@dataclass(frozen=True)
class AllocationReport:
    """Outcome of validate()."""

    total: float
    sum_ok: bool
    has_primary: bool
    primary_count: int
    count: int

    @property
    def is_empty(self) -> bool:
        return self.count == 0

    @property
    def status(self) -> AllocationStatus:
        if self.is_empty:
            return AllocationStatus.EMPTY
        if self.sum_ok and self.has_primary:
            return AllocationStatus.VALID
        return AllocationStatus.INCOMPLETE

    @property
    def is_payable(self) -> bool:
        return self.status == AllocationStatus.VALID

    @property
    def unallocated(self) -> float:
        return float(FULL_ALLOCATION - Decimal(str(self.total)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "sum_ok": self.sum_ok,
            "has_primary": self.has_primary,
            "primary_count": self.primary_count,
            "count": self.count,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class BeneficiarySetSnapshot:
    """Immutable view of a member's set after a mutation."""

    member_id: str
    beneficiaries: tuple[Beneficiary, ...]
    report: AllocationReport

    def to_dict(self) -> dict[str, Any]:
        return {
            "member_id": self.member_id,
            "beneficiaries": [b.to_dict() for b in self.beneficiaries],
            "report": self.report.to_dict(),
        }


def _as_decimal(percentage: Any, *, member_id: str, beneficiary_id: str) -> Decimal:
    if isinstance(percentage, bool):
        raise InvalidPercentage(
            f"Percentage must be a number, got {percentage!r}", entity_id=member_id, beneficiary_id=beneficiary_id
        )
    try:
        value = Decimal(str(percentage))
    except InvalidOperation:
        raise InvalidPercentage(
            f"Percentage must be a number, got {percentage!r}", entity_id=member_id, beneficiary_id=beneficiary_id
        ) from None
    if not value.is_finite() or value <= 0 or value > FULL_ALLOCATION:
        raise InvalidPercentage(
            f"Percentage for {beneficiary_id} must be greater than 0 and at most 100, got {percentage}",
            entity_id=member_id,
            beneficiary_id=beneficiary_id,
            percentage=percentage,
        )
    return value


def _total(beneficiaries: list[Beneficiary] | tuple[Beneficiary, ...]) -> Decimal:
    return sum((Decimal(str(b.percentage)) for b in beneficiaries), Decimal(0))


class BeneficiaryAllocation:
    """Validated, mutable set of one member's beneficiaries.

    Mutations hold the set's lock from check to write, so concurrent editors
    cannot jointly push the total past 100.
    """

    def __init__(self, member_id: str, beneficiaries: list[Beneficiary] | None = None):
        self.member_id = member_id
        self._items: dict[str, Beneficiary] = {}
        self._lock = threading.RLock()
        for b in beneficiaries or []:
            self.add(b)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self.beneficiaries)

    @property
    def beneficiaries(self) -> tuple[Beneficiary, ...]:
        with self._lock:
            return tuple(self._items.values())

    @property
    def total(self) -> float:
        with self._lock:
            return float(_total(tuple(self._items.values())))

    def get(self, beneficiary_id: str) -> Beneficiary:
        with self._lock:
            try:
                return self._items[beneficiary_id]
            except KeyError:
                raise InvalidInput(
                    f"No beneficiary {beneficiary_id!r} registered for member {self.member_id}",
                    entity_id=self.member_id,
                    beneficiary_id=beneficiary_id,
                ) from None

    def _check_total(self, candidate: list[Beneficiary], action: str, beneficiary_id: str) -> None:
        total = _total(candidate)
        if total > FULL_ALLOCATION:
            raise AllocationExceeded(
                f"Allocation for member {self.member_id} would total {total}%, above 100%",
                entity_id=self.member_id,
                action=action,
                beneficiary_id=beneficiary_id,
                total=float(total),
            )
        if total < FULL_ALLOCATION:
            logger.info(f"Member {self.member_id}: beneficiaries total {total}%, {FULL_ALLOCATION - total}% unassigned")

    def add(self, beneficiary: Beneficiary) -> BeneficiarySetSnapshot:
        """Register a beneficiary.

        Raises:
            InvalidPercentage: share outside (0, 100].
            AllocationExceeded: the set would total more than 100.
            InvalidInput: duplicate id.
        """
        _as_decimal(beneficiary.percentage, member_id=self.member_id, beneficiary_id=beneficiary.id)
        with self._lock:
            if beneficiary.id in self._items:
                raise InvalidInput(
                    f"Beneficiary {beneficiary.id!r} already registered for member {self.member_id}",
                    entity_id=self.member_id,
                    action=BeneficiaryOp.ADD.value,
                    beneficiary_id=beneficiary.id,
                )
            candidate = [*self._items.values(), beneficiary]
            self._check_total(candidate, BeneficiaryOp.ADD.value, beneficiary.id)
            self._items[beneficiary.id] = beneficiary
            return self.snapshot()

    def update(self, beneficiary_id: str, patch: dict[str, Any]) -> BeneficiarySetSnapshot:
        """Apply *patch* to one beneficiary, re-validating the resulting set."""
        unknown = set(patch) - _PATCHABLE_FIELDS
        if unknown:
            raise InvalidInput(
                f"Cannot update beneficiary fields: {sorted(unknown)}",
                entity_id=self.member_id,
                action=BeneficiaryOp.UPDATE.value,
                beneficiary_id=beneficiary_id,
            )
        with self._lock:
            current = self.get(beneficiary_id)
            updated = replace(current, **patch)
            _as_decimal(updated.percentage, member_id=self.member_id, beneficiary_id=beneficiary_id)
            candidate = [updated if b.id == beneficiary_id else b for b in self._items.values()]
            self._check_total(candidate, BeneficiaryOp.UPDATE.value, beneficiary_id)
            self._items[beneficiary_id] = updated
            return self.snapshot()

    def remove(self, beneficiary_id: str) -> BeneficiarySetSnapshot:
        with self._lock:
            self.get(beneficiary_id)
            candidate = [b for b in self._items.values() if b.id != beneficiary_id]
            self._check_total(candidate, BeneficiaryOp.REMOVE.value, beneficiary_id)
            del self._items[beneficiary_id]
            return self.snapshot()

    def validate(self) -> AllocationReport:
        """Report whether the set is payable: totals exactly 100 with a primary."""
        with self._lock:
            items = tuple(self._items.values())
        total = _total(items)
        primary_count = sum(1 for b in items if b.is_primary)
        return AllocationReport(
            total=float(total),
            sum_ok=total == FULL_ALLOCATION,
            has_primary=primary_count >= 1,
            primary_count=primary_count,
            count=len(items),
        )

    def snapshot(self) -> BeneficiarySetSnapshot:
        with self._lock:
            return BeneficiarySetSnapshot(self.member_id, tuple(self._items.values()), self.validate())


class BeneficiaryRegistry:
    """Beneficiary sets keyed by member id."""

    def __init__(self) -> None:
        self._sets: dict[str, BeneficiaryAllocation] = {}
        self._lock = threading.Lock()

    def for_member(self, member_id: str) -> BeneficiaryAllocation:
        with self._lock:
            if member_id not in self._sets:
                self._sets[member_id] = BeneficiaryAllocation(member_id)
            return self._sets[member_id]

    def mutate(
        self,
        member_id: str,
        op: BeneficiaryOp | str,
        beneficiary: Beneficiary | None = None,
        *,
        beneficiary_id: str | None = None,
        patch: dict[str, Any] | None = None,
    ) -> BeneficiarySetSnapshot:
        """Dispatch one add/update/remove against a member's set."""
        try:
            op = BeneficiaryOp(op)
        except ValueError:
            raise InvalidInput(f"Unknown beneficiary operation: {op!r}", entity_id=member_id) from None

        allocation = self.for_member(member_id)
        target_id = beneficiary_id or (beneficiary.id if beneficiary else None)
        match op:
            case BeneficiaryOp.ADD:
                if beneficiary is None:
                    raise InvalidInput("add requires a beneficiary", entity_id=member_id, action=op.value)
                return allocation.add(beneficiary)
            case BeneficiaryOp.UPDATE:
                if target_id is None:
                    raise InvalidInput("update requires a beneficiary id", entity_id=member_id, action=op.value)
                if patch is None and beneficiary is not None:
                    patch = {k: v for k, v in beneficiary.to_dict().items() if k != "id"}
                return allocation.update(target_id, patch or {})
            case BeneficiaryOp.REMOVE:
                if target_id is None:
                    raise InvalidInput("remove requires a beneficiary id", entity_id=member_id, action=op.value)
                return allocation.remove(target_id)
