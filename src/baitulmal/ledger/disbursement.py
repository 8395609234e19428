"""Disbursement ledger — append-only collections and payouts for one fund.

Totals only ever grow. A correction is a reversal entry that points at the
original; it lowers the net figures and the balance but leaves
``total_collected`` and ``total_distributed`` untouched, so history is never
rewritten.

Each payout reference (application id) is credited at most once, which
makes payout retries safe.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any

from loguru import logger

from baitulmal.core.events import (
    LEDGER_COLLECTION_RECORDED,
    LEDGER_DISTRIBUTION_RECORDED,
    Event,
    EventBus,
)
from baitulmal.core.exceptions import InvalidInput

DEFAULT_ADVISORY_BELOW = 50.0


class EntryKind(StrEnum):
    COLLECTION = "collection"
    DISTRIBUTION = "distribution"
    REVERSAL = "reversal"


@dataclass(frozen=True)
class LedgerEntry:
    seq: int
    kind: EntryKind
    amount: float
    zakat_type: str | None = None
    category: str | None = None
    reference: str | None = None  # application id, receipt number
    reverses: int | None = None  # seq of the reversed entry
    note: str = ""
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat(timespec="seconds"))


@dataclass(frozen=True)
class LedgerSnapshot:
    fund: str
    total_collected: float
    total_distributed: float
    net_collected: float
    net_distributed: float
    balance: float
    target_collection: float
    fund_health_percentage: float
    needs_advisory: bool
    overdrawn: bool
    collected_by_type: dict[str, float]
    distributed_by_category: dict[str, float]

    def to_dict(self) -> dict[str, Any]:
        return {
            "fund": self.fund,
            "total_collected": self.total_collected,
            "total_distributed": self.total_distributed,
            "net_collected": self.net_collected,
            "net_distributed": self.net_distributed,
            "balance": self.balance,
            "target_collection": self.target_collection,
            "fund_health_percentage": self.fund_health_percentage,
            "needs_advisory": self.needs_advisory,
            "overdrawn": self.overdrawn,
            "collected_by_type": dict(self.collected_by_type),
            "distributed_by_category": dict(self.distributed_by_category),
        }


def _require_positive(amount: float, action: str) -> Decimal:
    if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
        raise InvalidInput(f"Amount must be a number, got {amount!r}", action=action)
    value = Decimal(str(amount))
    if not value.is_finite() or value <= 0:
        raise InvalidInput(f"Amount must be positive, got {amount}", action=action)
    return value


class DisbursementLedger:
    """Running totals for one fund (zakat or khairat).

    All writes happen under one lock, so concurrent payouts cannot lose an
    increment.
    """

    def __init__(
        self,
        target_collection: float,
        *,
        fund: str = "zakat",
        advisory_below: float = DEFAULT_ADVISORY_BELOW,
        bus: EventBus | None = None,
    ):
        if target_collection <= 0:
            raise InvalidInput(f"Collection target must be positive, got {target_collection}")
        self.fund = fund
        self.target_collection = float(target_collection)
        self.advisory_below = advisory_below
        self._bus = bus
        self._entries: list[LedgerEntry] = []
        self._credited: dict[str, LedgerEntry] = {}
        self._collected = Decimal(0)
        self._distributed = Decimal(0)
        self._reversed_collected = Decimal(0)
        self._reversed_distributed = Decimal(0)
        self._by_type: dict[str, Decimal] = {}
        self._by_category: dict[str, Decimal] = {}
        self._lock = threading.Lock()

    # -- Writes --------------------------------------------------------------

    def _append(self, **kwargs: Any) -> LedgerEntry:
        entry = LedgerEntry(seq=len(self._entries) + 1, **kwargs)
        self._entries.append(entry)
        return entry

    def record_collection(
        self,
        amount: float,
        zakat_type: str | None = None,
        *,
        reference: str | None = None,
        note: str = "",
    ) -> LedgerEntry:
        """Add a received payment to the fund."""
        value = _require_positive(amount, "record_collection")
        key = str(zakat_type) if zakat_type else "unspecified"
        with self._lock:
            entry = self._append(
                kind=EntryKind.COLLECTION,
                amount=float(value),
                zakat_type=key,
                reference=reference,
                note=note,
            )
            self._collected += value
            self._by_type[key] = self._by_type.get(key, Decimal(0)) + value

        logger.debug(f"{self.fund} collection #{entry.seq}: {value} ({key})")
        self._emit(LEDGER_COLLECTION_RECORDED, entry)
        return entry

    def record_distribution(
        self,
        amount: float,
        category: str | None = None,
        *,
        reference: str | None = None,
        note: str = "",
    ) -> LedgerEntry:
        """Record a payout.

        A payout with a *reference* that was already credited returns the
        original entry and changes nothing.
        """
        value = _require_positive(amount, "record_distribution")
        key = str(category) if category else "unspecified"
        with self._lock:
            if reference is not None and reference in self._credited:
                existing = self._credited[reference]
                logger.info(f"{self.fund} payout for {reference} already credited as #{existing.seq}; skipping")
                return existing
            entry = self._append(
                kind=EntryKind.DISTRIBUTION,
                amount=float(value),
                category=key,
                reference=reference,
                note=note,
            )
            self._distributed += value
            self._by_category[key] = self._by_category.get(key, Decimal(0)) + value
            if reference is not None:
                self._credited[reference] = entry
            overdrawn = self._distributed > self._collected

        if overdrawn:
            logger.warning(
                f"{self.fund} fund distributed {self._distributed} exceeds collected {self._collected} (pre-committed funds?)"
            )
        self._emit(LEDGER_DISTRIBUTION_RECORDED, entry)
        return entry

    def record_reversal(self, seq: int, reason: str) -> LedgerEntry:
        """Append a compensating entry for an earlier collection or distribution."""
        if not reason.strip():
            raise InvalidInput("A reversal needs a reason", action="record_reversal")
        with self._lock:
            if not 1 <= seq <= len(self._entries):
                raise InvalidInput(f"No ledger entry #{seq}", action="record_reversal")
            original = self._entries[seq - 1]
            if original.kind == EntryKind.REVERSAL:
                raise InvalidInput(f"Entry #{seq} is itself a reversal", action="record_reversal")
            if any(e.reverses == seq for e in self._entries):
                raise InvalidInput(f"Entry #{seq} was already reversed", action="record_reversal")
            entry = self._append(
                kind=EntryKind.REVERSAL,
                amount=original.amount,
                zakat_type=original.zakat_type,
                category=original.category,
                reference=original.reference,
                reverses=seq,
                note=reason,
            )
            if original.kind == EntryKind.COLLECTION:
                self._reversed_collected += Decimal(str(original.amount))
            else:
                self._reversed_distributed += Decimal(str(original.amount))
        logger.info(f"{self.fund} entry #{seq} reversed by #{entry.seq}: {reason}")
        return entry

    def _emit(self, name: str, entry: LedgerEntry) -> None:
        if self._bus is not None:
            self._bus.emit(
                Event(
                    name=name,
                    payload={"fund": self.fund, "seq": entry.seq, "amount": entry.amount, "reference": entry.reference},
                    source="ledger",
                )
            )

    # -- Reads ---------------------------------------------------------------

    @property
    def entries(self) -> tuple[LedgerEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    @property
    def total_collected(self) -> float:
        return float(self._collected)

    @property
    def total_distributed(self) -> float:
        return float(self._distributed)

    def is_credited(self, reference: str) -> bool:
        with self._lock:
            return reference in self._credited

    def fund_health(self) -> float:
        """Collected as a percentage of the collection target."""
        return round(float(self._collected) / self.target_collection * 100, 2)

    def snapshot(self) -> LedgerSnapshot:
        with self._lock:
            net_collected = self._collected - self._reversed_collected
            net_distributed = self._distributed - self._reversed_distributed
            health = self.fund_health()
            snap = LedgerSnapshot(
                fund=self.fund,
                total_collected=float(self._collected),
                total_distributed=float(self._distributed),
                net_collected=float(net_collected),
                net_distributed=float(net_distributed),
                balance=float(net_collected - net_distributed),
                target_collection=self.target_collection,
                fund_health_percentage=health,
                needs_advisory=health < self.advisory_below,
                overdrawn=self._distributed > self._collected,
                collected_by_type={k: float(v) for k, v in self._by_type.items()},
                distributed_by_category={k: float(v) for k, v in self._by_category.items()},
            )
        if snap.needs_advisory:
            logger.warning(f"{self.fund} fund at {snap.fund_health_percentage:.1f}% of target {self.target_collection:,.0f}")
        return snap
