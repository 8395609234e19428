"""ApplicationStore — thread-safe in-memory repository for aid applications.

Stored state is kept serialized, so callers always work on their own copy
and a write only lands through ``save()``. ``save()`` is a compare-and-swap
on the application's version: a writer holding a stale copy is refused.

Application IDs are human-readable and sequential per kind and year:
ZA2025001 for zakat, KH2025001 for khairat.
"""

from __future__ import annotations

import threading
from collections import Counter
from datetime import datetime
from typing import Any, Protocol

from loguru import logger

from baitulmal.core.exceptions import InvalidInput, InvalidTransition

from .models import (
    PAYOUT_STATUSES,
    AidApplication,
    ApplicationKind,
    ApplicationStatus,
    application_from_dict,
    application_to_dict,
)

_ID_PREFIX = {
    ApplicationKind.ZAKAT: "ZA",
    ApplicationKind.KHAIRAT: "KH",
}


class ApplicationRepository(Protocol):
    """Persistence adapter consumed by the workflow."""

    def next_id(self, kind: ApplicationKind) -> str: ...

    def get(self, application_id: str) -> AidApplication: ...

    def add(self, application: AidApplication) -> None: ...

    def save(self, application: AidApplication, *, expected_version: int) -> None: ...


class ApplicationStore:
    """Default in-process repository."""

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._sequences: Counter[str] = Counter()

    # -- ID generation -------------------------------------------------------

    def next_id(self, kind: ApplicationKind) -> str:
        """Generate ZA/KH + year + 3-digit sequence."""
        prefix = f"{_ID_PREFIX[kind]}{datetime.now().year}"
        with self._lock:
            self._sequences[prefix] += 1
            return f"{prefix}{self._sequences[prefix]:03d}"

    # -- CRUD ----------------------------------------------------------------

    def get(self, application_id: str) -> AidApplication:
        with self._lock:
            record = self._records.get(application_id)
        if record is None:
            raise InvalidInput(f"Application {application_id} not found", entity_id=application_id)
        return application_from_dict(record)

    def add(self, application: AidApplication) -> None:
        with self._lock:
            if application.id in self._records:
                raise InvalidInput(f"Application {application.id} already exists", entity_id=application.id)
            self._records[application.id] = application_to_dict(application)

    def save(self, application: AidApplication, *, expected_version: int) -> None:
        """Write *application* if the stored version is still *expected_version*."""
        with self._lock:
            stored = self._records.get(application.id)
            if stored is None:
                raise InvalidInput(f"Application {application.id} not found", entity_id=application.id)
            if stored["version"] != expected_version:
                logger.warning(
                    f"Stale write to {application.id}: expected v{expected_version}, stored v{stored['version']}"
                )
                raise InvalidTransition(
                    f"Application {application.id} was modified concurrently (now {stored['status']})",
                    entity_id=application.id,
                    state=stored["status"],
                )
            self._records[application.id] = application_to_dict(application)

    def list(
        self,
        *,
        kind: ApplicationKind | None = None,
        status: ApplicationStatus | None = None,
    ) -> list[AidApplication]:
        with self._lock:
            records = list(self._records.values())
        apps = [application_from_dict(r) for r in records]
        if kind is not None:
            apps = [a for a in apps if a.kind == kind]
        if status is not None:
            apps = [a for a in apps if a.status == status]
        return apps

    def stats(self, kind: ApplicationKind | None = None) -> dict[str, Any]:
        """Counts by status and total paid out, for dashboards."""
        apps = self.list(kind=kind)
        by_status = Counter(a.status.value for a in apps)
        total_paid = sum(a.approved_amount or 0.0 for a in apps if a.status in PAYOUT_STATUSES)
        return {
            "total": len(apps),
            "by_status": {s.value: by_status.get(s.value, 0) for s in ApplicationStatus},
            "total_paid": round(total_paid, 2),
        }
