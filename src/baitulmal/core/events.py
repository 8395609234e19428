"""Event bus for loose-coupled extensibility.

Lets persistence, notification and reporting collaborators react to
committed state changes without the engine depending on them. Hooks run
synchronously, in registration order, after the change is applied.

Usage::

    from baitulmal.core.events import EventBus, Event, APPLICATION_PAID

    bus = EventBus()
    bus.on(APPLICATION_PAID, lambda event: notify(event.payload["application_id"]))
    bus.emit(Event(name=APPLICATION_PAID, payload={"application_id": "ZA2025001"}))
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from time import time
from typing import Any

from loguru import logger

# ---------------------------------------------------------------------------
# Well-known event names
# ---------------------------------------------------------------------------

APPLICATION_SUBMITTED = "application.submitted"
APPLICATION_TRANSITIONED = "application.transitioned"  # payload: {application_id, from, to, action}
APPLICATION_PAID = "application.paid"  # payload: {application_id, amount, kind}
LEDGER_COLLECTION_RECORDED = "ledger.collection_recorded"
LEDGER_DISTRIBUTION_RECORDED = "ledger.distribution_recorded"
BENEFICIARIES_CHANGED = "beneficiaries.changed"  # payload: {member_id, op, total}

Hook = Callable[["Event"], None]


@dataclass(frozen=True)
class Event:
    """An immutable event that flows through the bus."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time)
    source: str = ""


class EventBus:
    """Simple synchronous pub/sub bus."""

    def __init__(self) -> None:
        self._hooks: dict[str, list[Hook]] = defaultdict(list)
        self._wildcard_hooks: list[Hook] = []

    def on(self, event_name: str, hook: Hook) -> None:
        """Register *hook* for a specific event name."""
        self._hooks[event_name].append(hook)

    def on_all(self, hook: Hook) -> None:
        """Register *hook* for all events (wildcard)."""
        self._wildcard_hooks.append(hook)

    def off(self, event_name: str, hook: Hook) -> None:
        """Unregister *hook* from a specific event name."""
        try:
            self._hooks[event_name].remove(hook)
        except ValueError:
            pass

    def emit(self, event: Event) -> None:
        """Run all matching hooks. A failing hook is logged and does not stop the others."""
        hooks = list(self._hooks.get(event.name, []))
        hooks.extend(self._wildcard_hooks)
        for hook in hooks:
            try:
                hook(event)
            except Exception as exc:
                logger.warning(f"Event hook failed for {event.name}: {exc}")
