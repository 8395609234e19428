"""
Baitulmal exception hierarchy.

All baitulmal exceptions inherit from BaitulmalError. Domain rule violations
(bad input, illegal transitions, allocation overflows) derive from
DomainRuleError: they are caller-recoverable and carry enough context
(entity id, attempted action, current state) to render a message.
"""

from __future__ import annotations

from typing import Any


class BaitulmalError(Exception):
    """Base exception class for all baitulmal errors."""


class ConfigurationError(BaitulmalError):
    """Raised for configuration errors (missing keys, invalid values)."""


class DomainRuleError(BaitulmalError):
    """Base class for synchronous, caller-recoverable rule violations."""

    def __init__(
        self,
        message: str,
        *,
        entity_id: str | None = None,
        action: str | None = None,
        state: str | None = None,
        **context: Any,
    ):
        super().__init__(message)
        self.message = message
        self.entity_id = entity_id
        self.action = action
        self.state = state
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        """Structured form for callers that render errors themselves."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "entity_id": self.entity_id,
            "action": self.action,
            "state": self.state,
            **self.context,
        }


class InvalidInput(DomainRuleError):
    """Negative amounts, unknown zakat types, malformed records."""


class IncompleteApplication(DomainRuleError):
    """Submission without a positive amount or the mandatory documents."""

    def __init__(self, message: str, *, missing_documents: list[str] | None = None, **kwargs: Any):
        super().__init__(message, missing_documents=sorted(missing_documents or []), **kwargs)
        self.missing_documents = sorted(missing_documents or [])


class InvalidTransition(DomainRuleError):
    """Transition attempted from a terminal state or outside its source set."""


class UnresolvedPayee(DomainRuleError):
    """Payout attempted without bank details or a complete beneficiary set."""


class InvalidPercentage(DomainRuleError):
    """Beneficiary share outside (0, 100]."""


class AllocationExceeded(DomainRuleError):
    """Beneficiary shares would total more than 100%."""


class UnknownAsnafCategory(DomainRuleError):
    """Category outside the eight asnaf."""
