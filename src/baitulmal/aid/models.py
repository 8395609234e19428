"""Data models for financial-aid applications.

Pure data plus the transition table; the workflow service owns mutation.

State machine:
    pending -> reviewing -> approved -> paid
    pending/reviewing -> rejected
    approved -> distributed (khairat only: payout split across beneficiaries)

paid, distributed and rejected are terminal.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from baitulmal.core.exceptions import InvalidTransition

from .asnaf import AsnafCategory


class ApplicationKind(StrEnum):
    ZAKAT = "zakat"
    KHAIRAT = "khairat"


class ApplicationStatus(StrEnum):
    PENDING = "pending"
    REVIEWING = "reviewing"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"
    DISTRIBUTED = "distributed"


class Action(StrEnum):
    BEGIN_REVIEW = "begin_review"
    APPROVE = "approve"
    REJECT = "reject"
    MARK_PAID = "mark_paid"
    DISTRIBUTE = "distribute"


_REVIEWABLE = frozenset({ApplicationStatus.PENDING, ApplicationStatus.REVIEWING})

# action -> (allowed source statuses, target status)
ACTION_RULES: dict[Action, tuple[frozenset[ApplicationStatus], ApplicationStatus]] = {
    Action.BEGIN_REVIEW: (_REVIEWABLE, ApplicationStatus.REVIEWING),
    Action.APPROVE: (_REVIEWABLE, ApplicationStatus.APPROVED),
    Action.REJECT: (_REVIEWABLE, ApplicationStatus.REJECTED),
    Action.MARK_PAID: (frozenset({ApplicationStatus.APPROVED}), ApplicationStatus.PAID),
    Action.DISTRIBUTE: (frozenset({ApplicationStatus.APPROVED}), ApplicationStatus.DISTRIBUTED),
}

# Actions available per application kind
KIND_ACTIONS: dict[ApplicationKind, frozenset[Action]] = {
    ApplicationKind.ZAKAT: frozenset(
        {Action.BEGIN_REVIEW, Action.APPROVE, Action.REJECT, Action.MARK_PAID},
    ),
    ApplicationKind.KHAIRAT: frozenset(Action),
}

TERMINAL_STATUSES = frozenset({ApplicationStatus.PAID, ApplicationStatus.DISTRIBUTED, ApplicationStatus.REJECTED})
PAYOUT_STATUSES = frozenset({ApplicationStatus.PAID, ApplicationStatus.DISTRIBUTED})

# Mandatory supporting documents per kind
REQUIRED_DOCUMENTS: dict[ApplicationKind, frozenset[str]] = {
    ApplicationKind.ZAKAT: frozenset({"applicant_ic", "income_statement"}),
    ApplicationKind.KHAIRAT: frozenset(
        {"death_certificate", "hospital_confirmation", "applicant_ic", "deceased_ic", "bank_statement"},
    ),
}


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


@dataclass
class Applicant:
    name: str
    identity_number: str
    phone: str = ""
    email: str = ""
    relationship: str = ""  # to the deceased, for khairat claims


@dataclass
class Deceased:
    """Deceased member a khairat claim is made against."""

    member_id: str
    name: str = ""
    identity_number: str = ""
    date_of_death: str = ""  # ISO 8601 date


@dataclass(frozen=True)
class BankDetails:
    account_name: str
    account_number: str
    bank_name: str

    @property
    def is_complete(self) -> bool:
        return bool(self.account_name.strip() and self.account_number.strip() and self.bank_name.strip())


@dataclass
class AidApplication:
    """A single zakat aid request or khairat death-benefit claim."""

    id: str
    kind: ApplicationKind
    applicant: Applicant
    requested_amount: float
    category: AsnafCategory | None = None  # zakat only
    status: ApplicationStatus = ApplicationStatus.PENDING
    approved_amount: float | None = None
    supporting_documents: set[str] = field(default_factory=set)
    reason: str = ""
    deceased: Deceased | None = None  # khairat only
    bank_details: BankDetails | None = None
    submitted_at: str = field(default_factory=_now)
    reviewed_at: str | None = None
    paid_at: str | None = None
    reviewer: str | None = None
    review_notes: str = ""
    rejection_reason: str | None = None
    payee: dict[str, Any] | None = None  # resolved at payout
    credited: bool = False  # ledger credited for this payout
    version: int = 0  # bumped on every committed transition

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def member_id(self) -> str | None:
        return self.deceased.member_id if self.deceased else None


def validate_transition(application: AidApplication, action: Action) -> ApplicationStatus:
    """Return the target status for *action*, or raise InvalidTransition."""
    if action not in KIND_ACTIONS[application.kind]:
        raise InvalidTransition(
            f"Action {action.value} is not available for {application.kind.value} applications",
            entity_id=application.id,
            action=action.value,
            state=application.status.value,
        )
    sources, target = ACTION_RULES[action]
    if application.status not in sources:
        raise InvalidTransition(
            f"Invalid transition: {application.status.value} -/-> {target.value} via {action.value}. "
            f"Allowed from: {', '.join(sorted(s.value for s in sources))}",
            entity_id=application.id,
            action=action.value,
            state=application.status.value,
        )
    return target


def application_to_dict(app: AidApplication) -> dict[str, Any]:
    """Serialize an AidApplication to a JSON-safe dict."""
    return {
        "id": app.id,
        "kind": app.kind.value,
        "applicant": {
            "name": app.applicant.name,
            "identity_number": app.applicant.identity_number,
            "phone": app.applicant.phone,
            "email": app.applicant.email,
            "relationship": app.applicant.relationship,
        },
        "requested_amount": app.requested_amount,
        "category": app.category.value if app.category else None,
        "status": app.status.value,
        "approved_amount": app.approved_amount,
        "supporting_documents": sorted(app.supporting_documents),
        "reason": app.reason,
        "deceased": (
            {
                "member_id": app.deceased.member_id,
                "name": app.deceased.name,
                "identity_number": app.deceased.identity_number,
                "date_of_death": app.deceased.date_of_death,
            }
            if app.deceased
            else None
        ),
        "bank_details": (
            {
                "account_name": app.bank_details.account_name,
                "account_number": app.bank_details.account_number,
                "bank_name": app.bank_details.bank_name,
            }
            if app.bank_details
            else None
        ),
        "submitted_at": app.submitted_at,
        "reviewed_at": app.reviewed_at,
        "paid_at": app.paid_at,
        "reviewer": app.reviewer,
        "review_notes": app.review_notes,
        "rejection_reason": app.rejection_reason,
        "payee": copy.deepcopy(app.payee),
        "credited": app.credited,
        "version": app.version,
    }


def application_from_dict(data: dict[str, Any]) -> AidApplication:
    """Deserialize an AidApplication from a dict."""
    data = dict(data)  # shallow copy to avoid mutating caller's dict
    applicant = Applicant(**data.pop("applicant"))
    deceased_data = data.pop("deceased", None)
    bank_data = data.pop("bank_details", None)
    category = data.pop("category", None)
    data["payee"] = copy.deepcopy(data.get("payee"))

    return AidApplication(
        **{k: v for k, v in data.items() if k not in ("kind", "status", "supporting_documents")},
        kind=ApplicationKind(data["kind"]),
        status=ApplicationStatus(data.get("status", "pending")),
        supporting_documents=set(data.get("supporting_documents", [])),
        applicant=applicant,
        category=AsnafCategory(category) if category else None,
        deceased=Deceased(**deceased_data) if deceased_data else None,
        bank_details=BankDetails(**bank_data) if bank_data else None,
    )
