"""AidWorkflow — drives aid applications through review to payout.

Every transition runs under the application's own lock and follows the same
path: load a fresh copy, check the state machine, check the action's guards,
apply the change to the copy, then compare-and-swap it into the store. A
failed check raises before anything is written, so the stored application is
unchanged.

Payouts credit the fund ledger, keyed by application id, only once the paid
or distributed application has been saved. A save that fails leaves the
ledger untouched; a repeated credit for the same id is ignored.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import asdict
from datetime import datetime
from typing import Any, Protocol

from loguru import logger

from baitulmal.core.events import (
    APPLICATION_PAID,
    APPLICATION_SUBMITTED,
    APPLICATION_TRANSITIONED,
    Event,
    EventBus,
)
from baitulmal.core.exceptions import IncompleteApplication, InvalidInput, InvalidTransition, UnresolvedPayee
from baitulmal.khairat.beneficiaries import BeneficiaryRegistry
from baitulmal.khairat.benefits import BenefitSchedule, split_payout
from baitulmal.ledger.disbursement import DisbursementLedger
from baitulmal.zakat.calculator import ZakatAssessment

from .asnaf import AsnafCategory, assign, parse_category
from .models import (
    REQUIRED_DOCUMENTS,
    Action,
    AidApplication,
    Applicant,
    ApplicationKind,
    ApplicationStatus,
    BankDetails,
    Deceased,
    validate_transition,
)
from .store import ApplicationRepository, ApplicationStore

Authorizer = Callable[[str | None, Action, AidApplication], None]


class PayeeResolver(Protocol):
    """Looks up the bank account a zakat payout goes to."""

    def resolve(self, application: AidApplication) -> BankDetails | None: ...


class ApplicationBankDetails:
    """Default resolver: pay the account given on the application."""

    def resolve(self, application: AidApplication) -> BankDetails | None:
        return application.bank_details


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _positive_amount(value: Any, *, entity_id: str | None, action: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value != value:
        raise InvalidInput(f"Amount must be a number, got {value!r}", entity_id=entity_id, action=action)
    if value <= 0:
        raise InvalidInput(f"Amount must be positive, got {value}", entity_id=entity_id, action=action)
    return float(value)


class AidWorkflow:
    """Submission, review and payout of zakat aid and khairat claims."""

    def __init__(
        self,
        ledgers: dict[ApplicationKind, DisbursementLedger],
        *,
        store: ApplicationRepository | None = None,
        beneficiaries: BeneficiaryRegistry | None = None,
        payee_resolver: PayeeResolver | None = None,
        benefit_schedule: BenefitSchedule | None = None,
        required_documents: dict[ApplicationKind, Iterable[str]] | None = None,
        authorize: Authorizer | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self.ledgers = ledgers
        self.store = store or ApplicationStore()
        self.beneficiaries = beneficiaries or BeneficiaryRegistry()
        self.payee_resolver = payee_resolver or ApplicationBankDetails()
        self.benefit_schedule = benefit_schedule or BenefitSchedule()
        self.required_documents = {
            kind: frozenset(docs) for kind, docs in (required_documents or REQUIRED_DOCUMENTS).items()
        }
        self._authorize = authorize
        self._bus = bus or EventBus()
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, application_id: str) -> threading.Lock:
        # unknown ids raise here and never get a lock
        self.store.get(application_id)
        with self._locks_guard:
            if application_id not in self._locks:
                self._locks[application_id] = threading.Lock()
            return self._locks[application_id]

    # -- Submission ----------------------------------------------------------

    def submit(
        self,
        kind: ApplicationKind | str,
        applicant: Applicant,
        requested_amount: float | ZakatAssessment | None = None,
        documents: Iterable[str] = (),
        *,
        category: AsnafCategory | str | None = None,
        deceased: Deceased | None = None,
        bank_details: BankDetails | None = None,
        plan: str | None = None,
        reason: str = "",
    ) -> AidApplication:
        """Create a new application in ``pending``.

        For khairat claims the requested amount defaults to the benefit
        schedule for *plan*; an assessment may be passed for zakat, in which
        case its amount due is requested.

        Raises:
            IncompleteApplication: non-positive amount, missing mandatory
                documents, missing category (zakat) or deceased (khairat).
            UnknownAsnafCategory: category outside the eight asnaf.
        """
        try:
            kind = ApplicationKind(kind)
        except ValueError:
            raise InvalidInput(f"Unknown application kind: {kind!r}", action="submit") from None

        if isinstance(requested_amount, ZakatAssessment):
            requested_amount = requested_amount.amount_due
        if requested_amount is None and kind == ApplicationKind.KHAIRAT:
            requested_amount = self.benefit_schedule.requested_amount_for(plan)

        if (
            isinstance(requested_amount, bool)
            or not isinstance(requested_amount, (int, float))
            or not requested_amount > 0
        ):
            raise IncompleteApplication(
                f"Requested amount must be greater than 0, got {requested_amount!r}", action="submit"
            )

        docs = {d.strip() for d in documents if d and d.strip()}
        missing = self.required_documents.get(kind, frozenset()) - docs
        if missing:
            raise IncompleteApplication(
                f"Missing mandatory documents for {kind.value} application: {', '.join(sorted(missing))}",
                action="submit",
                missing_documents=list(missing),
            )

        parsed_category = None
        if kind == ApplicationKind.ZAKAT:
            if category is None:
                raise IncompleteApplication("Zakat applications need an asnaf category", action="submit")
            parsed_category = parse_category(category)
        elif deceased is None or not deceased.member_id:
            raise IncompleteApplication("Khairat claims must name the deceased member", action="submit")

        application = AidApplication(
            id=self.store.next_id(kind),
            kind=kind,
            applicant=applicant,
            requested_amount=float(requested_amount),
            category=parsed_category,
            supporting_documents=docs,
            reason=reason,
            deceased=deceased if kind == ApplicationKind.KHAIRAT else None,
            bank_details=bank_details,
        )
        self.store.add(application)
        logger.info(f"Application {application.id} submitted ({kind.value}, {application.requested_amount:,.2f})")
        self._bus.emit(
            Event(
                name=APPLICATION_SUBMITTED,
                payload={"application_id": application.id, "kind": kind.value},
                source="workflow",
            )
        )
        return application

    # -- Transitions ---------------------------------------------------------

    def begin_review(self, application_id: str, *, actor: str | None = None) -> AidApplication:
        return self._transition(application_id, Action.BEGIN_REVIEW, actor, self._apply_begin_review)

    def approve(
        self,
        application_id: str,
        approved_amount: float | None,
        reviewer: str,
        *,
        notes: str = "",
    ) -> AidApplication:
        """Approve for *approved_amount*, which may differ from the request.

        Without an amount the requested amount is approved.
        """

        def apply(app: AidApplication) -> None:
            if approved_amount is None:
                amount = app.requested_amount
            else:
                amount = _positive_amount(approved_amount, entity_id=app.id, action=Action.APPROVE.value)
            self._require_reviewer(app, reviewer, Action.APPROVE)
            if amount > app.requested_amount:
                logger.info(f"Application {app.id} approved above request: {amount:,.2f} > {app.requested_amount:,.2f}")
            app.approved_amount = amount
            app.reviewer = reviewer
            app.reviewed_at = _now()
            app.review_notes = notes

        return self._transition(application_id, Action.APPROVE, reviewer, apply)

    def reject(self, application_id: str, reason: str, reviewer: str, *, notes: str = "") -> AidApplication:
        def apply(app: AidApplication) -> None:
            self._require_reviewer(app, reviewer, Action.REJECT)
            if not reason or not reason.strip():
                raise InvalidInput(
                    "A rejection needs a reason", entity_id=app.id, action=Action.REJECT.value, state=app.status.value
                )
            app.rejection_reason = reason
            app.reviewer = reviewer
            app.reviewed_at = _now()
            app.review_notes = notes

        return self._transition(application_id, Action.REJECT, reviewer, apply)

    def assign_category(
        self, application_id: str, category: AsnafCategory | str, *, actor: str | None = None
    ) -> AidApplication:
        """Record the asnaf category on an open zakat application; no status change."""
        parsed = parse_category(category)
        with self._lock_for(application_id):
            app = self.store.get(application_id)
            if app.is_terminal:
                raise InvalidTransition(
                    f"Application {app.id} is {app.status.value}; its category can no longer change",
                    entity_id=app.id,
                    action="assign_category",
                    state=app.status.value,
                )
            expected_version = app.version
            assign(app, parsed)
            app.version += 1
            self.store.save(app, expected_version=expected_version)
        return app

    def mark_paid(self, application_id: str, *, actor: str | None = None) -> AidApplication:
        return self._transition(
            application_id, Action.MARK_PAID, actor, lambda app: self._apply_payout(app, Action.MARK_PAID)
        )

    def distribute(self, application_id: str, *, actor: str | None = None) -> AidApplication:
        return self._transition(
            application_id, Action.DISTRIBUTE, actor, lambda app: self._apply_payout(app, Action.DISTRIBUTE)
        )

    def transition(
        self,
        application_id: str,
        action: Action | str,
        payload: dict[str, Any] | None = None,
    ) -> AidApplication:
        """Dispatch an action by name.

        Payload keys: ``approved_amount``, ``reviewer``, ``reason``, ``notes``, ``actor``.
        """
        payload = dict(payload or {})
        try:
            action = Action(action)
        except ValueError:
            raise InvalidInput(f"Unknown action: {action!r}", entity_id=application_id) from None

        match action:
            case Action.BEGIN_REVIEW:
                return self.begin_review(application_id, actor=payload.get("actor"))
            case Action.APPROVE:
                return self.approve(
                    application_id,
                    payload.get("approved_amount"),
                    payload.get("reviewer", ""),
                    notes=payload.get("notes", ""),
                )
            case Action.REJECT:
                return self.reject(
                    application_id,
                    payload.get("reason", ""),
                    payload.get("reviewer", ""),
                    notes=payload.get("notes", ""),
                )
            case Action.MARK_PAID:
                return self.mark_paid(application_id, actor=payload.get("actor"))
            case Action.DISTRIBUTE:
                return self.distribute(application_id, actor=payload.get("actor"))

    # -- Internals -----------------------------------------------------------

    def _transition(
        self,
        application_id: str,
        action: Action,
        actor: str | None,
        apply: Callable[[AidApplication], None],
    ) -> AidApplication:
        with self._lock_for(application_id):
            app = self.store.get(application_id)
            if action == Action.BEGIN_REVIEW and app.status == ApplicationStatus.REVIEWING:
                return app

            target = validate_transition(app, action)
            if self._authorize is not None:
                self._authorize(actor, action, app)

            previous = app.status
            expected_version = app.version
            apply(app)
            app.status = target
            app.version += 1
            self.store.save(app, expected_version=expected_version)
            if target in (ApplicationStatus.PAID, ApplicationStatus.DISTRIBUTED):
                self._credit_ledger(app)

        logger.info(f"Application {app.id}: {previous.value} -> {target.value} ({action.value})")
        self._bus.emit(
            Event(
                name=APPLICATION_TRANSITIONED,
                payload={"application_id": app.id, "from": previous.value, "to": target.value, "action": action.value},
                source="workflow",
            )
        )
        if app.credited and target in (ApplicationStatus.PAID, ApplicationStatus.DISTRIBUTED):
            self._bus.emit(
                Event(
                    name=APPLICATION_PAID,
                    payload={"application_id": app.id, "amount": app.approved_amount, "kind": app.kind.value},
                    source="workflow",
                )
            )
        return app

    @staticmethod
    def _apply_begin_review(app: AidApplication) -> None:
        pass

    @staticmethod
    def _require_reviewer(app: AidApplication, reviewer: str, action: Action) -> None:
        if not reviewer or not reviewer.strip():
            raise InvalidInput(
                "A reviewer identity is required", entity_id=app.id, action=action.value, state=app.status.value
            )

    def _resolve_payee(self, app: AidApplication, action: Action) -> dict[str, Any]:
        if app.kind == ApplicationKind.ZAKAT:
            bank = self.payee_resolver.resolve(app)
            if bank is None or not bank.is_complete:
                raise UnresolvedPayee(
                    f"No bank details on record for application {app.id}",
                    entity_id=app.id,
                    action=action.value,
                    state=app.status.value,
                )
            return {"type": "bank_transfer", **asdict(bank)}

        snapshot = self.beneficiaries.for_member(app.member_id).snapshot()
        report = snapshot.report
        if not report.is_payable:
            raise UnresolvedPayee(
                f"Beneficiaries of member {app.member_id} are {report.status.value}: "
                f"total {report.total}%, {report.primary_count} primary",
                entity_id=app.id,
                action=action.value,
                state=app.status.value,
                member_id=app.member_id,
                allocation=report.to_dict(),
            )
        shares = split_payout(app.approved_amount, snapshot.beneficiaries)
        return {"type": "beneficiaries", "member_id": app.member_id, "shares": [asdict(s) for s in shares]}

    def _apply_payout(self, app: AidApplication, action: Action) -> None:
        app.payee = self._resolve_payee(app, action)
        app.credited = True
        app.paid_at = _now()

    def _credit_ledger(self, app: AidApplication) -> None:
        self.ledgers[app.kind].record_distribution(
            app.approved_amount,
            app.category.value if app.category else app.kind.value,
            reference=app.id,
        )
