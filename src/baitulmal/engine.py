"""CharityEngine — the entry point UI and admin callers talk to.

Wires the nisab table, fund ledgers, beneficiary registry and aid workflow
from configuration and exposes the operations screens need: assess zakat,
submit and advance applications, edit beneficiaries, read fund totals.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from baitulmal.aid.asnaf import AsnafCategory
from baitulmal.aid.models import (
    Action,
    AidApplication,
    Applicant,
    ApplicationKind,
    BankDetails,
    Deceased,
)
from baitulmal.aid.store import ApplicationRepository
from baitulmal.aid.workflow import AidWorkflow, Authorizer, PayeeResolver
from baitulmal.core.config import Config
from baitulmal.core.events import BENEFICIARIES_CHANGED, Event, EventBus
from baitulmal.core.exceptions import InvalidInput
from baitulmal.khairat.beneficiaries import (
    Beneficiary,
    BeneficiaryOp,
    BeneficiaryRegistry,
    BeneficiarySetSnapshot,
)
from baitulmal.khairat.benefits import BenefitSchedule
from baitulmal.ledger.disbursement import DisbursementLedger, LedgerEntry
from baitulmal.zakat.calculator import Ledger, ZakatAssessment, ZakatCalculator
from baitulmal.zakat.nisab import NisabTable, ZakatType, parse_zakat_type


class CharityEngine:
    """Zakat and khairat fund engine."""

    def __init__(
        self,
        config: Config | None = None,
        *,
        nisab_table: NisabTable | None = None,
        store: ApplicationRepository | None = None,
        payee_resolver: PayeeResolver | None = None,
        authorize: Authorizer | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self.config = config or Config()
        settings = self.config.validated()

        self.bus = bus or EventBus()
        self.calculator = ZakatCalculator(nisab_table or NisabTable.from_config(self.config))
        self.ledgers = {
            ApplicationKind.ZAKAT: DisbursementLedger(
                settings.funds.zakat.target,
                fund=ApplicationKind.ZAKAT.value,
                advisory_below=settings.funds.health_advisory_below,
                bus=self.bus,
            ),
            ApplicationKind.KHAIRAT: DisbursementLedger(
                settings.funds.khairat.target,
                fund=ApplicationKind.KHAIRAT.value,
                advisory_below=settings.funds.health_advisory_below,
                bus=self.bus,
            ),
        }
        self.beneficiaries = BeneficiaryRegistry()

        required_documents = {}
        if settings.zakat.required_documents:
            required_documents[ApplicationKind.ZAKAT] = settings.zakat.required_documents
        if settings.khairat.required_documents:
            required_documents[ApplicationKind.KHAIRAT] = settings.khairat.required_documents

        self.workflow = AidWorkflow(
            self.ledgers,
            store=store,
            beneficiaries=self.beneficiaries,
            payee_resolver=payee_resolver,
            benefit_schedule=BenefitSchedule.from_config(self.config),
            required_documents=required_documents or None,
            authorize=authorize,
            bus=self.bus,
        )

    # -- Zakat ---------------------------------------------------------------

    def assess(self, ledger: Ledger, zakat_type: ZakatType | str) -> ZakatAssessment:
        return self.calculator.assess(ledger, zakat_type)

    def reload_nisab(self, table: NisabTable | None = None) -> NisabTable:
        """Replace the nisab table, re-reading config when no table is given."""
        table = table or NisabTable.from_config(self.config)
        self.calculator.reload(table)
        return table

    # -- Applications --------------------------------------------------------

    def submit_application(
        self,
        kind: ApplicationKind | str,
        requested_amount: float | ZakatAssessment | None,
        documents: list[str] | set[str] | tuple[str, ...],
        category: AsnafCategory | str | None = None,
        *,
        applicant: Applicant,
        deceased: Deceased | None = None,
        bank_details: BankDetails | None = None,
        plan: str | None = None,
        reason: str = "",
    ) -> AidApplication:
        return self.workflow.submit(
            kind,
            applicant,
            requested_amount,
            documents,
            category=category,
            deceased=deceased,
            bank_details=bank_details,
            plan=plan,
            reason=reason,
        )

    def transition(self, application_id: str, action: Action | str, payload: dict[str, Any] | None = None) -> AidApplication:
        return self.workflow.transition(application_id, action, payload)

    def assign_category(self, application_id: str, category: AsnafCategory | str) -> AidApplication:
        return self.workflow.assign_category(application_id, category)

    def get_application(self, application_id: str) -> AidApplication:
        return self.workflow.store.get(application_id)

    # -- Beneficiaries -------------------------------------------------------

    def mutate_beneficiaries(
        self,
        member_id: str,
        op: BeneficiaryOp | str,
        beneficiary: Beneficiary | None = None,
        *,
        beneficiary_id: str | None = None,
        patch: dict[str, Any] | None = None,
    ) -> BeneficiarySetSnapshot:
        snapshot = self.beneficiaries.mutate(
            member_id, op, beneficiary, beneficiary_id=beneficiary_id, patch=patch
        )
        self.bus.emit(
            Event(
                name=BENEFICIARIES_CHANGED,
                payload={"member_id": member_id, "op": str(op), "total": snapshot.report.total},
                source="engine",
            )
        )
        return snapshot

    def beneficiary_snapshot(self, member_id: str) -> BeneficiarySetSnapshot:
        return self.beneficiaries.for_member(member_id).snapshot()

    # -- Ledger --------------------------------------------------------------

    def _ledger(self, fund: ApplicationKind | str) -> DisbursementLedger:
        try:
            return self.ledgers[ApplicationKind(fund)]
        except ValueError:
            raise InvalidInput(f"Unknown fund: {fund!r}") from None

    def record_collection(
        self,
        amount: float,
        zakat_type: ZakatType | str | None = None,
        *,
        fund: ApplicationKind | str = ApplicationKind.ZAKAT,
        reference: str | None = None,
    ) -> LedgerEntry:
        ledger = self._ledger(fund)
        if zakat_type is not None and ledger.fund == ApplicationKind.ZAKAT.value:
            zakat_type = parse_zakat_type(zakat_type)
        return ledger.record_collection(amount, zakat_type, reference=reference)

    def ledger_snapshot(self, fund: ApplicationKind | str = ApplicationKind.ZAKAT) -> dict[str, Any]:
        snapshot = self._ledger(fund).snapshot()
        logger.debug(f"{snapshot.fund} ledger snapshot: {snapshot.total_collected:,.2f} collected")
        return snapshot.to_dict()
