"""Aid applications — asnaf categories, the application state machine, and its workflow."""

from .asnaf import ASNAF_DESCRIPTIONS, AsnafCategory, assign, parse_category
from .models import (
    TERMINAL_STATUSES,
    Action,
    AidApplication,
    Applicant,
    ApplicationKind,
    ApplicationStatus,
    BankDetails,
    Deceased,
    application_from_dict,
    application_to_dict,
)
from .store import ApplicationRepository, ApplicationStore
from .workflow import AidWorkflow, PayeeResolver

__all__ = [
    "ASNAF_DESCRIPTIONS",
    "TERMINAL_STATUSES",
    "Action",
    "AidApplication",
    "AidWorkflow",
    "Applicant",
    "ApplicationKind",
    "ApplicationRepository",
    "ApplicationStatus",
    "ApplicationStore",
    "AsnafCategory",
    "BankDetails",
    "Deceased",
    "PayeeResolver",
    "application_from_dict",
    "application_to_dict",
    "assign",
    "parse_category",
]
