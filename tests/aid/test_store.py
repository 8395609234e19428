"""Tests for ApplicationStore — ids, copies, compare-and-swap saves."""

import re
from datetime import datetime

import pytest

from baitulmal.aid.models import AidApplication, ApplicationKind, ApplicationStatus
from baitulmal.aid.store import ApplicationStore
from baitulmal.core.exceptions import InvalidInput, InvalidTransition


@pytest.fixture
def store():
    return ApplicationStore()


def _add(store, applicant, kind=ApplicationKind.ZAKAT, **kwargs):
    app = AidApplication(id=store.next_id(kind), kind=kind, applicant=applicant, requested_amount=1000, **kwargs)
    store.add(app)
    return app


@pytest.mark.smoke
class TestIds:
    def test_sequential_per_kind(self, store):
        year = datetime.now().year
        assert store.next_id(ApplicationKind.ZAKAT) == f"ZA{year}001"
        assert store.next_id(ApplicationKind.ZAKAT) == f"ZA{year}002"
        assert store.next_id(ApplicationKind.KHAIRAT) == f"KH{year}001"

    def test_format(self, store):
        assert re.fullmatch(r"KH\d{4}\d{3}", store.next_id(ApplicationKind.KHAIRAT))


class TestCrud:
    def test_add_and_get(self, store, applicant):
        app = _add(store, applicant)
        loaded = store.get(app.id)
        assert loaded == app
        assert loaded is not app

    def test_get_returns_copies(self, store, applicant):
        app = _add(store, applicant)
        loaded = store.get(app.id)
        loaded.status = ApplicationStatus.APPROVED
        assert store.get(app.id).status == ApplicationStatus.PENDING

    def test_payee_is_copied(self, store, applicant):
        payee = {
            "type": "beneficiaries",
            "member_id": "M001",
            "shares": [{"beneficiary_id": "B1", "amount": 5000.0, "account_number": "1234567890"}],
        }
        app = _add(store, applicant, payee=payee)
        payee["shares"][0]["account_number"] = "changed after add"

        loaded = store.get(app.id)
        loaded.payee["type"] = "bank_transfer"
        loaded.payee["shares"][0]["account_number"] = "changed after get"

        stored = store.get(app.id).payee
        assert stored["type"] == "beneficiaries"
        assert stored["shares"][0]["account_number"] == "1234567890"

    def test_get_missing(self, store):
        with pytest.raises(InvalidInput, match="not found"):
            store.get("ZA1999001")

    def test_add_duplicate(self, store, applicant):
        app = _add(store, applicant)
        with pytest.raises(InvalidInput, match="already exists"):
            store.add(app)

    def test_list_filters(self, store, applicant):
        _add(store, applicant)
        _add(store, applicant, status=ApplicationStatus.REJECTED)
        _add(store, applicant, kind=ApplicationKind.KHAIRAT)
        assert len(store.list()) == 3
        assert len(store.list(kind=ApplicationKind.ZAKAT)) == 2
        assert len(store.list(status=ApplicationStatus.REJECTED)) == 1


class TestSave:
    def test_save_with_current_version(self, store, applicant):
        app = _add(store, applicant)
        app.status = ApplicationStatus.REVIEWING
        app.version = 1
        store.save(app, expected_version=0)
        assert store.get(app.id).status == ApplicationStatus.REVIEWING

    def test_stale_save_refused(self, store, applicant):
        app = _add(store, applicant)
        first = store.get(app.id)
        second = store.get(app.id)

        first.status = ApplicationStatus.APPROVED
        first.version = 1
        store.save(first, expected_version=0)

        second.status = ApplicationStatus.REJECTED
        second.version = 1
        with pytest.raises(InvalidTransition, match="modified concurrently"):
            store.save(second, expected_version=0)
        assert store.get(app.id).status == ApplicationStatus.APPROVED

    def test_save_unknown(self, store, applicant):
        app = AidApplication(id="ZA1999001", kind=ApplicationKind.ZAKAT, applicant=applicant, requested_amount=1)
        with pytest.raises(InvalidInput):
            store.save(app, expected_version=0)


class TestStats:
    def test_counts_and_paid_total(self, store, applicant):
        _add(store, applicant)
        _add(store, applicant, status=ApplicationStatus.PAID, approved_amount=800)
        _add(store, applicant, kind=ApplicationKind.KHAIRAT, status=ApplicationStatus.DISTRIBUTED, approved_amount=5000)

        stats = store.stats()
        assert stats["total"] == 3
        assert stats["by_status"]["pending"] == 1
        assert stats["by_status"]["approved"] == 0
        assert stats["total_paid"] == 5800

        assert store.stats(ApplicationKind.ZAKAT)["total_paid"] == 800
