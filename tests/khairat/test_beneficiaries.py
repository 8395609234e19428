"""Tests for baitulmal.khairat.beneficiaries."""

import threading

import pytest

from baitulmal.core.exceptions import AllocationExceeded, InvalidInput, InvalidPercentage
from baitulmal.khairat.beneficiaries import (
    AllocationStatus,
    Beneficiary,
    BeneficiaryAllocation,
    BeneficiaryOp,
    BeneficiaryRegistry,
)


@pytest.fixture
def allocation(family_beneficiaries):
    return BeneficiaryAllocation("M001", family_beneficiaries)


@pytest.mark.smoke
class TestValidate:
    def test_empty_set(self):
        report = BeneficiaryAllocation("M001").validate()
        assert report.status == AllocationStatus.EMPTY
        assert report.is_payable is False
        assert report.unallocated == 100.0

    def test_full_set_with_primary(self, allocation):
        report = allocation.validate()
        assert report.total == 100.0
        assert report.sum_ok is True
        assert report.has_primary is True
        assert report.primary_count == 1
        assert report.status == AllocationStatus.VALID
        assert report.is_payable is True

    def test_under_allocated(self):
        allocation = BeneficiaryAllocation("M001", [Beneficiary("B1", "Fatimah", 60, is_primary=True)])
        report = allocation.validate()
        assert report.status == AllocationStatus.INCOMPLETE
        assert report.unallocated == 40.0

    def test_full_without_primary(self):
        allocation = BeneficiaryAllocation("M001", [Beneficiary("B1", "A", 50), Beneficiary("B2", "B", 50)])
        report = allocation.validate()
        assert report.sum_ok is True
        assert report.has_primary is False
        assert report.status == AllocationStatus.INCOMPLETE

    def test_decimal_shares_sum_exactly(self):
        allocation = BeneficiaryAllocation(
            "M001",
            [
                Beneficiary("B1", "A", 33.33, is_primary=True),
                Beneficiary("B2", "B", 33.33),
                Beneficiary("B3", "C", 33.34),
            ],
        )
        assert allocation.validate().sum_ok is True

    def test_report_dict(self, allocation):
        assert allocation.validate().to_dict()["status"] == "valid"


class TestAdd:
    def test_over_allocation_rejected(self, allocation):
        with pytest.raises(AllocationExceeded) as exc_info:
            allocation.add(Beneficiary("B4", "Umar", 30))
        assert exc_info.value.context["total"] == 130.0
        assert len(allocation) == 3
        assert allocation.total == 100.0

    @pytest.mark.parametrize("percentage", [0, -5, 100.01, float("nan"), True, "abc"])
    def test_invalid_percentage(self, percentage):
        allocation = BeneficiaryAllocation("M001")
        with pytest.raises(InvalidPercentage):
            allocation.add(Beneficiary("B1", "Fatimah", percentage))
        assert len(allocation) == 0

    def test_single_beneficiary_at_100(self):
        allocation = BeneficiaryAllocation("M001")
        snapshot = allocation.add(Beneficiary("B1", "Fatimah", 100, is_primary=True))
        assert snapshot.report.is_payable

    def test_duplicate_id(self, allocation):
        with pytest.raises(InvalidInput, match="already registered"):
            allocation.add(Beneficiary("B1", "Someone", 1))


class TestUpdate:
    def test_update_percentage(self, allocation):
        allocation.update("B2", {"percentage": 20})
        assert allocation.get("B2").percentage == 20
        assert allocation.validate().status == AllocationStatus.INCOMPLETE

    def test_update_over_allocates(self, allocation):
        with pytest.raises(AllocationExceeded):
            allocation.update("B3", {"percentage": 20})
        assert allocation.get("B3").percentage == 15

    def test_update_contact_fields(self, allocation):
        allocation.update("B2", {"contact_phone": "019-8765432", "address": "Kampung Baru"})
        assert allocation.get("B2").contact_phone == "019-8765432"

    def test_update_unknown_field(self, allocation):
        with pytest.raises(InvalidInput, match="Cannot update"):
            allocation.update("B2", {"id": "B9"})

    def test_update_missing_beneficiary(self, allocation):
        with pytest.raises(InvalidInput, match="No beneficiary"):
            allocation.update("B9", {"name": "Ghost"})


class TestRemove:
    def test_remove(self, allocation):
        snapshot = allocation.remove("B3")
        assert [b.id for b in snapshot.beneficiaries] == ["B1", "B2"]
        assert snapshot.report.total == 85.0

    def test_remove_missing(self, allocation):
        with pytest.raises(InvalidInput):
            allocation.remove("B9")


class TestRegistry:
    def test_for_member_is_stable(self):
        registry = BeneficiaryRegistry()
        assert registry.for_member("M001") is registry.for_member("M001")
        assert registry.for_member("M001") is not registry.for_member("M002")

    def test_mutate_dispatch(self, family_beneficiaries):
        registry = BeneficiaryRegistry()
        for b in family_beneficiaries:
            registry.mutate("M001", "add", b)

        snapshot = registry.mutate("M001", BeneficiaryOp.UPDATE, beneficiary_id="B2", patch={"percentage": 20})
        assert snapshot.report.total == 95.0

        snapshot = registry.mutate("M001", "remove", beneficiary_id="B3")
        assert snapshot.report.count == 2

    def test_update_from_beneficiary(self, family_beneficiaries):
        registry = BeneficiaryRegistry()
        for b in family_beneficiaries:
            registry.mutate("M001", "add", b)
        snapshot = registry.mutate("M001", "update", Beneficiary("B3", "Aisyah binti Ahmad", 15))
        assert snapshot.beneficiaries[2].name == "Aisyah binti Ahmad"

    def test_unknown_op(self):
        with pytest.raises(InvalidInput, match="Unknown beneficiary operation"):
            BeneficiaryRegistry().mutate("M001", "merge")

    def test_add_without_beneficiary(self):
        with pytest.raises(InvalidInput):
            BeneficiaryRegistry().mutate("M001", "add")


class TestConcurrency:
    def test_concurrent_adds_never_exceed_100(self):
        allocation = BeneficiaryAllocation("M001")
        barrier = threading.Barrier(10)

        def add(i):
            barrier.wait()
            try:
                allocation.add(Beneficiary(f"B{i}", f"Heir {i}", 30, is_primary=i == 0))
            except AllocationExceeded:
                pass

        threads = [threading.Thread(target=add, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(allocation) == 3
        assert allocation.total == 90.0
