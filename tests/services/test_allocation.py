import pytest

from condoledger.errors import InvariantViolation
from condoledger.models.payment import Allocation, AllocationType
from condoledger.services.allocation import build_allocations, validate_allocations
from condoledger.services.distribution import distribute


class TestBuildAllocations:
    def test_principal_and_penalty_lines(self, sample_bill):
        result = distribute([sample_bill(principal_due=95000, penalty_due=4750)], 99750, 0)

        allocations = build_allocations("TX-1", "A-101", result)

        assert [(a.allocation_type, a.amount) for a in allocations] == [
            (AllocationType.PENALTY, 4750),
            (AllocationType.PRINCIPAL, 95000),
        ]
        assert all(a.bill_id == "recurring:2026-03" for a in allocations)
        assert all(a.transaction_id == "TX-1" for a in allocations)
        validate_allocations(allocations, 99750)

    def test_overpayment_is_positive_credit_line(self, sample_bill):
        result = distribute([sample_bill(principal_due=95000)], 100000, 0)

        allocations = build_allocations("TX-1", "A-101", result)

        credit = allocations[-1]
        assert credit.allocation_type == AllocationType.CREDIT
        assert credit.bill_id is None
        assert credit.amount == 5000
        validate_allocations(allocations, 100000)

    def test_credit_consumption_is_negative_line(self, sample_bill):
        result = distribute([sample_bill(principal_due=95000)], 60000, 50000)

        allocations = build_allocations("TX-1", "A-101", result)

        assert allocations[-1].amount == -35000
        assert sum(a.amount for a in allocations) == 60000
        validate_allocations(allocations, 60000)

    def test_short_payment_is_all_credit(self, sample_bill):
        result = distribute([sample_bill(principal_due=95000)], 50000, 0)

        allocations = build_allocations("TX-1", "A-101", result)

        assert len(allocations) == 1
        assert allocations[0].allocation_type == AllocationType.CREDIT
        assert allocations[0].amount == 50000

    def test_credit_only_application_sums_to_zero(self, sample_bill):
        result = distribute([sample_bill(principal_due=95000)], 0, 95000)
        allocations = build_allocations("TX-1", "A-101", result)
        validate_allocations(allocations, 0)


class TestValidateAllocations:
    def test_sum_mismatch(self):
        allocations = [
            Allocation(unit_id="A-101", bill_id="b", allocation_type=AllocationType.PRINCIPAL, amount=100),
        ]
        with pytest.raises(InvariantViolation, match="sum to 100, expected 101"):
            validate_allocations(allocations, 101)

    def test_non_positive_bill_line(self):
        allocations = [
            Allocation(unit_id="A-101", bill_id="b", allocation_type=AllocationType.PRINCIPAL, amount=-5),
            Allocation(unit_id="A-101", allocation_type=AllocationType.CREDIT, amount=5),
        ]
        with pytest.raises(InvariantViolation, match="must be positive"):
            validate_allocations(allocations, 0)

    def test_bill_line_without_bill(self):
        allocations = [Allocation(unit_id="A-101", allocation_type=AllocationType.PENALTY, amount=5)]
        with pytest.raises(InvariantViolation, match="has no bill"):
            validate_allocations(allocations, 5)

    def test_two_credit_lines(self):
        allocations = [
            Allocation(unit_id="A-101", allocation_type=AllocationType.CREDIT, amount=5),
            Allocation(unit_id="A-101", allocation_type=AllocationType.CREDIT, amount=-5),
        ]
        with pytest.raises(InvariantViolation, match="at most one credit"):
            validate_allocations(allocations, 0)
