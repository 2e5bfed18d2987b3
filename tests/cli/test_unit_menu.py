from datetime import date, datetime
from unittest.mock import MagicMock, patch

from condoledger.errors import MissingConfig
from condoledger.models.bill import BillDomain, BillStatus
from condoledger.models.credit import CreditHistoryLine, CreditLedgerEntry
from condoledger.models.distribution import BillPayment, DistributionResult
from condoledger.models.payment import PaymentRecord
from condoledger.models.projection import ProjectedBill, Projection
from condoledger.models.reconciliation import BillMismatch, DiscrepancyReport, SuspectedCause
from condoledger.services.payment_service import PaymentOutcome


def _distribution() -> DistributionResult:
    return DistributionResult(
        payment_amount=100000,
        credit_balance_before=0,
        bill_payments=[
            BillPayment(
                bill_id="recurring:2026-03",
                domain=BillDomain.RECURRING,
                cohort_key="2026-03-10",
                principal_paid=95000,
                principal_unpaid_before=95000,
                new_status=BillStatus.PAID,
            )
        ],
        overpayment=5000,
        new_credit_balance=5000,
        total_bills_due=95000,
    )


def _mismatch_report() -> DiscrepancyReport:
    mismatch = BillMismatch(
        bill_id="recurring:2026-03",
        domain=BillDomain.RECURRING,
        stored_paid=95000,
        allocated_paid=0,
        delta=95000,
        suspected_cause=SuspectedCause.NO_ALLOCATIONS,
    )
    return DiscrepancyReport(detected=True, primary=mismatch, mismatches=[mismatch])


class TestAskAmount:
    @patch("condoledger.cli.unit_menu.questionary")
    def test_retries_until_valid(self, mock_q):
        from condoledger.cli.unit_menu import _ask_amount

        mock_q.text.return_value.ask.side_effect = ["abc", "0", "950.50"]
        assert _ask_amount("Amount") == 95050

    @patch("condoledger.cli.unit_menu.questionary")
    def test_negative_allowed(self, mock_q):
        from condoledger.cli.unit_menu import _ask_amount

        mock_q.text.return_value.ask.return_value = "-12.00"
        assert _ask_amount("Adjustment", allow_negative=True) == -1200

    @patch("condoledger.cli.unit_menu.questionary")
    def test_negative_refused_by_default(self, mock_q):
        from condoledger.cli.unit_menu import _ask_amount

        mock_q.text.return_value.ask.side_effect = ["-12.00", None]
        assert _ask_amount("Amount") is None


class TestAskDate:
    @patch("condoledger.cli.unit_menu.questionary")
    def test_retries_until_valid(self, mock_q):
        from condoledger.cli.unit_menu import _ask_date

        mock_q.text.return_value.ask.side_effect = ["12/03/2026", "2026-03-12"]
        assert _ask_date("Date", default=date(2026, 3, 1)) == date(2026, 3, 12)


class TestUnitMenu:
    def setup_method(self):
        self.services = MagicMock()

    @patch("condoledger.cli.unit_menu.questionary")
    def test_back(self, mock_q):
        from condoledger.cli.unit_menu import unit_menu

        mock_q.select.return_value.ask.return_value = "Back"
        unit_menu("A-101", self.services)

    @patch("condoledger.cli.unit_menu.questionary")
    def test_show_balance(self, mock_q, sample_bill):
        from condoledger.cli.unit_menu import unit_menu

        bill = sample_bill(penalty_due=4750)
        self.services.projection_service.project.return_value = Projection(
            unit_id="A-101",
            as_of=date(2026, 4, 9),
            bills=[ProjectedBill(bill=bill, remaining=99750)],
            credit_balance=0,
            total_remaining=99750,
            discrepancy=_mismatch_report(),
        )
        mock_q.select.return_value.ask.side_effect = ["Show Balance", "Back"]
        mock_q.text.return_value.ask.return_value = "2026-04-09"

        unit_menu("A-101", self.services)

        self.services.projection_service.project.assert_called_once_with("A-101", date(2026, 4, 9))

    @patch("condoledger.cli.unit_menu.questionary")
    def test_errors_are_shown_not_raised(self, mock_q):
        from condoledger.cli.unit_menu import unit_menu

        self.services.projection_service.project.side_effect = MissingConfig("No penalty configuration")
        mock_q.select.return_value.ask.side_effect = ["Show Balance", "Back"]
        mock_q.text.return_value.ask.return_value = "2026-04-09"

        unit_menu("A-101", self.services)

    @patch("condoledger.cli.unit_menu.questionary")
    def test_preview_payment(self, mock_q):
        from condoledger.cli.unit_menu import unit_menu

        self.services.payment_service.preview_payment.return_value = _distribution()
        mock_q.select.return_value.ask.side_effect = ["Preview Payment", "Back"]
        mock_q.text.return_value.ask.return_value = "1000"

        unit_menu("A-101", self.services)

        args = self.services.payment_service.preview_payment.call_args[0]
        assert args[:2] == ("A-101", 100000)
        self.services.payment_service.record_payment.assert_not_called()

    @patch("condoledger.cli.unit_menu.questionary")
    def test_record_payment(self, mock_q):
        from condoledger.cli.unit_menu import unit_menu

        self.services.payment_service.preview_payment.return_value = _distribution()
        self.services.payment_service.record_payment.return_value = PaymentOutcome(
            record=PaymentRecord(transaction_id="TX-1", unit_id="A-101", amount=100000, payment_date=date(2026, 3, 12)),
            distribution=_distribution(),
        )
        mock_q.select.return_value.ask.side_effect = ["Record Payment", "Back"]
        mock_q.text.return_value.ask.side_effect = ["1000", "2026-03-12", "TX-1", "transfer"]
        mock_q.confirm.return_value.ask.return_value = True

        unit_menu("A-101", self.services)

        payment = self.services.payment_service.record_payment.call_args[0][0]
        assert payment.unit_id == "A-101"
        assert payment.amount == 100000
        assert payment.payment_date == date(2026, 3, 12)
        assert payment.transaction_id == "TX-1"
        assert payment.notes == "transfer"

    @patch("condoledger.cli.unit_menu.questionary")
    def test_record_payment_declined(self, mock_q):
        from condoledger.cli.unit_menu import unit_menu

        self.services.payment_service.preview_payment.return_value = _distribution()
        mock_q.select.return_value.ask.side_effect = ["Record Payment", "Back"]
        mock_q.text.return_value.ask.side_effect = ["1000", "2026-03-12", "", ""]
        mock_q.confirm.return_value.ask.return_value = False

        unit_menu("A-101", self.services)

        self.services.payment_service.record_payment.assert_not_called()

    @patch("condoledger.cli.unit_menu.questionary")
    def test_apply_credit_not_enough(self, mock_q):
        from condoledger.cli.unit_menu import unit_menu

        self.services.payment_service.apply_credit.return_value = None
        mock_q.select.return_value.ask.side_effect = ["Apply Credit", "Back"]

        unit_menu("A-101", self.services)
        self.services.payment_service.apply_credit.assert_called_once()

    @patch("condoledger.cli.unit_menu.questionary")
    def test_adjust_credit(self, mock_q):
        from condoledger.cli.unit_menu import unit_menu

        self.services.credit_service.adjust.return_value = CreditLedgerEntry(unit_id="A-101", amount=-1200)
        mock_q.select.return_value.ask.side_effect = ["Adjust Credit", "Back"]
        mock_q.text.return_value.ask.side_effect = ["-12.00", "Bank fee"]

        unit_menu("A-101", self.services)

        self.services.credit_service.adjust.assert_called_once_with("A-101", -1200, "Bank fee", source="cli")

    @patch("condoledger.cli.unit_menu.questionary")
    def test_credit_history(self, mock_q):
        from condoledger.cli.unit_menu import unit_menu

        entry = CreditLedgerEntry(unit_id="A-101", amount=5000, reason="Overpayment", created_at=datetime(2026, 3, 12))
        self.services.credit_service.get_history.return_value = [CreditHistoryLine(entry=entry, balance_after=5000)]
        mock_q.select.return_value.ask.side_effect = ["Credit History", "Back"]

        unit_menu("A-101", self.services)
        self.services.credit_service.get_history.assert_called_once_with("A-101", limit=50)

    @patch("condoledger.cli.unit_menu.questionary")
    def test_reconcile(self, mock_q):
        from condoledger.cli.unit_menu import unit_menu

        self.services.reconciliation_service.reconcile_unit.return_value = _mismatch_report()
        mock_q.select.return_value.ask.side_effect = ["Reconcile", "Back"]

        unit_menu("A-101", self.services)
        self.services.reconciliation_service.reconcile_unit.assert_called_once_with("A-101")
