import pytest
from sqlalchemy.exc import IntegrityError

from condoledger.models.bill import BillDomain


class TestDuesChargeSource:
    def test_domain(self, dues_source):
        assert dues_source.domain == BillDomain.RECURRING

    def test_create_and_list(self, dues_source, dues_row):
        created = dues_source.create(dues_row(cohort="Q1"))

        assert created["id"] is not None
        assert created["period_key"] == "2026-03"
        assert created["scheduled_amount"] == 95000
        assert created["cohort"] == "Q1"
        assert created["version"] == 0

        rows = dues_source.list_by_unit("A-101")
        assert len(rows) == 1
        assert rows[0]["id"] == created["id"]

    def test_list_ordered_by_due_date(self, dues_source, dues_row):
        dues_source.create(dues_row(period_key="2026-04", period_start="2026-04-01", due_date="2026-04-10"))
        dues_source.create(dues_row())

        rows = dues_source.list_by_unit("A-101")
        assert [r["period_key"] for r in rows] == ["2026-03", "2026-04"]

    def test_list_filters_by_unit(self, dues_source, dues_row):
        dues_source.create(dues_row())
        dues_source.create(dues_row(unit_id="B-202"))

        assert len(dues_source.list_by_unit("B-202")) == 1
        assert dues_source.list_by_unit("C-303") == []

    def test_duplicate_period_rejected(self, dues_source, dues_row):
        dues_source.create(dues_row())
        with pytest.raises(IntegrityError):
            dues_source.create(dues_row())

    def test_create_rejects_unknown_column(self, dues_source, dues_row):
        with pytest.raises(ValueError, match="Unknown dues_charges columns"):
            dues_source.create(dues_row(base_paid=10))

    def test_update_payment_fields(self, dues_source, dues_row):
        created = dues_source.create(dues_row())

        ok = dues_source.update_payment_fields(created["id"], 0, {"amount_paid": 95000, "penalty_amount": 500})

        assert ok is True
        row = dues_source.list_by_unit("A-101")[0]
        assert row["amount_paid"] == 95000
        assert row["penalty_amount"] == 500
        assert row["version"] == 1

    def test_update_with_stale_version_is_refused(self, dues_source, dues_row):
        created = dues_source.create(dues_row())
        dues_source.update_payment_fields(created["id"], 0, {"amount_paid": 100})

        ok = dues_source.update_payment_fields(created["id"], 0, {"amount_paid": 200})

        assert ok is False
        row = dues_source.list_by_unit("A-101")[0]
        assert row["amount_paid"] == 100
        assert row["version"] == 1

    def test_update_rejects_non_payment_column(self, dues_source, dues_row):
        created = dues_source.create(dues_row())
        with pytest.raises(ValueError, match="Not a payment column"):
            dues_source.update_payment_fields(created["id"], 0, {"scheduled_amount": 1})


class TestWaterChargeSource:
    def test_domain(self, water_source):
        assert water_source.domain == BillDomain.METERED

    def test_create_and_list(self, water_source, water_row):
        created = water_source.create(water_row())

        assert created["bill_key"] == "2026-03"
        assert created["current_charge"] == 32000
        assert created["consumption"] == 18

        rows = water_source.list_by_unit("A-101")
        assert len(rows) == 1

    def test_update_payment_fields(self, water_source, water_row):
        created = water_source.create(water_row())

        assert water_source.update_payment_fields(created["id"], 0, {"base_paid": 32000, "penalty_paid": 0})
        row = water_source.list_by_unit("A-101")[0]
        assert row["base_paid"] == 32000
        assert row["version"] == 1

    def test_update_rejects_dues_column(self, water_source, water_row):
        created = water_source.create(water_row())
        with pytest.raises(ValueError):
            water_source.update_payment_fields(created["id"], 0, {"amount_paid": 1})

    def test_missing_row_returns_false(self, water_source):
        assert water_source.update_payment_fields(999, 0, {"base_paid": 1}) is False
