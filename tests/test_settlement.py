"""Tests for tripledger/engines/settlement.py

Run with:  pytest tests/test_settlement.py -v
"""

from datetime import datetime
from decimal import Decimal

import pytest

from tripledger.core.errors import (
    InvalidConfigurationError,
    InvalidTripTransitionError,
    SettlementFrozenError,
)
from tripledger.data.models import DriverCompensation, Expense, Load, Trip, TripStatus
from tripledger.engines.settlement import TripSettlementAggregator


# ── Helpers ────────────────────────────────────────────────────────────────────

def _load(load_id="LOAD-1", **kwargs):
    defaults = dict(
        company_id="CO-ATLAS",
        actual_cuft_loaded=Decimal("1000"),
        contract_rate_per_cuft=Decimal("2.50"),
        contract_accessorials_stairs=Decimal("100"),
        contract_accessorials_shuttle=Decimal("50"),
        amount_collected_on_delivery=Decimal("2000"),
    )
    defaults.update(kwargs)
    return Load(load_id=load_id, **defaults)


def _expense(expense_id, category, amount, **kwargs):
    return Expense(expense_id=expense_id, trip_id="TRIP-1", category=category,
                   amount=Decimal(amount), **kwargs)


def _trip(status=TripStatus.COMPLETED, **kwargs):
    trip = Trip(trip_id="TRIP-1", status=status, actual_miles=Decimal("500"), **kwargs)
    trip.attach_load(_load())
    trip.expenses = [
        _expense("E1", "fuel", "612.40"),
        _expense("E2", "tolls", "48.00"),
        _expense("E3", "lumper", "120.00", paid_by="driver_cash"),
        _expense("E4", "driver_pay", "300.00"),
    ]
    return trip


def _driver():
    return DriverCompensation(driver_id="DRV-1", pay_mode="per_mile", rate_per_mile=Decimal("0.55"))


@pytest.fixture
def aggregator(config_manager):
    return TripSettlementAggregator(config_manager=config_manager)


# ── Aggregation ────────────────────────────────────────────────────────────────

class TestAggregate:
    def test_totals(self, aggregator):
        settlement = aggregator.aggregate(_trip(), _driver())
        assert settlement.revenue_total == Decimal("2650.00")
        assert settlement.driver_pay_total == Decimal("275.00")
        assert settlement.fuel_total == Decimal("612.40")
        assert settlement.tolls_total == Decimal("48.00")
        assert settlement.other_expenses_total == Decimal("120.00")
        assert settlement.profit_total == Decimal("1594.60")
        assert settlement.total_cuft == Decimal("1000")

    def test_profit_identity(self, aggregator):
        s = aggregator.aggregate(_trip(), _driver())
        assert s.profit_total == s.revenue_total - (
            s.driver_pay_total + s.fuel_total + s.tolls_total + s.other_expenses_total
        )
        assert s.total_expenses == s.revenue_total - s.profit_total

    def test_logged_driver_pay_excluded_by_default(self, aggregator):
        settlement = aggregator.aggregate(_trip(), _driver())
        assert settlement.logged_driver_pay_total == Decimal("300.00")
        assert settlement.computed_driver_pay == Decimal("275.00")
        assert settlement.driver_pay_total == Decimal("275.00")
        assert any("excluded" in note for note in settlement.notes)

    def test_logged_driver_pay_included_when_configured(self, make_config):
        aggregator = TripSettlementAggregator(
            config_manager=make_config(settlement={"driver_pay_expense_policy": "include"})
        )
        settlement = aggregator.aggregate(_trip(), _driver())
        assert settlement.driver_pay_total == Decimal("575.00")
        assert settlement.profit_total == Decimal("1294.60")

    def test_is_idempotent(self, aggregator):
        trip = _trip()
        assert aggregator.aggregate(trip, _driver()) == aggregator.aggregate(trip, _driver())

    def test_aggregate_does_not_touch_trip(self, aggregator):
        trip = _trip()
        aggregator.aggregate(trip, _driver())
        assert trip.revenue_total == Decimal("0")
        assert trip.driver_pay_breakdown is None

    def test_live_trip_is_provisional(self, aggregator):
        settlement = aggregator.aggregate(_trip(status=TripStatus.EN_ROUTE), _driver())
        assert settlement.is_provisional is True
        assert settlement.status == "draft"

    def test_no_pay_terms(self, aggregator):
        settlement = aggregator.aggregate(_trip(), None)
        assert settlement.driver_pay_breakdown is None
        assert settlement.driver_pay_total == Decimal("0.00")
        assert any("No driver pay terms" in note for note in settlement.notes)

    def test_estimated_miles_flagged(self, aggregator):
        trip = Trip(trip_id="TRIP-1", status=TripStatus.EN_ROUTE, total_miles=Decimal("480"))
        trip.attach_load(_load())
        settlement = aggregator.aggregate(trip, _driver())
        assert settlement.driver_pay_is_provisional is True
        assert settlement.driver_pay_total == Decimal("264.00")

    def test_empty_trip(self, aggregator):
        settlement = aggregator.aggregate(Trip(trip_id="EMPTY"), None)
        assert settlement.revenue_total == Decimal("0.00")
        assert settlement.profit_total == Decimal("0.00")
        assert settlement.total_cuft is None

    def test_loss_is_noted(self, aggregator):
        trip = _trip()
        trip.expenses.append(_expense("E5", "maintenance", "5000"))
        settlement = aggregator.aggregate(trip, _driver())
        assert settlement.profit_total < 0
        assert any(note.startswith("Trip lost") for note in settlement.notes)


class TestReceivablesAndLineItems:
    def test_receivable_after_collection(self, aggregator):
        settlement = aggregator.aggregate(_trip(), _driver())
        assert settlement.receivables_by_company == {"CO-ATLAS": Decimal("650.00")}

    def test_storage_drop_ignores_collection(self, aggregator):
        trip = Trip(trip_id="TRIP-1", status=TripStatus.COMPLETED)
        trip.attach_load(_load(storage_drop=True))
        settlement = aggregator.aggregate(trip, None)
        assert settlement.receivables_by_company == {"CO-ATLAS": Decimal("2650.00")}

    def test_paid_directly_reduces_receivable(self, aggregator):
        trip = Trip(trip_id="TRIP-1", status=TripStatus.COMPLETED)
        trip.attach_load(_load(amount_paid_directly_to_company=Decimal("650")))
        settlement = aggregator.aggregate(trip, None)
        assert settlement.receivables_by_company == {}

    def test_reimbursement_is_informational(self, aggregator):
        settlement = aggregator.aggregate(_trip(), _driver())
        assert settlement.driver_reimbursements_total == Decimal("120.00")
        assert settlement.other_expenses_total == Decimal("120.00")

    def test_line_items(self, aggregator):
        settlement = aggregator.aggregate(_trip(), _driver())
        categories = [item.category for item in settlement.line_items]
        assert categories.count("revenue") == 2
        assert categories.count("driver_pay") == 1
        assert "fuel" in categories and "tolls" in categories and "expense" in categories
        revenue = sum(i.amount for i in settlement.line_items if i.category == "revenue")
        assert revenue == settlement.revenue_total


class TestLoadOwnership:
    def test_reassigned_load_leaves_old_trip_revenue(self, aggregator):
        trip = _trip()
        other = Trip(trip_id="TRIP-2")
        other.attach_load(trip.loads[0].load)
        settlement = aggregator.aggregate(trip, _driver())
        assert settlement.revenue_total == Decimal("0.00")
        assert aggregator.aggregate(other, None).revenue_total == Decimal("2650.00")


# ── Writing totals ─────────────────────────────────────────────────────────────

class TestSettleAndFreeze:
    def test_refresh_writes_live_totals(self, aggregator):
        trip = _trip(status=TripStatus.EN_ROUTE)
        aggregator.refresh(trip, _driver())
        assert trip.revenue_total == Decimal("2650.00")
        assert trip.profit_total == Decimal("1594.60")
        assert trip.driver_pay_breakdown.pay_mode == "per_mile"

    def test_settle(self, aggregator):
        trip = _trip()
        settled_at = datetime(2025, 3, 8, 9, 0)
        settlement = aggregator.settle(trip, _driver(), settled_at=settled_at)
        assert trip.status is TripStatus.SETTLED
        assert trip.settled_at == settled_at
        assert settlement.status == "finalized"
        assert settlement.is_provisional is False
        assert trip.profit_total == Decimal("1594.60")

    def test_settle_requires_completed(self, aggregator):
        trip = _trip(status=TripStatus.EN_ROUTE)
        with pytest.raises(InvalidTripTransitionError):
            aggregator.settle(trip, _driver())
        assert trip.status is TripStatus.EN_ROUTE

    def test_settled_totals_are_frozen(self, aggregator):
        trip = _trip()
        aggregator.settle(trip, _driver())
        trip.expenses.append(_expense("E5", "fuel", "100"))

        aggregator.refresh(trip, _driver())
        assert trip.fuel_total == Decimal("612.40")

        with pytest.raises(SettlementFrozenError):
            aggregator.apply_to_trip(trip, aggregator.aggregate(trip, _driver()))

    def test_recalculate_overwrites_settled(self, aggregator):
        trip = _trip()
        aggregator.settle(trip, _driver())
        trip.expenses.append(_expense("E5", "fuel", "100"))
        aggregator.recalculate(trip, _driver())
        assert trip.fuel_total == Decimal("712.40")
        assert trip.profit_total == Decimal("1494.60")

    def test_recalculate_cancelled(self, aggregator):
        trip = _trip(status=TripStatus.CANCELLED)
        with pytest.raises(InvalidTripTransitionError):
            aggregator.recalculate(trip, _driver())

    def test_failed_settle_leaves_trip_completed(self, aggregator):
        trip = _trip(trip_pay_mode="hourly")
        with pytest.raises(InvalidConfigurationError):
            aggregator.settle(trip, _driver())
        assert trip.status is TripStatus.COMPLETED
        assert trip.settled_at is None
        assert trip.revenue_total == Decimal("0")

    def test_settle_result_is_final(self, aggregator):
        settlement = aggregator.settle(_trip(), _driver(), settled_at=datetime(2025, 3, 8))
        assert settlement.trip_status is TripStatus.SETTLED
        assert not any(note.startswith("Provisional") for note in settlement.notes)

    def test_refresh_skips_cancelled(self, aggregator):
        trip = _trip(status=TripStatus.CANCELLED)
        settlement = aggregator.refresh(trip, _driver())
        assert settlement.revenue_total == Decimal("2650.00")
        assert trip.revenue_total == Decimal("0")
        assert trip.profit_total == Decimal("0")
        assert trip.driver_pay_breakdown is None

    def test_apply_to_cancelled(self, aggregator):
        trip = _trip(status=TripStatus.CANCELLED)
        settlement = aggregator.aggregate(trip, _driver())
        with pytest.raises(InvalidTripTransitionError):
            aggregator.apply_to_trip(trip, settlement, force=True)

    def test_settle_cancelled(self, aggregator):
        trip = _trip(status=TripStatus.CANCELLED)
        with pytest.raises(InvalidTripTransitionError):
            aggregator.settle(trip, _driver())
        assert trip.status is TripStatus.CANCELLED

    def test_apply_to_wrong_trip(self, aggregator):
        settlement = aggregator.aggregate(_trip(status=TripStatus.EN_ROUTE), _driver())
        with pytest.raises(ValueError):
            aggregator.apply_to_trip(Trip(trip_id="OTHER"), settlement)


class TestDecisionExport:
    def test_export(self, aggregator, tmp_path):
        aggregator.aggregate(_trip(), _driver())
        path = tmp_path / "decisions.json"
        aggregator.export_decisions(str(path))
        assert "trip_settlement" in path.read_text()
