"""
Settlement Aggregator - trip-level revenue, expenses and profit.

This engine:
- Rolls up revenue from every load on the trip
- Computes driver pay from the trip's pay terms
- Totals expenses by category
- Produces settlement line items and per-company receivables
- Writes the rollups onto the trip, freezing them once the trip is settled
"""

from datetime import datetime
from decimal import Decimal
from time import time
from typing import Any, Optional

from pydantic import BaseModel, Field

from tripledger.core.errors import InvalidTripTransitionError, SettlementFrozenError
from tripledger.core.money import ZERO, round_currency, sum_money
from tripledger.data.models.driver import (
    DriverCompensation,
    DriverPayBreakdown,
    PerMileAndCuftBreakdown,
)
from tripledger.data.models.expense import Expense, ExpenseCategory
from tripledger.data.models.trip import Trip, TripStatus
from tripledger.engines.base import BaseEngine
from tripledger.engines.driver_pay import DriverPayCalculator
from tripledger.engines.load_revenue import LoadFinancials, LoadRevenueCalculator

OTHER_EXPENSE_CATEGORIES = frozenset({
    ExpenseCategory.LUMPER,
    ExpenseCategory.PARKING,
    ExpenseCategory.MAINTENANCE,
    ExpenseCategory.OTHER,
})


class SettlementLineItem(BaseModel):
    """One line on the settlement statement."""

    category: str  # "revenue", "driver_pay", "fuel", "tolls", "expense"
    description: str
    amount: Decimal
    load_id: Optional[str] = None
    company_id: Optional[str] = None


class TripSettlement(BaseModel):
    """Complete financial settlement for a trip."""

    trip_id: str
    trip_status: TripStatus
    status: str  # "draft" or "finalized"
    is_provisional: bool

    # Revenue
    load_financials: list[LoadFinancials]
    revenue_total: Decimal
    total_cuft: Optional[Decimal] = None

    # Driver pay
    driver_pay_breakdown: Optional[DriverPayBreakdown] = None
    computed_driver_pay: Decimal
    logged_driver_pay_total: Decimal
    driver_pay_total: Decimal
    driver_pay_is_provisional: bool = False

    # Expenses
    fuel_total: Decimal
    tolls_total: Decimal
    other_expenses_total: Decimal
    total_expenses: Decimal

    profit_total: Decimal

    line_items: list[SettlementLineItem] = Field(default_factory=list)
    receivables_by_company: dict[str, Decimal] = Field(default_factory=dict)
    driver_reimbursements_total: Decimal = ZERO
    notes: list[str] = Field(default_factory=list)


class TripSettlementAggregator(BaseEngine):
    """
    Trip Settlement Aggregator.

    Aggregation is a pure function of the trip, its loads, expenses and pay
    terms; running it twice on unchanged input gives the same settlement.
    """

    def __init__(self, **kwargs: Any) -> None:
        """Initialize the settlement aggregator."""
        super().__init__(engine_name="settlement", **kwargs)
        self.quantum = self.settings.money.currency_quantum
        self.driver_pay_expense_policy = self.settings.settlement.driver_pay_expense_policy
        self.load_revenue = LoadRevenueCalculator(
            config_manager=self.config_manager, logger=self.logger
        )
        self.driver_pay = DriverPayCalculator(
            config_manager=self.config_manager, logger=self.logger
        )

    def aggregate(
        self, trip: Trip, driver: Optional[DriverCompensation] = None
    ) -> TripSettlement:
        """
        Calculate the settlement for a trip without touching the trip.

        May run at any trip status for live display; the result is
        provisional until the trip is settled.

        Args:
            trip: Trip with loads and expenses
            driver: Driver's live pay terms (the trip's snapshot wins)

        Returns:
            TripSettlement
        """
        return self._aggregate(trip, driver, final=trip.is_settled)

    def _aggregate(
        self, trip: Trip, driver: Optional[DriverCompensation], final: bool
    ) -> TripSettlement:
        start_time = time()
        q = self.quantum

        active_loads = trip.active_loads
        self.logger.info(
            "aggregating_settlement",
            trip_id=trip.trip_id,
            status=trip.status.value,
            loads=len(active_loads),
            expenses=len(trip.expenses),
        )

        line_items: list[SettlementLineItem] = []
        receivables: dict[str, Decimal] = {}
        load_financials: list[LoadFinancials] = []

        for trip_load in active_loads:
            load = trip_load.load
            financials = self.load_revenue.calculate(load)
            load_financials.append(financials)
            line_items.extend(self._revenue_line_items(financials, load.company_id))

            # Company receivable: contract billable less what already reached us
            collected = ZERO if load.storage_drop else financials.collected_on_delivery
            receivable = max(
                ZERO,
                round_currency(financials.contract_billable - financials.paid_to_company - collected, q),
            )
            if load.company_id and receivable > 0:
                receivables[load.company_id] = round_currency(
                    receivables.get(load.company_id, ZERO) + receivable, q
                )

        revenue_total = sum_money((f.total_revenue for f in load_financials), q)
        total_cuft = sum((tl.load.billable_cuft for tl in active_loads), ZERO)

        # Driver pay
        breakdown = self.driver_pay.calculate_for_trip(trip, driver, revenue_total=revenue_total)
        computed_driver_pay = breakdown.total_driver_pay if breakdown else round_currency(ZERO, q)
        line_items.extend(self._driver_pay_line_items(breakdown))

        # Expenses
        fuel_total, tolls_total, other_total, logged_driver_pay, expense_items = (
            self._total_expenses(trip.expenses)
        )
        line_items.extend(expense_items)

        if self.driver_pay_expense_policy == "include":
            driver_pay_total = round_currency(computed_driver_pay + logged_driver_pay, q)
        else:
            driver_pay_total = computed_driver_pay

        total_expenses = round_currency(driver_pay_total + fuel_total + tolls_total + other_total, q)
        profit_total = round_currency(revenue_total - total_expenses, q)

        reimbursements = sum_money(
            (e.amount for e in trip.expenses if e.is_driver_reimbursable), q
        )

        is_provisional = not final
        settlement = TripSettlement(
            trip_id=trip.trip_id,
            trip_status=TripStatus.SETTLED if final else trip.status,
            status="draft" if is_provisional else "finalized",
            is_provisional=is_provisional,
            load_financials=load_financials,
            revenue_total=revenue_total,
            total_cuft=total_cuft or None,
            driver_pay_breakdown=breakdown,
            computed_driver_pay=computed_driver_pay,
            logged_driver_pay_total=logged_driver_pay,
            driver_pay_total=driver_pay_total,
            driver_pay_is_provisional=bool(breakdown and breakdown.is_provisional),
            fuel_total=fuel_total,
            tolls_total=tolls_total,
            other_expenses_total=other_total,
            total_expenses=total_expenses,
            profit_total=profit_total,
            line_items=line_items,
            receivables_by_company=receivables,
            driver_reimbursements_total=reimbursements,
            notes=self._generate_settlement_notes(
                trip, is_provisional, breakdown, logged_driver_pay, profit_total, reimbursements
            ),
        )

        self.log_decision(
            decision_type="trip_settlement",
            input_data={
                "trip_id": trip.trip_id,
                "loads": len(active_loads),
                "expenses": len(trip.expenses),
            },
            output_data={
                "revenue_total": float(revenue_total),
                "driver_pay_total": float(driver_pay_total),
                "profit_total": float(profit_total),
                "is_provisional": is_provisional,
            },
            reasoning=f"Settled {len(active_loads)} loads and {len(trip.expenses)} expenses",
            started_at=start_time,
            finished_at=time(),
        )

        return settlement

    def apply_to_trip(
        self, trip: Trip, settlement: TripSettlement, force: bool = False
    ) -> Trip:
        """
        Write settlement rollups onto the trip.

        Args:
            trip: Trip to update
            settlement: Result of aggregate() for this trip
            force: Overwrite a settled trip (explicit recalculation)

        Raises:
            InvalidTripTransitionError: If the trip is cancelled
            SettlementFrozenError: If the trip is settled and force is False
        """
        if trip.status is TripStatus.CANCELLED:
            raise InvalidTripTransitionError(f"Trip {trip.trip_id} is cancelled and has no settlement")
        if trip.is_settled and not force:
            raise SettlementFrozenError(
                f"Trip {trip.trip_id} is settled; use recalculate() to re-run the settlement"
            )
        if settlement.trip_id != trip.trip_id:
            raise ValueError(
                f"Settlement for trip {settlement.trip_id} cannot be applied to trip {trip.trip_id}"
            )

        trip.revenue_total = settlement.revenue_total
        trip.driver_pay_total = settlement.driver_pay_total
        trip.fuel_total = settlement.fuel_total
        trip.tolls_total = settlement.tolls_total
        trip.other_expenses_total = settlement.other_expenses_total
        trip.profit_total = settlement.profit_total
        trip.total_cuft = settlement.total_cuft
        trip.driver_pay_breakdown = settlement.driver_pay_breakdown

        self.logger.info("settlement_applied", trip_id=trip.trip_id, forced=force)
        return trip

    def refresh(self, trip: Trip, driver: Optional[DriverCompensation] = None) -> TripSettlement:
        """
        Recompute and store live totals after loads, expenses or pay terms change.

        A settled trip keeps its frozen totals and a cancelled trip gets none;
        for both the returned settlement is computed but not written.
        """
        settlement = self.aggregate(trip, driver)
        if trip.status is TripStatus.CANCELLED:
            self.logger.info("settlement_skipped", trip_id=trip.trip_id, reason="cancelled")
            return settlement
        if trip.is_settled:
            self.logger.info("settlement_frozen", trip_id=trip.trip_id)
            return settlement
        self.apply_to_trip(trip, settlement)
        return settlement

    def settle(
        self,
        trip: Trip,
        driver: Optional[DriverCompensation] = None,
        settled_at: Optional[datetime] = None,
    ) -> TripSettlement:
        """
        Close a completed trip: move it to settled and store final totals.

        The settlement is computed before the trip changes, so a failed
        calculation leaves the trip completed and unstamped.

        Args:
            trip: Completed trip
            driver: Driver's live pay terms
            settled_at: Settlement timestamp; defaults to the current local
                time, so pass it explicitly for reproducible output

        Raises:
            InvalidTripTransitionError: If the trip is not completed
            InvalidConfigurationError: If the trip's pay mode is unknown
        """
        if not trip.can_transition_to(TripStatus.SETTLED):
            self.logger.error("settlement_failed", trip_id=trip.trip_id, status=trip.status.value)
            raise InvalidTripTransitionError(
                f"Trip {trip.trip_id} must be completed before settling (status: {trip.status.value})"
            )

        settlement = self._aggregate(trip, driver, final=True)

        trip.transition_to(TripStatus.SETTLED)
        trip.settled_at = settled_at or datetime.now()
        self.apply_to_trip(trip, settlement, force=True)
        return settlement

    def recalculate(self, trip: Trip, driver: Optional[DriverCompensation] = None) -> TripSettlement:
        """
        Explicit "Recalculate Settlement": re-run and re-store, even when settled.

        Raises:
            InvalidTripTransitionError: If the trip is cancelled
        """
        if trip.status is TripStatus.CANCELLED:
            raise InvalidTripTransitionError(f"Trip {trip.trip_id} is cancelled and has no settlement")
        settlement = self.aggregate(trip, driver)
        self.apply_to_trip(trip, settlement, force=True)
        self.logger.info("settlement_recalculated", trip_id=trip.trip_id)
        return settlement

    def execute(self, *args: Any, **kwargs: Any) -> TripSettlement:
        """
        Execute settlement aggregation (delegates to aggregate).

        Returns:
            TripSettlement
        """
        return self.aggregate(*args, **kwargs)

    def _total_expenses(
        self, expenses: list[Expense]
    ) -> tuple[Decimal, Decimal, Decimal, Decimal, list[SettlementLineItem]]:
        """Fuel, tolls, other and logged driver pay totals plus expense line items."""
        q = self.quantum
        fuel: list[Decimal] = []
        tolls: list[Decimal] = []
        other: list[Decimal] = []
        driver_pay: list[Decimal] = []
        items: list[SettlementLineItem] = []

        for expense in expenses:
            category = expense.category
            if category is ExpenseCategory.DRIVER_PAY:
                # Computed pay is authoritative; logged entries are kept for audit
                driver_pay.append(expense.amount)
                continue
            if category is ExpenseCategory.FUEL:
                fuel.append(expense.amount)
                items.append(SettlementLineItem(
                    category="fuel", description=expense.description or "Fuel", amount=expense.amount
                ))
            elif category is ExpenseCategory.TOLLS:
                tolls.append(expense.amount)
                items.append(SettlementLineItem(
                    category="tolls", description=expense.description or "Tolls", amount=expense.amount
                ))
            elif category in OTHER_EXPENSE_CATEGORIES:
                other.append(expense.amount)
                items.append(SettlementLineItem(
                    category="expense",
                    description=expense.description or category.value.replace("_", " ").title(),
                    amount=expense.amount,
                ))

        return (
            sum_money(fuel, q),
            sum_money(tolls, q),
            sum_money(other, q),
            sum_money(driver_pay, q),
            items,
        )

    def _revenue_line_items(
        self, financials: LoadFinancials, company_id: Optional[str]
    ) -> list[SettlementLineItem]:
        entries = [
            ("Linehaul (contract)", financials.base_revenue),
            ("Contract accessorials", financials.contract_accessorials_total),
            ("Storage move-in fee", financials.breakdown.storage_move_in),
            ("Storage daily fee", financials.storage_daily_total),
            ("On-site accessorials (collected by driver)", financials.extra_accessorials_total),
        ]
        return [
            SettlementLineItem(
                category="revenue",
                description=description,
                amount=round_currency(amount, self.quantum),
                load_id=financials.load_id,
                company_id=company_id,
            )
            for description, amount in entries
            if amount
        ]

    def _driver_pay_line_items(
        self, breakdown: Optional[DriverPayBreakdown]
    ) -> list[SettlementLineItem]:
        if breakdown is None:
            return []
        if isinstance(breakdown, PerMileAndCuftBreakdown):
            components = [("Per mile", breakdown.mile_pay), ("Per cuft", breakdown.cuft_pay)]
        else:
            components = [(breakdown.pay_mode.replace("_", " ").capitalize(), breakdown.total_driver_pay)]
        return [
            SettlementLineItem(category="driver_pay", description=description, amount=amount)
            for description, amount in components
            if amount > 0
        ]

    def _generate_settlement_notes(
        self,
        trip: Trip,
        is_provisional: bool,
        breakdown: Optional[DriverPayBreakdown],
        logged_driver_pay: Decimal,
        profit_total: Decimal,
        reimbursements: Decimal,
    ) -> list[str]:
        """Generate helpful notes for the settlement."""
        notes = []

        if is_provisional:
            notes.append(f"Provisional: trip is {trip.status.value}, figures may change")

        if breakdown is None:
            notes.append("No driver pay terms on this trip; driver pay is $0.00")
        elif breakdown.is_provisional:
            notes.append("Driver pay uses estimated miles; record actual miles to finalize")

        if logged_driver_pay > 0:
            if self.driver_pay_expense_policy == "include":
                notes.append(f"Logged driver pay expenses of ${logged_driver_pay:.2f} added to driver pay")
            else:
                notes.append(
                    f"Logged driver pay expenses of ${logged_driver_pay:.2f} excluded (computed pay is authoritative)"
                )

        if reimbursements > 0:
            notes.append(f"Reimbursement owed to driver: ${reimbursements:.2f}")

        if profit_total < 0:
            notes.append(f"Trip lost ${abs(profit_total):.2f}")
        else:
            notes.append(f"Trip profit: ${profit_total:.2f}")

        return notes


def main() -> None:
    """Example usage of the settlement aggregator."""
    from datetime import date

    from tripledger.core.logging import configure_logging
    from tripledger.data.models.load import Load
    from tripledger.data.models.trip import LoadRole

    configure_logging(log_format="console")

    aggregator = TripSettlementAggregator()

    driver = DriverCompensation(
        driver_id="DRV-001",
        driver_name="Sam Ortega",
        pay_mode="per_mile_and_cuft",
        rate_per_mile=Decimal("0.55"),
        rate_per_cuft=Decimal("0.10"),
    )

    trip = Trip(
        trip_id="TRIP-001",
        trip_number="T-1001",
        status=TripStatus.COMPLETED,
        start_date=date(2025, 3, 3),
        end_date=date(2025, 3, 7),
        odometer_start=Decimal("120400"),
        odometer_end=Decimal("121650"),
    )
    trip.attach_load(
        Load(
            load_id="LOAD-001",
            company_id="CO-ATLAS",
            actual_cuft_loaded=Decimal("1000"),
            contract_rate_per_cuft=Decimal("2.50"),
            contract_accessorials_stairs=Decimal("100"),
            contract_accessorials_shuttle=Decimal("50"),
            amount_collected_on_delivery=Decimal("2000"),
        )
    )
    trip.attach_load(
        Load(
            load_id="LOAD-002",
            company_id="CO-ATLAS",
            actual_cuft_loaded=Decimal("600"),
            rate_per_cuft=Decimal("2.25"),
            extra_long_carry=Decimal("75"),
        ),
        role=LoadRole.BACKHAUL,
    )
    trip.expenses = [
        Expense(expense_id="EXP-001", trip_id=trip.trip_id, category="fuel", amount=Decimal("612.40")),
        Expense(expense_id="EXP-002", trip_id=trip.trip_id, category="tolls", amount=Decimal("48.00")),
        Expense(
            expense_id="EXP-003",
            trip_id=trip.trip_id,
            category="lumper",
            amount=Decimal("120.00"),
            paid_by="driver_cash",
        ),
    ]

    settlement = aggregator.settle(trip, driver)

    # Print results
    print("\n" + "=" * 80)
    print("TRIP SETTLEMENT REPORT")
    print("=" * 80)
    print(f"Trip: {trip.trip_number} ({trip.trip_id})  Status: {settlement.status.upper()}")
    print()

    print("REVENUE:")
    for financials in settlement.load_financials:
        print(f"  {financials.load_id}: ${financials.total_revenue:.2f} (company owes ${financials.company_owes:.2f})")
    print(f"  Total Revenue: ${settlement.revenue_total:.2f}")
    print()

    print("EXPENSES:")
    print(f"  Driver Pay: ${settlement.driver_pay_total:.2f}")
    print(f"  Fuel: ${settlement.fuel_total:.2f}")
    print(f"  Tolls: ${settlement.tolls_total:.2f}")
    print(f"  Other: ${settlement.other_expenses_total:.2f}")
    print()

    print(f"PROFIT: ${settlement.profit_total:.2f}")
    print()

    print("NOTES:")
    for note in settlement.notes:
        print(f"  • {note}")

    print("\n" + "=" * 80)


if __name__ == "__main__":
    main()
