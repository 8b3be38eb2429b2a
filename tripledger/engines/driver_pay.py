"""
Driver Pay Calculator - driver pay for a trip under five pay modes.

This engine:
- Extracts trip metrics (miles, cubic feet, revenue, days) from a trip
- Resolves pay terms (trip snapshot over live driver rates)
- Computes a per-mode pay breakdown and total
- Flags pay computed from estimated miles as provisional
"""

from datetime import date
from decimal import Decimal
from time import time
from typing import Any, Optional

from pydantic import BaseModel

from tripledger.core.errors import InvalidConfigurationError
from tripledger.core.money import ZERO, multiply, percent_of, round_currency, sum_money, to_decimal
from tripledger.data.models.driver import (
    DriverCompensation,
    DriverPayBreakdown,
    FlatDailyRateBreakdown,
    MilesSource,
    PayMode,
    PercentOfRevenueBreakdown,
    PerCuftBreakdown,
    PerMileAndCuftBreakdown,
    PerMileBreakdown,
)
from tripledger.data.models.trip import Trip
from tripledger.engines.base import BaseEngine
from tripledger.engines.load_revenue import LoadRevenueCalculator


class TripMetrics(BaseModel):
    """Trip facts that driver pay depends on."""

    total_miles: Decimal = ZERO
    miles_source: MilesSource = MilesSource.MISSING
    total_cuft: Decimal = ZERO
    total_revenue: Decimal = ZERO
    total_days: int = 1


def resolve_trip_miles(trip: Trip) -> tuple[Decimal, MilesSource]:
    """Recorded miles, then odometer difference, then the planned estimate."""
    if trip.actual_miles is not None:
        return to_decimal(trip.actual_miles), MilesSource.ACTUAL
    if trip.odometer_start is not None and trip.odometer_end is not None:
        driven = to_decimal(trip.odometer_end) - to_decimal(trip.odometer_start)
        return max(ZERO, driven), MilesSource.ODOMETER
    if trip.total_miles is not None:
        return to_decimal(trip.total_miles), MilesSource.ESTIMATE
    return ZERO, MilesSource.MISSING


def count_trip_days(
    start_date: Optional[date], end_date: Optional[date], minimum: int = 1
) -> int:
    """Calendar days from start to end, both inclusive, never below minimum."""
    if start_date is None or end_date is None:
        return minimum
    return max(minimum, (end_date - start_date).days + 1)


class DriverPayCalculator(BaseEngine):
    """
    Driver Pay Calculator.

    Missing rates and missing trip facts count as zero so that a trip being
    filled in still shows a best-effort number. Only an unknown pay mode is
    an error.
    """

    def __init__(self, **kwargs: Any) -> None:
        """Initialize the driver pay calculator."""
        super().__init__(engine_name="driver_pay", **kwargs)
        self.quantum = self.settings.money.currency_quantum
        self.minimum_trip_days = self.settings.driver_pay.minimum_trip_days

    def extract_trip_metrics(
        self, trip: Trip, revenue_total: Optional[Decimal] = None
    ) -> TripMetrics:
        """
        Extract pay-relevant metrics from a trip and its active loads.

        Args:
            trip: Trip with its attached loads
            revenue_total: Trip revenue if already computed; otherwise each
                active load is run through the load revenue calculator

        Returns:
            TripMetrics
        """
        miles, miles_source = resolve_trip_miles(trip)
        loads = [tl.load for tl in trip.active_loads]

        total_cuft = sum((load.billable_cuft for load in loads), ZERO)

        if revenue_total is None:
            revenue_calc = LoadRevenueCalculator(config_manager=self.config_manager, logger=self.logger)
            revenue_total = sum_money(
                (revenue_calc.calculate(load).total_revenue for load in loads), self.quantum
            )

        return TripMetrics(
            total_miles=miles,
            miles_source=miles_source,
            total_cuft=total_cuft,
            total_revenue=to_decimal(revenue_total),
            total_days=count_trip_days(trip.start_date, trip.end_date, self.minimum_trip_days),
        )

    def calculate(
        self, compensation: DriverCompensation, metrics: TripMetrics
    ) -> DriverPayBreakdown:
        """
        Calculate driver pay from pay terms and trip metrics.

        Args:
            compensation: Pay mode and rates
            metrics: Trip metrics

        Returns:
            Breakdown variant for the pay mode

        Raises:
            InvalidConfigurationError: If the pay mode is unknown
        """
        start_time = time()

        try:
            mode = compensation.mode
        except InvalidConfigurationError as e:
            self.logger.error("driver_pay_failed", error=str(e), driver_id=compensation.driver_id)
            raise

        self.logger.info(
            "calculating_driver_pay",
            driver_id=compensation.driver_id,
            pay_mode=mode.value,
            miles_source=metrics.miles_source.value,
        )

        breakdown = self._calculate_breakdown(mode, compensation, metrics)

        if breakdown.is_provisional:
            self.logger.warning(
                "driver_pay_uses_estimated_miles",
                driver_id=compensation.driver_id,
                miles_source=metrics.miles_source.value,
            )

        self.log_decision(
            decision_type="driver_pay_calculation",
            input_data={
                "driver_id": compensation.driver_id,
                "pay_mode": mode.value,
                "miles": float(metrics.total_miles),
                "miles_source": metrics.miles_source.value,
                "cuft": float(metrics.total_cuft),
                "revenue": float(metrics.total_revenue),
                "days": metrics.total_days,
            },
            output_data={"total_driver_pay": float(breakdown.total_driver_pay)},
            reasoning=f"Driver pay computed {mode.value.replace('_', ' ')}",
            started_at=start_time,
            finished_at=time(),
        )

        return breakdown

    def calculate_for_trip(
        self,
        trip: Trip,
        driver: Optional[DriverCompensation] = None,
        revenue_total: Optional[Decimal] = None,
    ) -> Optional[DriverPayBreakdown]:
        """
        Calculate driver pay for a trip.

        Args:
            trip: Trip (its pay snapshot wins over the driver's live rates)
            driver: Driver's live pay terms
            revenue_total: Trip revenue if already computed

        Returns:
            Breakdown, or None when the trip has no pay terms at all
        """
        compensation = trip.resolve_compensation(driver)
        if compensation is None:
            self.logger.info("driver_pay_skipped", trip_id=trip.trip_id, reason="no_pay_terms")
            return None

        metrics = self.extract_trip_metrics(trip, revenue_total=revenue_total)
        return self.calculate(compensation, metrics)

    def execute(self, *args: Any, **kwargs: Any) -> Optional[DriverPayBreakdown]:
        """
        Execute driver pay calculation (delegates to calculate_for_trip).

        Returns:
            DriverPayBreakdown or None
        """
        return self.calculate_for_trip(*args, **kwargs)

    def _calculate_breakdown(
        self, mode: PayMode, comp: DriverCompensation, metrics: TripMetrics
    ) -> DriverPayBreakdown:
        q = self.quantum
        miles = metrics.total_miles
        cuft = metrics.total_cuft
        rate_per_mile = to_decimal(comp.rate_per_mile)
        rate_per_cuft = to_decimal(comp.rate_per_cuft)

        if mode is PayMode.PER_MILE:
            mile_pay = multiply(miles, rate_per_mile, q)
            return PerMileBreakdown(
                miles=miles,
                rate_per_mile=rate_per_mile,
                miles_source=metrics.miles_source,
                mile_pay=mile_pay,
                base_pay=mile_pay,
                total_driver_pay=mile_pay,
            )

        if mode is PayMode.PER_CUFT:
            cuft_pay = multiply(cuft, rate_per_cuft, q)
            return PerCuftBreakdown(
                cuft=cuft,
                rate_per_cuft=rate_per_cuft,
                cuft_pay=cuft_pay,
                base_pay=cuft_pay,
                total_driver_pay=cuft_pay,
            )

        if mode is PayMode.PER_MILE_AND_CUFT:
            mile_pay = multiply(miles, rate_per_mile, q)
            cuft_pay = multiply(cuft, rate_per_cuft, q)
            total = round_currency(mile_pay + cuft_pay, q)
            return PerMileAndCuftBreakdown(
                miles=miles,
                rate_per_mile=rate_per_mile,
                miles_source=metrics.miles_source,
                mile_pay=mile_pay,
                cuft=cuft,
                rate_per_cuft=rate_per_cuft,
                cuft_pay=cuft_pay,
                base_pay=total,
                total_driver_pay=total,
            )

        if mode is PayMode.PERCENT_OF_REVENUE:
            percent = to_decimal(comp.percent_of_revenue)
            base_pay = percent_of(metrics.total_revenue, percent, q)
            return PercentOfRevenueBreakdown(
                revenue=metrics.total_revenue,
                percent_of_revenue=percent,
                base_pay=base_pay,
                total_driver_pay=base_pay,
            )

        # PayMode.FLAT_DAILY_RATE
        daily_rate = to_decimal(comp.flat_daily_rate)
        base_pay = multiply(metrics.total_days, daily_rate, q)
        return FlatDailyRateBreakdown(
            days=metrics.total_days,
            flat_daily_rate=daily_rate,
            base_pay=base_pay,
            total_driver_pay=base_pay,
        )
