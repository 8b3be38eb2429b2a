"""
Trip data model - one unit of dispatch work for a driver/truck/trailer.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from tripledger.core.errors import InvalidTripTransitionError, LoadAssignmentError
from tripledger.data.models.driver import DriverCompensation, DriverPayBreakdown
from tripledger.data.models.expense import Expense
from tripledger.data.models.fields import OptionalAmount
from tripledger.data.models.load import Load


class TripStatus(str, Enum):
    """Trip lifecycle status."""

    PLANNED = "planned"
    ACTIVE = "active"
    EN_ROUTE = "en_route"
    COMPLETED = "completed"
    SETTLED = "settled"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS: dict[TripStatus, frozenset[TripStatus]] = {
    TripStatus.PLANNED: frozenset({TripStatus.ACTIVE, TripStatus.CANCELLED}),
    TripStatus.ACTIVE: frozenset({TripStatus.EN_ROUTE, TripStatus.CANCELLED}),
    TripStatus.EN_ROUTE: frozenset({TripStatus.COMPLETED, TripStatus.CANCELLED}),
    TripStatus.COMPLETED: frozenset({TripStatus.SETTLED}),
    TripStatus.SETTLED: frozenset(),
    TripStatus.CANCELLED: frozenset(),
}


class LoadRole(str, Enum):
    """Role of a load within a trip."""

    PRIMARY = "primary"
    BACKHAUL = "backhaul"
    PARTIAL = "partial"


class TripLoad(BaseModel):
    """Association of a load with a trip."""

    load: Load
    sequence_index: int = Field(0, ge=0)
    role: LoadRole = LoadRole.PRIMARY


class Trip(BaseModel):
    """
    Represents a trip with its loads, expenses and financial rollups.

    Rollup fields (revenue_total ... profit_total, driver_pay_breakdown) are
    written only by the settlement aggregator.
    """

    # Identification
    trip_id: str = Field(..., description="Unique trip identifier")
    trip_number: Optional[str] = None
    status: TripStatus = TripStatus.PLANNED
    driver_id: Optional[str] = None
    truck_id: Optional[str] = None
    trailer_id: Optional[str] = None

    # Timing
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    # Distance
    total_miles: OptionalAmount = Field(None, description="Planned/estimated miles")
    actual_miles: OptionalAmount = Field(None, description="Recorded miles")
    odometer_start: OptionalAmount = None
    odometer_end: OptionalAmount = None

    # Driver pay snapshot taken when the driver was assigned
    trip_pay_mode: Optional[str] = None
    trip_rate_per_mile: OptionalAmount = None
    trip_rate_per_cuft: OptionalAmount = None
    trip_percent_of_revenue: OptionalAmount = None
    trip_flat_daily_rate: OptionalAmount = None

    loads: list[TripLoad] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)

    # Rollups
    revenue_total: Decimal = Decimal("0")
    driver_pay_total: Decimal = Decimal("0")
    fuel_total: Decimal = Decimal("0")
    tolls_total: Decimal = Decimal("0")
    other_expenses_total: Decimal = Decimal("0")
    profit_total: Decimal = Decimal("0")
    total_cuft: Optional[Decimal] = None
    driver_pay_breakdown: Optional[DriverPayBreakdown] = None
    settled_at: Optional[datetime] = None

    # Status

    def can_transition_to(self, status: TripStatus) -> bool:
        return TripStatus(status) in ALLOWED_TRANSITIONS[self.status]

    def transition_to(self, status: TripStatus) -> "Trip":
        """
        Move the trip to a new status.

        Raises:
            InvalidTripTransitionError: If the lifecycle does not allow the move
        """
        status = TripStatus(status)
        if not self.can_transition_to(status):
            raise InvalidTripTransitionError(
                f"Trip {self.trip_id} cannot move from {self.status.value} to {status.value}"
            )
        self.status = status
        return self

    @property
    def is_settled(self) -> bool:
        return self.status is TripStatus.SETTLED

    # Loads

    @property
    def active_loads(self) -> list[TripLoad]:
        """
        Attached loads in sequence order.

        Associations whose load has since been assigned to another trip are
        skipped.
        """
        owned = [
            tl for tl in self.loads
            if tl.load.trip_id is None or tl.load.trip_id == self.trip_id
        ]
        return sorted(owned, key=lambda tl: tl.sequence_index)

    def find_load(self, load_id: str) -> Optional[TripLoad]:
        for trip_load in self.loads:
            if trip_load.load.load_id == load_id:
                return trip_load
        return None

    def attach_load(
        self,
        load: Load,
        role: LoadRole = LoadRole.PRIMARY,
        previous_trip: Optional["Trip"] = None,
    ) -> TripLoad:
        """
        Attach a load at the end of the trip.

        The load's trip_id is moved to this trip. If the trip it came from is
        supplied, the load is detached from it as well.
        """
        if previous_trip is not None and previous_trip is not self:
            if previous_trip.find_load(load.load_id) is not None:
                previous_trip.detach_load(load.load_id)

        existing = self.find_load(load.load_id)
        if existing is not None:
            load.trip_id = self.trip_id
            existing.load = load
            existing.role = LoadRole(role)
            return existing

        load.trip_id = self.trip_id
        next_index = max((tl.sequence_index for tl in self.loads), default=-1) + 1
        trip_load = TripLoad(load=load, sequence_index=next_index, role=LoadRole(role))
        self.loads.append(trip_load)
        return trip_load

    def detach_load(self, load_id: str) -> Load:
        """
        Remove a load from the trip and re-pack sequence indexes.

        Raises:
            LoadAssignmentError: If the load is not on this trip
        """
        trip_load = self.find_load(load_id)
        if trip_load is None:
            raise LoadAssignmentError(f"Load {load_id} is not attached to trip {self.trip_id}")

        self.loads.remove(trip_load)
        if trip_load.load.trip_id == self.trip_id:
            trip_load.load.trip_id = None
        self._resequence(sorted(self.loads, key=lambda tl: tl.sequence_index))
        return trip_load.load

    def reorder_loads(self, load_ids: list[str]) -> None:
        """
        Set the delivery order.

        Raises:
            LoadAssignmentError: If load_ids is not a permutation of the attached loads
        """
        current = {tl.load.load_id: tl for tl in self.loads}
        if len(load_ids) != len(current) or set(load_ids) != set(current):
            raise LoadAssignmentError(
                f"Reorder for trip {self.trip_id} must list each attached load exactly once"
            )
        self._resequence([current[load_id] for load_id in load_ids])

    def _resequence(self, ordered: list[TripLoad]) -> None:
        for index, trip_load in enumerate(ordered):
            trip_load.sequence_index = index
        self.loads = ordered

    # Pay

    def resolve_compensation(
        self, driver: Optional[DriverCompensation] = None
    ) -> Optional[DriverCompensation]:
        """
        Pay terms for this trip.

        Snapshot fields on the trip win over the driver's live rates, field by
        field. Returns None when no pay mode is known.
        """
        pay_mode = self.trip_pay_mode or (driver.pay_mode if driver else None)
        if not pay_mode:
            return None

        def pick(snapshot: Optional[Decimal], field: str) -> Optional[Decimal]:
            if snapshot is not None:
                return snapshot
            return getattr(driver, field) if driver else None

        return DriverCompensation(
            driver_id=driver.driver_id if driver else self.driver_id,
            driver_name=driver.driver_name if driver else None,
            pay_mode=pay_mode,
            rate_per_mile=pick(self.trip_rate_per_mile, "rate_per_mile"),
            rate_per_cuft=pick(self.trip_rate_per_cuft, "rate_per_cuft"),
            percent_of_revenue=pick(self.trip_percent_of_revenue, "percent_of_revenue"),
            flat_daily_rate=pick(self.trip_flat_daily_rate, "flat_daily_rate"),
        )

    def snapshot_compensation(self, driver: DriverCompensation) -> None:
        """Copy the driver's current rates onto the trip for historical accuracy."""
        self.trip_pay_mode = driver.pay_mode
        self.trip_rate_per_mile = driver.rate_per_mile
        self.trip_rate_per_cuft = driver.rate_per_cuft
        self.trip_percent_of_revenue = driver.percent_of_revenue
        self.trip_flat_daily_rate = driver.flat_daily_rate
