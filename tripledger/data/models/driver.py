"""
Driver compensation and driver pay breakdown models.

A breakdown is one variant per pay mode, discriminated by ``pay_mode``, so a
per-mile breakdown can never carry a daily rate and vice versa. The breakdown
is stored on the trip and regenerated on every settlement run.
"""

from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from tripledger.core.errors import InvalidConfigurationError
from tripledger.data.models.fields import OptionalAmount


class PayMode(str, Enum):
    """How a driver is paid for a trip."""

    PER_MILE = "per_mile"
    PER_CUFT = "per_cuft"
    PER_MILE_AND_CUFT = "per_mile_and_cuft"
    PERCENT_OF_REVENUE = "percent_of_revenue"
    FLAT_DAILY_RATE = "flat_daily_rate"


class MilesSource(str, Enum):
    """Where the trip mileage came from."""

    ACTUAL = "actual"
    ODOMETER = "odometer"
    ESTIMATE = "estimate"
    MISSING = "missing"


class DriverCompensation(BaseModel):
    """Driver/owner-operator pay terms, either live or snapshotted on a trip."""

    driver_id: Optional[str] = None
    driver_name: Optional[str] = None
    pay_mode: str
    rate_per_mile: OptionalAmount = None
    rate_per_cuft: OptionalAmount = None
    percent_of_revenue: OptionalAmount = None  # 25 means 25%
    flat_daily_rate: OptionalAmount = None

    @property
    def mode(self) -> PayMode:
        """
        Parsed pay mode.

        Raises:
            InvalidConfigurationError: If the stored pay mode is not recognised
        """
        try:
            return PayMode(self.pay_mode)
        except ValueError:
            raise InvalidConfigurationError(f"Unknown driver pay mode: {self.pay_mode!r}") from None


class _BreakdownBase(BaseModel):
    base_pay: Decimal
    total_driver_pay: Decimal

    @property
    def is_provisional(self) -> bool:
        return False


class _MileageMixin(BaseModel):
    miles: Decimal
    rate_per_mile: Decimal
    miles_source: MilesSource

    @property
    def is_provisional(self) -> bool:
        """Pay was computed from estimated (or no) mileage."""
        return self.miles_source in (MilesSource.ESTIMATE, MilesSource.MISSING)


class PerMileBreakdown(_MileageMixin, _BreakdownBase):
    pay_mode: Literal["per_mile"] = "per_mile"
    mile_pay: Decimal


class PerCuftBreakdown(_BreakdownBase):
    pay_mode: Literal["per_cuft"] = "per_cuft"
    cuft: Decimal
    rate_per_cuft: Decimal
    cuft_pay: Decimal


class PerMileAndCuftBreakdown(_MileageMixin, _BreakdownBase):
    pay_mode: Literal["per_mile_and_cuft"] = "per_mile_and_cuft"
    mile_pay: Decimal
    cuft: Decimal
    rate_per_cuft: Decimal
    cuft_pay: Decimal


class PercentOfRevenueBreakdown(_BreakdownBase):
    pay_mode: Literal["percent_of_revenue"] = "percent_of_revenue"
    revenue: Decimal
    percent_of_revenue: Decimal


class FlatDailyRateBreakdown(_BreakdownBase):
    pay_mode: Literal["flat_daily_rate"] = "flat_daily_rate"
    days: int
    flat_daily_rate: Decimal


DriverPayBreakdown = Annotated[
    Union[
        PerMileBreakdown,
        PerCuftBreakdown,
        PerMileAndCuftBreakdown,
        PercentOfRevenueBreakdown,
        FlatDailyRateBreakdown,
    ],
    Field(discriminator="pay_mode"),
]
