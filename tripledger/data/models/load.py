"""
Load data model - a household-goods shipment billed by cubic feet.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, computed_field, model_validator

from tripledger.core.money import first_positive, sum_money, to_decimal
from tripledger.data.models.fields import OptionalAmount

ACCESSORIAL_NAMES = ("shuttle", "stairs", "long_carry", "bulky", "packing", "other")

# Boolean columns that come back as NULL on older rows
_FLAG_FIELDS = ("storage_drop", "cod_received", "company_approved_exception_delivery", "rfd_date_tbd")


class LoadStatus(str, Enum):
    """Load status enumeration."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    LOADED = "loaded"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELED = "canceled"


class AccessorialCharges(BaseModel):
    """One set of named accessorial charges (contract or extra)."""

    shuttle: OptionalAmount = None
    stairs: OptionalAmount = None
    long_carry: OptionalAmount = None
    bulky: OptionalAmount = None
    packing: OptionalAmount = None
    other: OptionalAmount = None

    def items(self) -> dict[str, Decimal]:
        """Charges by name, missing ones as zero."""
        return {name: to_decimal(getattr(self, name)) for name in ACCESSORIAL_NAMES}

    @computed_field
    @property
    def total(self) -> Decimal:
        """Sum of all charges."""
        return sum_money(self.items().values())


class Load(BaseModel):
    """
    Represents a shipment attached (or attachable) to a trip.

    Contract terms are entered by the owner when the load is created; the
    actual values are captured by the driver at loading and delivery time.
    Any of them may still be missing while data entry is in progress.
    """

    # Identification
    load_id: str = Field(..., description="Unique load identifier")
    load_number: Optional[str] = Field(None, description="Human-facing load number")
    company_id: Optional[str] = Field(None, description="Company that gave us the load")
    status: LoadStatus = Field(LoadStatus.PENDING, description="Current load status")

    # Volume
    cubic_feet: OptionalAmount = Field(None, description="Estimated cubic feet")
    actual_cuft_loaded: OptionalAmount = Field(None, description="Measured cubic feet at loading")

    # Contract terms
    rate_per_cuft: OptionalAmount = Field(None, description="Posted rate per cubic foot")
    contract_rate_per_cuft: OptionalAmount = Field(None, description="Contracted rate per cubic foot")
    contract_accessorials: AccessorialCharges = Field(default_factory=AccessorialCharges)
    extra_accessorials: AccessorialCharges = Field(default_factory=AccessorialCharges)

    # Storage
    storage_move_in_fee: OptionalAmount = None
    storage_daily_fee: OptionalAmount = None
    storage_days_billed: OptionalAmount = None
    storage_drop: bool = Field(False, description="Delivered into storage rather than to the customer")

    # Collections
    balance_due_on_delivery: OptionalAmount = Field(None, description="Customer balance due at delivery")
    amount_collected_on_delivery: OptionalAmount = None
    amount_paid_directly_to_company: OptionalAmount = None
    cod_received: bool = False
    company_approved_exception_delivery: bool = False

    # Ready-for-delivery
    rfd_date: Optional[date] = None
    rfd_date_tbd: bool = False
    rfd_delivery_deadline: Optional[date] = None

    # Single owner: the trip this load is currently assigned to
    trip_id: Optional[str] = None

    notes: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _fold_flat_columns(cls, data: Any) -> Any:
        """Accept flat database rows (contract_accessorials_stairs, extra_stairs, ...)."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        contract = dict(data.get("contract_accessorials") or {})
        extra = dict(data.get("extra_accessorials") or {})
        for name in ACCESSORIAL_NAMES:
            contract_key = f"contract_accessorials_{name}"
            extra_key = f"extra_{name}"
            if contract_key in data:
                contract.setdefault(name, data.pop(contract_key))
            if extra_key in data:
                extra.setdefault(name, data.pop(extra_key))
        data["contract_accessorials"] = contract
        data["extra_accessorials"] = extra
        for flag in _FLAG_FIELDS:
            if flag in data and data[flag] is None:
                del data[flag]
        return data

    @property
    def billing_rate_per_cuft(self) -> Decimal:
        """Contract rate, falling back to the posted rate when unset or zero."""
        return first_positive(self.contract_rate_per_cuft, self.rate_per_cuft)

    @property
    def billable_cuft(self) -> Decimal:
        """Measured cubic feet, falling back to the estimate."""
        if self.actual_cuft_loaded is not None:
            return to_decimal(self.actual_cuft_loaded)
        return to_decimal(self.cubic_feet)

    @property
    def is_assigned(self) -> bool:
        """Whether dispatch has already put this load on a trip."""
        return bool(self.trip_id)
