"""
Pydantic data models for the trip ledger.

Core models:
- Load: Shipment contract terms, delivery-time actuals and RFD fields
- Trip: Dispatch unit with attached loads, expenses and rollups
- Expense: Trip cost record
- Company: Counterparty and its trust level
- DriverCompensation / DriverPayBreakdown: Driver pay terms and results
"""

from .company import Company, TrustLevel
from .driver import (
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
from .expense import Expense, ExpenseCategory, ExpensePaidBy
from .load import AccessorialCharges, Load, LoadStatus
from .trip import LoadRole, Trip, TripLoad, TripStatus

__all__ = [
    "AccessorialCharges",
    "Company",
    "DriverCompensation",
    "DriverPayBreakdown",
    "Expense",
    "ExpenseCategory",
    "ExpensePaidBy",
    "FlatDailyRateBreakdown",
    "Load",
    "LoadRole",
    "LoadStatus",
    "MilesSource",
    "PayMode",
    "PercentOfRevenueBreakdown",
    "PerCuftBreakdown",
    "PerMileAndCuftBreakdown",
    "PerMileBreakdown",
    "Trip",
    "TripLoad",
    "TripStatus",
    "TrustLevel",
]
