"""
Calculation engines for trip financial reconciliation.

This module contains:
- Driver Pay: Pay under five pay modes
- Load Revenue: Revenue, accessorials, storage and what the company owes
- COD: Cash-on-delivery requirement before unloading
- Settlement: Trip revenue, expenses and profit
- RFD Urgency: Ready-for-delivery urgency tiers for dispatch
"""

from .base import BaseEngine, EngineDecision
from .cod import CODEvaluator, PreDeliveryCheck, requires_cod_payment
from .driver_pay import DriverPayCalculator, TripMetrics
from .load_revenue import LoadFinancials, LoadRevenueCalculator
from .rfd_urgency import RFDUrgency, RFDUrgencyClassifier, RFDUrgencyLevel
from .settlement import SettlementLineItem, TripSettlement, TripSettlementAggregator

__all__ = [
    "BaseEngine",
    "EngineDecision",
    "CODEvaluator",
    "PreDeliveryCheck",
    "requires_cod_payment",
    "DriverPayCalculator",
    "TripMetrics",
    "LoadFinancials",
    "LoadRevenueCalculator",
    "RFDUrgency",
    "RFDUrgencyClassifier",
    "RFDUrgencyLevel",
    "SettlementLineItem",
    "TripSettlement",
    "TripSettlementAggregator",
]
