"""
Exception taxonomy for the trip ledger.

Only configuration and workflow errors are raised. Missing numeric facts
(no miles, no rate, unfilled load fields) are never errors: they count as zero.
"""


class TripLedgerError(Exception):
    """Base exception for trip ledger errors"""
    pass


class InvalidConfigurationError(TripLedgerError, ValueError):
    """Raised for bad upstream data entry, e.g. an unknown pay mode"""
    pass


class InvalidTripTransitionError(TripLedgerError):
    """Raised when a trip status change is not allowed"""
    pass


class SettlementFrozenError(TripLedgerError):
    """Raised when writing totals onto a settled trip without an explicit recalculation"""
    pass


class CODConfirmationRequiredError(TripLedgerError):
    """Raised when delivery is completed without confirming a required COD collection"""
    pass


class LoadAssignmentError(TripLedgerError):
    """Raised when detaching or reordering loads that are not on the trip"""
    pass
