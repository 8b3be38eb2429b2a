"""Trip financial reconciliation and RFD urgency rules for moving/freight operations."""

__version__ = "0.1.0"
