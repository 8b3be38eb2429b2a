"""Trip expense data model."""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from tripledger.data.models.fields import Amount


class ExpenseCategory(str, Enum):
    """Expense categories as logged by drivers and dispatch."""

    FUEL = "fuel"
    TOLLS = "tolls"
    DRIVER_PAY = "driver_pay"
    LUMPER = "lumper"
    PARKING = "parking"
    MAINTENANCE = "maintenance"
    OTHER = "other"


class ExpensePaidBy(str, Enum):
    """Who paid for the expense."""

    COMPANY_CARD = "company_card"
    FUEL_CARD = "fuel_card"
    DRIVER_PERSONAL = "driver_personal"
    DRIVER_CASH = "driver_cash"


class Expense(BaseModel):
    """
    An expense recorded against exactly one trip.

    Expenses are immutable facts; they are only ever created or deleted.
    """

    model_config = ConfigDict(frozen=True)

    expense_id: str
    trip_id: str
    category: ExpenseCategory = ExpenseCategory.OTHER
    amount: Amount = Decimal("0")
    incurred_at: Optional[date] = None
    description: Optional[str] = None
    receipt_url: Optional[str] = None
    paid_by: Optional[ExpensePaidBy] = None

    @property
    def is_driver_reimbursable(self) -> bool:
        """Paid out of the driver's own pocket."""
        return self.paid_by in (ExpensePaidBy.DRIVER_PERSONAL, ExpensePaidBy.DRIVER_CASH)
