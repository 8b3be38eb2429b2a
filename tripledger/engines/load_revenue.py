"""
Load Revenue Calculator - revenue, accessorials and what the company owes.

Moving-industry load financial structure:
1. Base revenue = actual cuft x rate per cuft
2. Contract accessorials = pre-agreed fees (shuttle, stairs, long carry, bulky, packing, other)
3. Extra accessorials = day-of charges added by the driver
4. Storage = move-in fee + daily fee x days billed
5. Total revenue = base + contract + extra + storage
6. Company owes = total revenue - amount collected on delivery

Amounts paid directly to the company are reported but never deducted from
what the company owes; they are reconciled from the company side.
"""

from decimal import Decimal
from time import time
from typing import Any

from pydantic import BaseModel

from tripledger.core.money import multiply, round_currency, sum_money, to_decimal
from tripledger.data.models.load import Load
from tripledger.engines.base import BaseEngine


class LoadFinancialBreakdown(BaseModel):
    """Itemized inputs for display."""

    actual_cuft: Decimal
    rate_per_cuft: Decimal
    contract_accessorials: dict[str, Decimal]
    extra_accessorials: dict[str, Decimal]
    storage_move_in: Decimal
    storage_daily_rate: Decimal
    storage_days: Decimal


class LoadFinancials(BaseModel):
    """Calculated financials for one load."""

    load_id: str
    base_revenue: Decimal
    contract_accessorials_total: Decimal
    extra_accessorials_total: Decimal
    storage_total: Decimal
    total_revenue: Decimal
    collected_on_delivery: Decimal
    paid_to_company: Decimal
    company_owes: Decimal
    breakdown: LoadFinancialBreakdown

    @property
    def storage_daily_total(self) -> Decimal:
        b = self.breakdown
        return round_currency(b.storage_daily_rate * b.storage_days)

    @property
    def contract_billable(self) -> Decimal:
        """What the company contracted to pay: linehaul, contract accessorials and storage."""
        return round_currency(
            self.base_revenue + self.contract_accessorials_total + self.storage_total
        )


class LoadRevenueCalculator(BaseEngine):
    """
    Load Revenue & Accessorial Calculator.

    Every input may be missing; a load that is only partly filled in yields
    partial or zero figures rather than an error.
    """

    def __init__(self, **kwargs: Any) -> None:
        """Initialize the load revenue calculator."""
        super().__init__(engine_name="load_revenue", **kwargs)
        self.quantum = self.settings.money.currency_quantum

    def calculate(self, load: Load) -> LoadFinancials:
        """
        Calculate financials for a load.

        Args:
            load: Load with contract terms and delivery-time actuals

        Returns:
            LoadFinancials
        """
        start_time = time()
        q = self.quantum

        actual_cuft = to_decimal(load.actual_cuft_loaded)
        rate_per_cuft = load.billing_rate_per_cuft
        contract_items = load.contract_accessorials.items()
        extra_items = load.extra_accessorials.items()
        move_in = to_decimal(load.storage_move_in_fee)
        daily_rate = to_decimal(load.storage_daily_fee)
        days = to_decimal(load.storage_days_billed)

        base_revenue = multiply(actual_cuft, rate_per_cuft, q)
        contract_total = sum_money(contract_items.values(), q)
        extra_total = sum_money(extra_items.values(), q)
        storage_total = round_currency(move_in + daily_rate * days, q)
        total_revenue = round_currency(base_revenue + contract_total + extra_total + storage_total, q)

        collected = round_currency(load.amount_collected_on_delivery, q)
        paid_to_company = round_currency(load.amount_paid_directly_to_company, q)
        company_owes = round_currency(total_revenue - collected, q)

        self.logger.debug(
            "load_financials_calculated",
            load_id=load.load_id,
            total_revenue=str(total_revenue),
            company_owes=str(company_owes),
        )

        result = LoadFinancials(
            load_id=load.load_id,
            base_revenue=base_revenue,
            contract_accessorials_total=contract_total,
            extra_accessorials_total=extra_total,
            storage_total=storage_total,
            total_revenue=total_revenue,
            collected_on_delivery=collected,
            paid_to_company=paid_to_company,
            company_owes=company_owes,
            breakdown=LoadFinancialBreakdown(
                actual_cuft=actual_cuft,
                rate_per_cuft=rate_per_cuft,
                contract_accessorials=contract_items,
                extra_accessorials=extra_items,
                storage_move_in=move_in,
                storage_daily_rate=daily_rate,
                storage_days=days,
            ),
        )

        self.log_decision(
            decision_type="load_financials",
            input_data={"load_id": load.load_id, "actual_cuft": float(actual_cuft)},
            output_data={
                "total_revenue": float(total_revenue),
                "company_owes": float(company_owes),
            },
            reasoning=f"{actual_cuft} cuft at {rate_per_cuft}/cuft plus accessorials and storage",
            started_at=start_time,
            finished_at=time(),
        )

        return result

    def execute(self, *args: Any, **kwargs: Any) -> LoadFinancials:
        """
        Execute load revenue calculation (delegates to calculate).

        Returns:
            LoadFinancials
        """
        return self.calculate(*args, **kwargs)
