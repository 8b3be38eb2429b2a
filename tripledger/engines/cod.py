"""
COD Evaluator - decides whether cash on delivery must be collected.

This engine:
- Computes the carrier rate (what the carrier earns for the load)
- Compares it to the customer balance due at delivery
- Requires COD for the shortfall when the paying company is not trusted
- Produces driver-facing status and action messages

For TRUSTED companies the driver delivers and collects the customer balance;
the company pays the carrier later. For COD REQUIRED companies the company
must pay the shortfall before the driver unloads.
"""

from decimal import Decimal
from time import time
from typing import Any, Optional

from pydantic import BaseModel

from tripledger.core.errors import CODConfirmationRequiredError
from tripledger.core.money import ZERO, round_currency, to_decimal
from tripledger.data.models.company import Company, TrustLevel
from tripledger.data.models.load import Load
from tripledger.engines.base import BaseEngine


class PreDeliveryCheck(BaseModel):
    """What the driver needs to know before unloading."""

    load_id: Optional[str] = None
    carrier_rate: Decimal
    customer_balance: Decimal
    shortfall: Decimal

    trust_level: TrustLevel
    is_trusted: bool

    requires_cod: bool
    cod_amount_required: Decimal

    status_message: str
    action_required: str
    alert_level: str  # "success", "warning", "danger"

    def ensure_delivery_allowed(self, cod_confirmed: bool) -> None:
        """
        Gate for the delivery-complete action.

        Raises:
            CODConfirmationRequiredError: If COD is required and not confirmed
        """
        if self.requires_cod and not cod_confirmed:
            raise CODConfirmationRequiredError(
                f"Collect ${self.cod_amount_required:.2f} COD and confirm before completing delivery"
            )


def requires_cod_payment(
    trust_level: Optional[str], carrier_rate: Any, customer_balance: Any
) -> bool:
    """Quick check if COD is required for a load/company combination."""
    if TrustLevel.parse(trust_level) is TrustLevel.TRUSTED:
        return False
    return to_decimal(carrier_rate) - to_decimal(customer_balance) > 0


class CODEvaluator(BaseEngine):
    """
    COD Requirement Evaluator.

    Only decides whether a COD confirmation is needed; confirming it is the
    delivery workflow's job.
    """

    def __init__(self, **kwargs: Any) -> None:
        """Initialize the COD evaluator."""
        super().__init__(engine_name="cod", **kwargs)
        self.quantum = self.settings.money.currency_quantum
        self.default_trust_level = TrustLevel.parse(self.settings.cod.default_trust_level)

    def carrier_rate(self, load: Load) -> Decimal:
        """actual cuft x (contract rate or posted rate) + contract accessorials."""
        linehaul = to_decimal(load.actual_cuft_loaded) * load.billing_rate_per_cuft
        return round_currency(linehaul + load.contract_accessorials.total, self.quantum)

    def evaluate(
        self,
        load: Load,
        company: Optional[Company] = None,
        trust_level: Optional[str] = None,
    ) -> PreDeliveryCheck:
        """
        Generate the pre-delivery check for a load.

        Args:
            load: Load about to be delivered
            company: Company that gave us the load (its trust level applies)
            trust_level: Explicit trust level, used when no company is given

        Returns:
            PreDeliveryCheck
        """
        if company is not None:
            level = company.trust_level
        elif trust_level is not None:
            level = TrustLevel.parse(trust_level)
        else:
            level = self.default_trust_level
        company_name = company.name if company else "The company"

        return self.evaluate_amounts(
            carrier_rate=self.carrier_rate(load),
            customer_balance=load.balance_due_on_delivery,
            trust_level=level,
            company_name=company_name,
            cod_received=load.cod_received,
            company_approved_exception=load.company_approved_exception_delivery,
            load_id=load.load_id,
        )

    def evaluate_amounts(
        self,
        carrier_rate: Any,
        customer_balance: Any,
        trust_level: Optional[str] = None,
        company_name: str = "The company",
        cod_received: bool = False,
        company_approved_exception: bool = False,
        load_id: Optional[str] = None,
    ) -> PreDeliveryCheck:
        """
        Decide COD from amounts already known.

        Args:
            carrier_rate: What the carrier earns for the load
            customer_balance: Balance due from the customer at delivery
            trust_level: "trusted" or "cod_required"; anything else requires COD
            company_name: Name used in driver-facing messages
            cod_received: COD was already collected
            company_approved_exception: Company approved delivery without COD
            load_id: Load identifier for logging

        Returns:
            PreDeliveryCheck
        """
        start_time = time()
        q = self.quantum

        level = self.default_trust_level if trust_level is None else TrustLevel.parse(trust_level)
        is_trusted = level is TrustLevel.TRUSTED
        rate = round_currency(carrier_rate, q)
        balance = round_currency(customer_balance, q)
        shortfall = max(ZERO, round_currency(rate - balance, q))

        requires_cod = (
            not is_trusted
            and shortfall > 0
            and not cod_received
            and not company_approved_exception
        )
        cod_amount = shortfall if requires_cod else round_currency(ZERO, q)

        status_message, action_required, alert_level = self._build_messages(
            company_name=company_name,
            is_trusted=is_trusted,
            shortfall=shortfall,
            balance=balance,
            cod_received=cod_received,
            company_approved_exception=company_approved_exception,
        )

        if requires_cod:
            self.logger.warning(
                "cod_required",
                load_id=load_id,
                company=company_name,
                cod_amount=str(cod_amount),
            )

        check = PreDeliveryCheck(
            load_id=load_id,
            carrier_rate=rate,
            customer_balance=balance,
            shortfall=shortfall,
            trust_level=level,
            is_trusted=is_trusted,
            requires_cod=requires_cod,
            cod_amount_required=cod_amount,
            status_message=status_message,
            action_required=action_required,
            alert_level=alert_level,
        )

        self.log_decision(
            decision_type="pre_delivery_check",
            input_data={
                "load_id": load_id,
                "trust_level": level.value,
                "carrier_rate": float(rate),
                "customer_balance": float(balance),
            },
            output_data={
                "requires_cod": requires_cod,
                "cod_amount_required": float(cod_amount),
            },
            reasoning=status_message,
            started_at=start_time,
            finished_at=time(),
        )

        return check

    def execute(self, *args: Any, **kwargs: Any) -> PreDeliveryCheck:
        """
        Execute the pre-delivery check (delegates to evaluate).

        Returns:
            PreDeliveryCheck
        """
        return self.evaluate(*args, **kwargs)

    def _build_messages(
        self,
        company_name: str,
        is_trusted: bool,
        shortfall: Decimal,
        balance: Decimal,
        cod_received: bool,
        company_approved_exception: bool,
    ) -> tuple[str, str, str]:
        """Driver-facing status, action and alert level."""
        collect = f"Collect ${balance:.2f} from customer"

        if cod_received:
            return (
                f"COD of ${shortfall:.2f} received from {company_name}",
                f"{collect} and complete delivery" if balance > 0 else "Complete delivery",
                "success",
            )

        if company_approved_exception:
            return (
                f"{company_name} approved delivery without COD",
                f"{collect} and complete delivery" if balance > 0 else "Complete delivery",
                "success",
            )

        if is_trusted:
            if shortfall > 0:
                return (
                    f"TRUSTED - {company_name} will pay you ${shortfall:.2f} after delivery",
                    f"{collect}, then complete delivery" if balance > 0 else "Complete delivery",
                    "success",
                )
            return (
                "Customer balance covers your rate",
                collect if balance > 0 else "Complete delivery",
                "success",
            )

        if shortfall > 0:
            return (
                f"COD REQUIRED - {company_name} must pay ${shortfall:.2f} BEFORE you unload",
                f"DO NOT UNLOAD until you receive ${shortfall:.2f} from {company_name}",
                "danger",
            )
        return (
            "Customer balance covers your rate - no COD needed",
            collect if balance > 0 else "Complete delivery",
            "success",
        )
