"""
Shared field types for ledger models.

Records arrive from forms and database rows half filled in, so numeric
fields accept None and blank strings.
"""

from decimal import Decimal
from typing import Annotated, Any, Optional

from pydantic import BeforeValidator


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _blank_to_zero(value: Any) -> Any:
    value = _blank_to_none(value)
    return Decimal("0") if value is None else value


OptionalAmount = Annotated[Optional[Decimal], BeforeValidator(_blank_to_none)]
Amount = Annotated[Decimal, BeforeValidator(_blank_to_zero)]
