"""Company (counterparty) data model."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, field_validator


class TrustLevel(str, Enum):
    """Whether a company is trusted to settle with the carrier after delivery."""

    TRUSTED = "trusted"
    COD_REQUIRED = "cod_required"

    @classmethod
    def parse(cls, value: Any) -> "TrustLevel":
        """Anything other than an explicit "trusted" requires COD."""
        if isinstance(value, TrustLevel):
            return value
        if isinstance(value, str) and value.strip().lower() == cls.TRUSTED.value:
            return cls.TRUSTED
        return cls.COD_REQUIRED


class Company(BaseModel):
    """A company that hands loads to the carrier."""

    company_id: str
    name: str
    trust_level: TrustLevel = TrustLevel.COD_REQUIRED
    mc_number: Optional[str] = None
    dot_number: Optional[str] = None

    @field_validator("trust_level", mode="before")
    @classmethod
    def _default_trust(cls, value: Any) -> TrustLevel:
        return TrustLevel.parse(value)

    @property
    def is_trusted(self) -> bool:
        return self.trust_level is TrustLevel.TRUSTED
