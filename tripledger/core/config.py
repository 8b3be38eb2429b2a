"""
Configuration management for the trip ledger.

Handles loading and accessing:
- Business configuration (config.yaml)
- Environment variables
"""

from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tripledger.core.errors import InvalidConfigurationError

logger = structlog.get_logger(__name__)


class MoneyConfig(BaseModel):
    """Currency rounding rules."""

    currency: str = "USD"
    currency_quantum: Decimal = Decimal("0.01")


class DriverPayConfig(BaseModel):
    """Driver pay rules."""

    minimum_trip_days: int = Field(1, ge=1)


class SettlementConfig(BaseModel):
    """Settlement rollup rules."""

    # "exclude": logged driver_pay expenses are audit-only
    # "include": they are added on top of the computed driver pay
    driver_pay_expense_policy: str = "exclude"

    @field_validator("driver_pay_expense_policy")
    @classmethod
    def _check_policy(cls, value: str) -> str:
        if value not in ("exclude", "include"):
            raise ValueError(f"Unknown driver pay expense policy: {value}")
        return value


class CODConfig(BaseModel):
    """Cash-on-delivery rules."""

    default_trust_level: str = "cod_required"


class RFDUrgencyConfig(BaseModel):
    """Thresholds for RFD urgency tiers, in calendar days."""

    critical_days: int = 0
    urgent_days: int = 2
    approaching_days: int = 7

    @field_validator("urgent_days")
    @classmethod
    def _check_urgent(cls, value: int, info: ValidationInfo) -> int:
        critical = info.data.get("critical_days", 0)
        if value <= critical:
            raise ValueError("urgent_days must be > critical_days")
        return value

    @field_validator("approaching_days")
    @classmethod
    def _check_order(cls, value: int, info: ValidationInfo) -> int:
        urgent = info.data.get("urgent_days", 2)
        if value < urgent:
            raise ValueError("approaching_days must be >= urgent_days")
        return value


class EngineSettings(BaseModel):
    """Typed view over the business configuration."""

    money: MoneyConfig = Field(default_factory=MoneyConfig)
    driver_pay: DriverPayConfig = Field(default_factory=DriverPayConfig)
    settlement: SettlementConfig = Field(default_factory=SettlementConfig)
    cod: CODConfig = Field(default_factory=CODConfig)
    rfd_urgency: RFDUrgencyConfig = Field(default_factory=RFDUrgencyConfig)


class EnvironmentSettings(BaseSettings):
    """Environment variables configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    config_dir: Optional[Path] = Field(None, alias="TRIPLEDGER_CONFIG_DIR")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_format: str = Field("json", alias="LOG_FORMAT")


class ConfigManager:
    """
    Central configuration manager for the trip ledger.

    Loads and provides access to:
    - Business configuration from config/config.yaml
    - Environment variables from .env
    """

    def __init__(
        self,
        config_dir: Optional[Path] = None,
        overrides: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the configuration manager.

        Args:
            config_dir: Optional path to config directory. Defaults to
                TRIPLEDGER_CONFIG_DIR, then project root/config.
            overrides: Optional business config values merged over the file
        """
        self._env_settings: Optional[EnvironmentSettings] = None

        if config_dir is None:
            config_dir = self.env.config_dir
        if config_dir is None:
            project_root = Path(__file__).parent.parent.parent
            config_dir = project_root / "config"

        self.config_dir = Path(config_dir)
        self._overrides = overrides or {}
        self._business_config: Optional[dict[str, Any]] = None
        self._engine_settings: Optional[EngineSettings] = None

    @property
    def business_config(self) -> dict[str, Any]:
        """Load and return business configuration from config.yaml."""
        if self._business_config is None:
            config_path = self.config_dir / "config.yaml"
            loaded: dict[str, Any] = {}
            if config_path.exists():
                with open(config_path, "r") as f:
                    loaded = yaml.safe_load(f) or {}
            else:
                logger.warning("config_file_missing", path=str(config_path))
            self._business_config = _deep_merge(loaded, self._overrides)
        return self._business_config

    @property
    def env(self) -> EnvironmentSettings:
        """Load and return environment settings."""
        if self._env_settings is None:
            self._env_settings = EnvironmentSettings()
        return self._env_settings

    @property
    def settings(self) -> EngineSettings:
        """
        Validated engine settings.

        Raises:
            InvalidConfigurationError: If config.yaml holds invalid values
        """
        if self._engine_settings is None:
            try:
                self._engine_settings = EngineSettings(**self.business_config)
            except ValidationError as e:
                raise InvalidConfigurationError(f"Invalid business configuration: {e}") from e
        return self._engine_settings

    def get_company_info(self) -> dict[str, Any]:
        """Get company information from business config."""
        return self.business_config.get("company", {})

    def get_rfd_thresholds(self) -> RFDUrgencyConfig:
        """Get RFD urgency thresholds."""
        return self.settings.rfd_urgency

    def get_settlement_policy(self) -> SettlementConfig:
        """Get settlement rollup policy."""
        return self.settings.settlement


def _deep_merge(base: dict[str, Any], extra: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in extra.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# Global config instance
_config_manager: Optional[ConfigManager] = None


def get_config() -> ConfigManager:
    """
    Get the global configuration manager instance.

    Returns:
        ConfigManager singleton instance
    """
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def reset_config(config_manager: Optional[ConfigManager] = None) -> None:
    """Replace (or clear) the global configuration manager."""
    global _config_manager
    _config_manager = config_manager
