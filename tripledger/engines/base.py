"""
Base engine class for all trip ledger calculators.

Provides common functionality:
- Configuration loading
- Structured logging and decision tracking
- Decision export for audit
"""

import json
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

import structlog
from pydantic import BaseModel

from tripledger.core.config import ConfigManager, EngineSettings, get_config


class EngineDecision(BaseModel):
    """
    Structured record of one calculation.

    Kept so that a settlement figure can be traced back to its inputs.
    """

    timestamp: datetime
    engine_name: str
    decision_type: str
    input_data: dict[str, Any]
    reasoning: str
    output_data: dict[str, Any]
    execution_time_seconds: float


class BaseEngine(ABC):
    """
    Base class for all trip ledger engines.

    Provides:
    - Configuration loading
    - Decision logging
    - Structured logger bound to the engine name
    """

    def __init__(
        self,
        engine_name: str,
        config_manager: Optional[ConfigManager] = None,
        logger: Optional[structlog.BoundLogger] = None,
    ) -> None:
        """
        Initialize the base engine.

        Args:
            engine_name: Name of the engine (e.g., "driver_pay", "settlement")
            config_manager: Optional config manager (defaults to global instance)
            logger: Optional structured logger
        """
        self.engine_name = engine_name
        self.config_manager = config_manager or get_config()
        self.logger = logger or structlog.get_logger(engine_name=engine_name)

        # Decision history (for audit and debugging)
        self.decision_history: list[EngineDecision] = []

    @property
    def settings(self) -> EngineSettings:
        """Validated business settings."""
        return self.config_manager.settings

    def log_decision(
        self,
        decision_type: str,
        input_data: dict[str, Any],
        output_data: dict[str, Any],
        reasoning: str,
        started_at: float,
        finished_at: float,
    ) -> EngineDecision:
        """
        Record a calculation for audit.

        Args:
            decision_type: Kind of calculation (e.g., "driver_pay_calculation")
            input_data: Summary of the inputs used
            output_data: Summary of the results
            reasoning: Human-readable description of the rule applied
            started_at: time() when the calculation started
            finished_at: time() when it finished
        """
        decision = EngineDecision(
            timestamp=datetime.now(),
            engine_name=self.engine_name,
            decision_type=decision_type,
            input_data=input_data,
            reasoning=reasoning,
            output_data=output_data,
            execution_time_seconds=finished_at - started_at,
        )
        self.decision_history.append(decision)
        self.logger.info(
            "engine_decision",
            decision_type=decision.decision_type,
            reasoning=decision.reasoning,
            execution_time=decision.execution_time_seconds,
        )
        return decision

    def export_decisions(self, filepath: str) -> None:
        """
        Export decision history to JSON file.

        Args:
            filepath: Path to output JSON file
        """
        with open(filepath, "w") as f:
            decisions_dict = [d.model_dump(mode="json") for d in self.decision_history]
            json.dump(decisions_dict, f, indent=2, default=str)

        self.logger.info("decisions_exported", filepath=filepath, count=len(self.decision_history))

    @abstractmethod
    def execute(self, *args: Any, **kwargs: Any) -> Any:
        """
        Execute the engine's primary calculation.

        Returns:
            Engine-specific output
        """
        pass

    def __repr__(self) -> str:
        """String representation of the engine."""
        return f"{self.__class__.__name__}(engine_name='{self.engine_name}')"
