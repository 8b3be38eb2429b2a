"""
RFD Urgency Classifier - ready-for-delivery urgency tiers for dispatch.

Tiers, first match wins:
1. tbd          RFD date is TBD or not set
2. normal       already on a trip (dispatch has acted, whatever the date)
3. critical     RFD is today or overdue
4. urgent       RFD within the next 2 days
5. approaching  RFD within the next 7 days
6. normal       otherwise

"now" is always passed in; nothing here reads the clock.
"""

from datetime import date, datetime
from enum import Enum
from time import time
from typing import Any, Iterable, Optional, TypeVar, Union

from pydantic import BaseModel

from tripledger.core.errors import InvalidConfigurationError
from tripledger.data.models.load import Load
from tripledger.engines.base import BaseEngine

LoadT = TypeVar("LoadT", bound=Load)


class RFDUrgencyLevel(str, Enum):
    """Urgency tiers, most urgent first."""

    CRITICAL = "critical"
    URGENT = "urgent"
    APPROACHING = "approaching"
    NORMAL = "normal"
    TBD = "tbd"


URGENCY_DISPLAY = {
    RFDUrgencyLevel.CRITICAL: {"label": "Critical", "badge_variant": "destructive", "sort_order": 0},
    RFDUrgencyLevel.URGENT: {"label": "Urgent", "badge_variant": "warning", "sort_order": 1},
    RFDUrgencyLevel.APPROACHING: {"label": "Approaching", "badge_variant": "secondary", "sort_order": 2},
    RFDUrgencyLevel.NORMAL: {"label": "On Track", "badge_variant": "outline", "sort_order": 3},
    RFDUrgencyLevel.TBD: {"label": "TBD", "badge_variant": "default", "sort_order": 4},
}

NEEDS_ATTENTION = frozenset({RFDUrgencyLevel.CRITICAL, RFDUrgencyLevel.URGENT})


class RFDUrgency(BaseModel):
    """Urgency information for a load at one instant."""

    level: RFDUrgencyLevel
    label: str
    badge_label: str
    description: str
    badge_variant: str
    sort_order: int
    days_until_rfd: Optional[int] = None
    is_overdue: bool = False
    days_until_deadline: Optional[int] = None
    is_deadline_overdue: bool = False


def _as_date(now: Union[datetime, date]) -> date:
    return now.date() if isinstance(now, datetime) else now


class RFDUrgencyClassifier(BaseEngine):
    """
    RFD Urgency Classifier.

    Comparisons are by calendar date in whatever timezone ``now`` carries;
    callers pass a local "now" for the dispatcher's day boundary.
    """

    def __init__(self, **kwargs: Any) -> None:
        """Initialize the RFD urgency classifier."""
        super().__init__(engine_name="rfd_urgency", **kwargs)
        thresholds = self.config_manager.get_rfd_thresholds()
        self.critical_days = thresholds.critical_days
        self.urgent_days = thresholds.urgent_days
        self.approaching_days = thresholds.approaching_days

    def level_for(
        self, days_until: Optional[int], is_tbd: bool, is_assigned: bool
    ) -> RFDUrgencyLevel:
        """Tier from days until RFD, TBD flag and trip assignment."""
        if is_tbd or days_until is None:
            return RFDUrgencyLevel.TBD
        if is_assigned:
            return RFDUrgencyLevel.NORMAL
        if days_until <= self.critical_days:
            return RFDUrgencyLevel.CRITICAL
        if days_until <= self.urgent_days:
            return RFDUrgencyLevel.URGENT
        if days_until <= self.approaching_days:
            return RFDUrgencyLevel.APPROACHING
        return RFDUrgencyLevel.NORMAL

    def classify(self, load: Load, now: Union[datetime, date]) -> RFDUrgency:
        """
        Calculate urgency for a load.

        Args:
            load: Load with rfd_date, rfd_date_tbd and trip_id
            now: Evaluation instant

        Returns:
            RFDUrgency
        """
        today = _as_date(now)
        is_tbd = bool(load.rfd_date_tbd)

        days_until: Optional[int] = None
        if load.rfd_date is not None and not is_tbd:
            days_until = (load.rfd_date - today).days

        days_until_deadline: Optional[int] = None
        if load.rfd_delivery_deadline is not None:
            days_until_deadline = (load.rfd_delivery_deadline - today).days

        level = self.level_for(days_until, is_tbd, load.is_assigned)
        display = URGENCY_DISPLAY[level]
        is_overdue = days_until is not None and days_until < 0

        return RFDUrgency(
            level=level,
            label=display["label"],
            badge_label=_badge_label(level, days_until),
            description=_description(level, days_until),
            badge_variant=display["badge_variant"],
            sort_order=display["sort_order"],
            days_until_rfd=days_until,
            is_overdue=is_overdue,
            days_until_deadline=days_until_deadline,
            is_deadline_overdue=days_until_deadline is not None and days_until_deadline < 0,
        )

    def count_by_urgency_level(
        self, loads: Iterable[Load], now: Union[datetime, date]
    ) -> dict[RFDUrgencyLevel, int]:
        """Number of loads in each tier; every tier is present."""
        start_time = time()
        counts = {level: 0 for level in RFDUrgencyLevel}
        for load in loads:
            counts[self.classify(load, now).level] += 1

        self.log_decision(
            decision_type="rfd_urgency_counts",
            input_data={"as_of": _as_date(now).isoformat(), "loads": sum(counts.values())},
            output_data={level.value: count for level, count in counts.items()},
            reasoning="Counted loads per RFD urgency tier",
            started_at=start_time,
            finished_at=time(),
        )
        return counts

    def loads_needing_attention(
        self, loads: Iterable[LoadT], now: Union[datetime, date]
    ) -> list[LoadT]:
        """Critical and urgent loads, most urgent first."""
        flagged = [load for load in loads if self.classify(load, now).level in NEEDS_ATTENTION]
        return self.sort_by_urgency(flagged, now)

    def filter_by_urgency_level(
        self,
        loads: Iterable[LoadT],
        levels: Iterable[Union[RFDUrgencyLevel, str]],
        now: Union[datetime, date],
    ) -> list[LoadT]:
        """
        Loads whose tier is one of ``levels``, in input order.

        Raises:
            InvalidConfigurationError: If a level name is not a known tier
        """
        try:
            wanted = {RFDUrgencyLevel(level) for level in levels}
        except ValueError as e:
            raise InvalidConfigurationError(f"Unknown RFD urgency level: {e}") from e
        return [load for load in loads if self.classify(load, now).level in wanted]

    def sort_by_urgency(
        self, loads: Iterable[LoadT], now: Union[datetime, date]
    ) -> list[LoadT]:
        """
        Most urgent first: by days until RFD (overdue first), TBD loads last.

        The sort is stable, so loads with equal keys keep their input order.
        """
        def key(load: Load) -> tuple[int, int]:
            urgency = self.classify(load, now)
            if urgency.level is RFDUrgencyLevel.TBD:
                return (1, 0)
            return (0, urgency.days_until_rfd or 0)

        return sorted(loads, key=key)

    def execute(self, *args: Any, **kwargs: Any) -> RFDUrgency:
        """
        Execute classification (delegates to classify).

        Returns:
            RFDUrgency
        """
        return self.classify(*args, **kwargs)


def _badge_label(level: RFDUrgencyLevel, days_until: Optional[int]) -> str:
    """Short label for badges."""
    if level is RFDUrgencyLevel.TBD or days_until is None:
        return "TBD"
    if days_until < 0:
        return f"{abs(days_until)}d overdue"
    if days_until == 0:
        return "Today"
    if days_until == 1:
        return "Tomorrow"
    return f"{days_until}d"


def _description(level: RFDUrgencyLevel, days_until: Optional[int]) -> str:
    if level is RFDUrgencyLevel.TBD or days_until is None:
        return "RFD date not set"
    if days_until < 0:
        days_overdue = abs(days_until)
        return "RFD was yesterday" if days_overdue == 1 else f"RFD was {days_overdue} days ago"
    if days_until == 0:
        return "RFD is today"
    if days_until == 1:
        return "RFD is tomorrow"
    return f"RFD in {days_until} days"
