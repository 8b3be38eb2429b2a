"""Tests for tripledger/engines/rfd_urgency.py

Run with:  pytest tests/test_rfd_urgency.py -v
"""

from datetime import date, datetime, timedelta

import pytest

from tripledger.core.errors import InvalidConfigurationError
from tripledger.data.models import Load
from tripledger.engines.rfd_urgency import RFDUrgencyClassifier, RFDUrgencyLevel

TODAY = date(2025, 3, 10)
NOW = datetime(2025, 3, 10, 23, 59)


# ── Helpers ────────────────────────────────────────────────────────────────────

def _load(load_id="LOAD-1", days=None, **kwargs):
    rfd_date = TODAY + timedelta(days=days) if days is not None else None
    return Load(load_id=load_id, rfd_date=rfd_date, **kwargs)


@pytest.fixture
def classifier(config_manager):
    return RFDUrgencyClassifier(config_manager=config_manager)


# ── Tiers ──────────────────────────────────────────────────────────────────────

class TestClassify:
    def test_today_unassigned_is_critical(self, classifier):
        urgency = classifier.classify(_load(days=0), NOW)
        assert urgency.level is RFDUrgencyLevel.CRITICAL
        assert urgency.badge_label == "Today"
        assert urgency.is_overdue is False

    def test_today_assigned_is_normal(self, classifier):
        urgency = classifier.classify(_load(days=0, trip_id="TRIP-1"), NOW)
        assert urgency.level is RFDUrgencyLevel.NORMAL

    def test_overdue_assigned_is_normal(self, classifier):
        urgency = classifier.classify(_load(days=-5, trip_id="TRIP-1"), NOW)
        assert urgency.level is RFDUrgencyLevel.NORMAL
        assert urgency.is_overdue is True

    def test_overdue_unassigned_is_critical(self, classifier):
        urgency = classifier.classify(_load(days=-3), NOW)
        assert urgency.level is RFDUrgencyLevel.CRITICAL
        assert urgency.badge_label == "3d overdue"
        assert urgency.description == "RFD was 3 days ago"

    def test_tbd_wins(self, classifier):
        urgency = classifier.classify(_load(days=-3, rfd_date_tbd=True), NOW)
        assert urgency.level is RFDUrgencyLevel.TBD
        assert urgency.days_until_rfd is None
        assert urgency.badge_label == "TBD"

    def test_missing_date_is_tbd(self, classifier):
        assert classifier.classify(_load(), NOW).level is RFDUrgencyLevel.TBD

    @pytest.mark.parametrize("days, level", [
        (0, RFDUrgencyLevel.CRITICAL),
        (1, RFDUrgencyLevel.URGENT),
        (2, RFDUrgencyLevel.URGENT),
        (3, RFDUrgencyLevel.APPROACHING),
        (7, RFDUrgencyLevel.APPROACHING),
        (8, RFDUrgencyLevel.NORMAL),
    ])
    def test_boundaries(self, classifier, days, level):
        assert classifier.classify(_load(days=days), NOW).level is level

    def test_date_and_datetime_agree(self, classifier):
        load = _load(days=2)
        assert classifier.classify(load, TODAY) == classifier.classify(load, NOW)

    def test_configured_thresholds(self, make_config):
        classifier = RFDUrgencyClassifier(
            config_manager=make_config(rfd_urgency={"urgent_days": 3, "approaching_days": 10})
        )
        assert classifier.classify(_load(days=3), NOW).level is RFDUrgencyLevel.URGENT
        assert classifier.classify(_load(days=10), NOW).level is RFDUrgencyLevel.APPROACHING

    def test_delivery_deadline(self, classifier):
        urgency = classifier.classify(
            _load(days=-10, rfd_delivery_deadline=TODAY - timedelta(days=1)), NOW
        )
        assert urgency.days_until_deadline == -1
        assert urgency.is_deadline_overdue is True

    def test_badges(self, classifier):
        assert classifier.classify(_load(days=1), NOW).badge_label == "Tomorrow"
        assert classifier.classify(_load(days=5), NOW).badge_label == "5d"
        assert classifier.classify(_load(days=-1), NOW).description == "RFD was yesterday"
        critical = classifier.classify(_load(days=0), NOW)
        assert (critical.label, critical.badge_variant, critical.sort_order) == ("Critical", "destructive", 0)


# ── Collections ────────────────────────────────────────────────────────────────

class TestCollections:
    @pytest.fixture
    def loads(self):
        return [
            _load("NORMAL", days=20),
            _load("TBD"),
            _load("URGENT", days=2),
            _load("ASSIGNED", days=-2, trip_id="TRIP-1"),
            _load("CRITICAL", days=-1),
            _load("APPROACHING", days=5),
        ]

    def test_counts_include_every_tier(self, classifier):
        counts = classifier.count_by_urgency_level([], NOW)
        assert set(counts) == set(RFDUrgencyLevel)
        assert all(count == 0 for count in counts.values())

    def test_counts(self, classifier, loads):
        counts = classifier.count_by_urgency_level(loads, NOW)
        assert counts == {
            RFDUrgencyLevel.CRITICAL: 1,
            RFDUrgencyLevel.URGENT: 1,
            RFDUrgencyLevel.APPROACHING: 1,
            RFDUrgencyLevel.NORMAL: 2,
            RFDUrgencyLevel.TBD: 1,
        }
        assert sum(counts.values()) == len(loads)

    def test_needing_attention(self, classifier, loads):
        flagged = classifier.loads_needing_attention(loads, NOW)
        assert [load.load_id for load in flagged] == ["CRITICAL", "URGENT"]

    def test_filter(self, classifier, loads):
        picked = classifier.filter_by_urgency_level(loads, ["tbd", RFDUrgencyLevel.APPROACHING], NOW)
        assert [load.load_id for load in picked] == ["TBD", "APPROACHING"]

    def test_filter_unknown_level(self, classifier, loads):
        with pytest.raises(InvalidConfigurationError):
            classifier.filter_by_urgency_level(loads, ["overdue"], NOW)

    def test_sort_puts_tbd_last(self, classifier, loads):
        ordered = [load.load_id for load in classifier.sort_by_urgency(loads, NOW)]
        assert ordered == ["ASSIGNED", "CRITICAL", "URGENT", "APPROACHING", "NORMAL", "TBD"]
