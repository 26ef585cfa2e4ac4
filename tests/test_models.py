"""Tests for core data models."""

import pytest
from pydantic import ValidationError

from fleetwatch.models import (
    Alert,
    AlertScope,
    EntitySeed,
    ReadingSpec,
    SeverityLevel,
    SimulationConfig,
    Snapshot,
    StationSpec,
)
from fleetwatch.presets.dashboards import classroom_dashboard, co2_rule, restroom_stall_kind
from fleetwatch.models.classifier import Band, ClassifierConfig, ReadingRule


class TestSeverityLevel:
    def test_total_order(self):
        assert SeverityLevel.GOOD < SeverityLevel.MODERATE < SeverityLevel.HIGH < SeverityLevel.CRITICAL
        assert SeverityLevel.worst() == SeverityLevel.CRITICAL
        assert SeverityLevel.lowest() == SeverityLevel.GOOD

    def test_max_picks_worst(self):
        levels = [SeverityLevel.HIGH, SeverityLevel.GOOD, SeverityLevel.CRITICAL, SeverityLevel.MODERATE]
        assert max(levels) == SeverityLevel.CRITICAL
        assert sorted(levels)[0] == SeverityLevel.GOOD

    def test_ordering_is_by_rank_not_name(self):
        # alphabetically "critical" < "good"
        assert SeverityLevel.CRITICAL > SeverityLevel.GOOD

    def test_serializes_by_value(self):
        alert = Alert(message="m", severity=SeverityLevel.HIGH, created_at=1.0)
        assert alert.model_dump(mode="json")["severity"] == "high"


class TestAlert:
    def test_standing_alert_never_expires(self):
        alert = Alert(message="m", severity=SeverityLevel.HIGH, created_at=0.0,
                      scope=AlertScope.STANDING)
        assert alert.expires_at() is None
        assert alert.is_live(1e9)

    def test_transient_alert_expiry(self):
        alert = Alert(message="m", severity=SeverityLevel.HIGH, created_at=10.0, ttl=5.0)
        assert alert.expires_at() == 15.0
        assert alert.is_live(14.0)
        assert not alert.is_live(15.0)


class TestSnapshotHeadline:
    def test_most_severe_wins(self):
        snapshot = Snapshot(
            tick=3,
            time=3.0,
            standing_alert=Alert(message="standing", severity=SeverityLevel.HIGH,
                                 created_at=1.0, scope=AlertScope.STANDING),
            transient_alert=Alert(message="spike", severity=SeverityLevel.MODERATE,
                                  created_at=3.0, ttl=5.0),
        )
        assert snapshot.headline.message == "standing"

    def test_newest_wins_among_equals(self):
        snapshot = Snapshot(
            tick=3,
            time=3.0,
            standing_alert=Alert(message="standing", severity=SeverityLevel.HIGH,
                                 created_at=1.0, scope=AlertScope.STANDING),
            transient_alert=Alert(message="spike", severity=SeverityLevel.HIGH,
                                  created_at=3.0, ttl=5.0),
        )
        assert snapshot.headline.message == "spike"

    def test_snapshot_is_frozen(self):
        snapshot = Snapshot(tick=0, time=0.0)
        with pytest.raises(ValidationError):
            snapshot.tick = 1


class TestSimulationConfig:
    def test_unknown_entity_kind(self):
        with pytest.raises(ValidationError):
            SimulationConfig(entities=[EntitySeed(id="e1", kind="ghost")])

    def test_unknown_seed_state(self):
        with pytest.raises(ValidationError):
            SimulationConfig(
                entity_kinds=[restroom_stall_kind()],
                entities=[EntitySeed(id="e1", kind="restroom_stall", state="flooded")],
            )

    def test_duplicate_reading_ids(self):
        spec = ReadingSpec(id="r", kind="k", initial=1, lower_bound=0, upper_bound=2, amplitude=1)
        with pytest.raises(ValidationError):
            SimulationConfig(readings=[spec, spec])

    def test_station_with_unknown_reading(self):
        with pytest.raises(ValidationError):
            SimulationConfig(stations=[StationSpec(
                id="room",
                readings={"co2": "missing"},
                classifier=ClassifierConfig(rules=[co2_rule()]),
            )])

    def _make_co2_station_config(self, bands):
        reading = ReadingSpec(
            id="room_co2", kind="co2", initial=700,
            lower_bound=400, upper_bound=3000, amplitude=50,
        )
        return SimulationConfig(
            readings=[reading],
            stations=[StationSpec(
                id="room",
                readings={"co2": "room_co2"},
                classifier=ClassifierConfig(rules=[ReadingRule(role="co2", bands=bands)]),
            )],
        )

    def test_rule_must_cover_reading_range(self):
        with pytest.raises(ValidationError, match="does not cover"):
            self._make_co2_station_config([
                Band(upper=800, level=SeverityLevel.GOOD),
                Band(lower=800, upper=1000, level=SeverityLevel.MODERATE),
                Band(lower=1000, upper=2000, level=SeverityLevel.HIGH),
            ])

    def test_upper_bound_itself_must_be_covered(self):
        with pytest.raises(ValidationError, match="does not cover"):
            self._make_co2_station_config([
                Band(lower=400, upper=1200, level=SeverityLevel.GOOD),
                Band(lower=1200, upper=3000, level=SeverityLevel.HIGH),
            ])

    def test_bounded_rule_spanning_reading_range_accepted(self):
        config = self._make_co2_station_config([
            Band(lower=400, upper=1200, level=SeverityLevel.GOOD),
            Band(lower=1200, upper=3001, level=SeverityLevel.HIGH),
        ])
        assert config.stations[0].classifier.rules[0].covers(400, 3000)

    def test_non_positive_tick_period(self):
        with pytest.raises(ValidationError):
            SimulationConfig(tick_period=0)

    def test_loads_from_json(self):
        original = classroom_dashboard(rooms=2, seed=4)
        loaded = SimulationConfig.model_validate_json(original.model_dump_json())
        assert loaded == original
        assert loaded.stations[0].classifier.rules[1].bands[3].level == SeverityLevel.CRITICAL
