"""Tests for the threshold classifier."""

import pytest
from pydantic import ValidationError

from fleetwatch.classifier.engine import ThresholdClassifier
from fleetwatch.models.classifier import (
    Band,
    ClassifierConfig,
    CompoundRule,
    Condition,
    ReadingRule,
    StationSpec,
)
from fleetwatch.models.severity import SeverityLevel
from fleetwatch.presets.dashboards import co2_rule, flood_dashboard, noise_rule, voltage_rule

GOOD = SeverityLevel.GOOD
MODERATE = SeverityLevel.MODERATE
HIGH = SeverityLevel.HIGH
CRITICAL = SeverityLevel.CRITICAL


def _make_room_classifier() -> ThresholdClassifier:
    return ThresholdClassifier(ClassifierConfig(
        rules=[noise_rule(), co2_rule()],
        normal_message="Comfortable",
    ))


def _make_flood_classifier() -> ThresholdClassifier:
    station = flood_dashboard(gauges=1).stations[0]
    return ThresholdClassifier(station.classifier)


class TestSingleReadingRules:
    def test_co2_critical_dominates(self):
        """1900 ppm alone is Critical even when noise is quiet."""
        result = _make_room_classifier().classify({"co2": 1900, "noise": 40})
        assert result.level == CRITICAL
        assert "CO2 critical" in result.message
        assert result.reading_levels == {"noise": GOOD, "co2": CRITICAL}

    @pytest.mark.parametrize("value,expected", [
        (400, GOOD),
        (799, GOOD),
        (800, MODERATE),
        (1199.9, MODERATE),
        (1200, HIGH),
        (1799, HIGH),
        (1800, CRITICAL),
        (3000, CRITICAL),
    ])
    def test_co2_breakpoints(self, value, expected):
        classifier = ThresholdClassifier(ClassifierConfig(rules=[co2_rule()]))
        assert classifier.classify({"co2": value}).level == expected

    def test_all_good_returns_normal_message(self):
        result = _make_room_classifier().classify({"co2": 600, "noise": 42})
        assert result.level == GOOD
        assert result.message == "Comfortable"
        assert result.fragments == []

    def test_fragments_at_final_level_are_joined(self):
        result = _make_room_classifier().classify({"co2": 1900, "noise": 95})
        assert result.level == CRITICAL
        assert result.message == "Extreme noise (95 dB); CO2 critical (1900 ppm)"

    def test_lower_fragments_are_dropped(self):
        result = _make_room_classifier().classify({"co2": 1900, "noise": 60})
        assert "noise" not in result.message.lower()
        assert result.fragments == ["CO2 critical (1900 ppm)"]

    def test_default_fragment_uses_label(self):
        rule = ReadingRule.from_breakpoints("dust", [10], [GOOD, HIGH])
        config = ClassifierConfig(rules=[rule], labels={HIGH: "Poor"})
        result = ThresholdClassifier(config).classify({"dust": 12})
        assert result.label == "Poor"
        assert result.message == "dust poor (12)"


class TestMonotonicity:
    def test_rising_rule_never_decreases(self):
        classifier = ThresholdClassifier(ClassifierConfig(rules=[co2_rule()]))
        previous = GOOD
        for value in range(400, 3001, 10):
            level = classifier.classify({"co2": value}).level
            assert level >= previous
            previous = level

    def test_two_sided_rule_never_decreases_away_from_nominal(self):
        classifier = ThresholdClassifier(ClassifierConfig(rules=[voltage_rule()]))
        for direction in (1, -1):
            previous = GOOD
            for step in range(0, 90):
                level = classifier.classify({"voltage": 230 + direction * step}).level
                assert level >= previous
                previous = level

    def test_other_readings_held_fixed(self):
        classifier = _make_room_classifier()
        for noise in (40, 60, 80, 100):
            previous = GOOD
            for co2 in range(400, 3001, 50):
                level = classifier.classify({"co2": co2, "noise": noise}).level
                assert level >= previous
                previous = level


class TestCompoundRules:
    def test_flood_risk_escalates_above_single_rules(self):
        result = _make_flood_classifier().classify(
            {"humidity": 86, "pressure": 995, "rainfall": 2}
        )
        assert result.reading_levels["humidity"] == MODERATE
        assert result.reading_levels["pressure"] == MODERATE
        assert result.level == CRITICAL
        assert result.label == "Danger"
        assert result.compound_rules_fired == ["flood_risk"]
        assert result.message.startswith("Flood risk")

    def test_compound_needs_every_condition(self):
        result = _make_flood_classifier().classify(
            {"humidity": 86, "pressure": 1005, "rainfall": 2}
        )
        assert result.compound_rules_fired == []
        assert result.level == MODERATE

    def test_compound_never_lowers_single_rule_level(self):
        classifier = _make_flood_classifier()
        single_only = ThresholdClassifier(
            classifier.config.model_copy(update={"compound_rules": []})
        )
        for humidity in range(50, 101, 5):
            for pressure in range(960, 1041, 10):
                for rainfall in (0, 15, 45, 90):
                    readings = {"humidity": humidity, "pressure": pressure, "rainfall": rainfall}
                    assert (
                        classifier.classify(readings).level
                        >= single_only.classify(readings).level
                    )

    def test_compound_with_missing_reading_does_not_fire(self):
        result = _make_flood_classifier().classify({"humidity": 95})
        assert result.compound_rules_fired == []
        assert result.level == HIGH


class TestFallback:
    def test_missing_reading_falls_back_to_lowest(self):
        result = _make_room_classifier().classify({})
        assert result.level == GOOD
        assert result.message == "Comfortable"

    @pytest.mark.parametrize("value", [float("nan"), None, "loud", True])
    def test_unusable_values_fall_back(self, value):
        result = _make_room_classifier().classify({"noise": value, "co2": 500})
        assert result.level == GOOD
        assert result.reading_levels["noise"] == GOOD


class TestRuleValidation:
    def test_non_monotonic_bands_rejected(self):
        with pytest.raises(ValidationError):
            ReadingRule(role="x", bands=[
                Band(upper=10, level=GOOD),
                Band(lower=10, upper=20, level=HIGH),
                Band(lower=20, level=MODERATE),
            ])

    def test_overlapping_bands_rejected(self):
        with pytest.raises(ValidationError):
            ReadingRule(role="x", bands=[
                Band(upper=20, level=GOOD),
                Band(lower=10, level=HIGH),
            ])

    def test_gap_between_bands_rejected(self):
        with pytest.raises(ValidationError, match="gap between"):
            ReadingRule(role="co2", bands=[
                Band(upper=800, level=GOOD),
                Band(lower=800, upper=1000, level=MODERATE),
                Band(lower=1100, level=HIGH),
            ])

    def test_covers_checks_outer_bands(self):
        rule = ReadingRule(role="x", bands=[
            Band(lower=0, upper=50, level=GOOD),
            Band(lower=50, upper=100, level=HIGH),
        ])
        assert rule.covers(0, 99.9)
        assert not rule.covers(-1, 50)
        assert not rule.covers(0, 100)
        assert co2_rule().covers(-1e9, 1e9)

    def test_breakpoint_level_count_checked(self):
        with pytest.raises(ValueError):
            ReadingRule.from_breakpoints("x", [1, 2], [GOOD, HIGH])

    def test_compound_needs_two_conditions(self):
        with pytest.raises(ValidationError):
            CompoundRule(
                name="lonely",
                conditions=[Condition(role="x", above=1)],
                level=HIGH,
                fragment="x",
            )

    def test_station_roles_must_be_bound(self):
        with pytest.raises(ValidationError):
            StationSpec(
                id="room",
                readings={"noise": "room_noise"},
                classifier=ClassifierConfig(rules=[noise_rule(), co2_rule()]),
            )
