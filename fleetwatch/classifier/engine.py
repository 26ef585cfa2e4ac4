"""
Threshold Classifier — readings to (severity, message).

Single-reading rules are evaluated first, then compound rules. Combination
is escalate-only: the overall level is the maximum across every rule that
fired, and no rule evaluated later can lower it.

The classifier is pure and total. A missing, non-numeric or unmapped
reading falls back to the lowest level instead of raising.
"""

import logging
import math
from typing import List, Mapping, Optional, Tuple

from fleetwatch.models.classifier import Band, ClassifierConfig, CompoundRule, ReadingRule
from fleetwatch.models.severity import Classification, SeverityLevel

logger = logging.getLogger(__name__)

Finding = Tuple[SeverityLevel, Optional[str]]


class ThresholdClassifier:
    """Classifies one station's readings against its rule set."""

    def __init__(self, config: ClassifierConfig):
        self.config = config

    def classify(self, readings: Mapping[str, float]) -> Classification:
        """
        Classify a role -> value mapping.

        The message joins every fragment at the final level; fragments of
        lower-severity rules are dropped.
        """
        overall = SeverityLevel.lowest()
        findings: List[Finding] = []
        reading_levels = {}

        for rule in self.config.rules:
            level, fragment = self.classify_reading(rule, readings.get(rule.role))
            reading_levels[rule.role] = level
            findings.append((level, fragment))
            overall = max(overall, level)

        fired = []
        for compound in self.config.compound_rules:
            if self._compound_fires(compound, readings):
                fired.append(compound.name)
                findings.append((compound.level, compound.fragment))
                overall = max(overall, compound.level)

        label = self.config.label_for(overall)

        if overall == SeverityLevel.lowest():
            return Classification(
                level=overall,
                label=label,
                message=self.config.normal_message,
                reading_levels=reading_levels,
                compound_rules_fired=fired,
            )

        fragments = [f for level, f in findings if level == overall and f]
        message = "; ".join(fragments) if fragments else label
        return Classification(
            level=overall,
            label=label,
            message=message,
            fragments=fragments,
            reading_levels=reading_levels,
            compound_rules_fired=fired,
        )

    def classify_reading(self, rule: ReadingRule, value) -> Finding:
        """Map a single value to its band's level and rendered fragment."""
        if not _is_number(value):
            logger.debug("Reading %s has no usable value (%r)", rule.role, value)
            return SeverityLevel.lowest(), None

        band = self._find_band(rule, value)
        if band is None:
            logger.debug("Reading %s=%s matches no band", rule.role, value)
            return SeverityLevel.lowest(), None

        fragment = None
        if band.fragment:
            fragment = band.fragment.format(value=value, role=rule.role)
        elif band.level != SeverityLevel.lowest():
            fragment = f"{rule.role} {self.config.label_for(band.level).lower()} ({value})"
        return band.level, fragment

    def _find_band(self, rule: ReadingRule, value: float) -> Optional[Band]:
        for band in rule.bands:
            if band.contains(value):
                return band
        return None

    def _compound_fires(self, rule: CompoundRule, readings: Mapping[str, float]) -> bool:
        for condition in rule.conditions:
            value = readings.get(condition.role)
            if not _is_number(value) or not condition.holds(value):
                return False
        return True


def _is_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)
