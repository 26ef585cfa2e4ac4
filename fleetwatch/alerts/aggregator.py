"""
Alert Aggregator — system-wide summary, standing alert, transient alerts.

Standing alert: raised while the fraction of entities in an attention state
exceeds ``raise_fraction``; cleared once it drops to ``clear_fraction`` or
below (``raise_fraction`` when no separate clear threshold is configured).

Transient alerts: timestamped, expire after ``ttl`` whether or not their
cause has cleared. A candidate of equal or higher severity replaces the
live alert; a lower one never preempts it.
"""

import logging
from collections import Counter
from statistics import fmean
from typing import Dict, Iterable, List, Mapping, Optional

from fleetwatch.models.config import AggregatorConfig
from fleetwatch.models.entity import Entity, EntityKindSpec
from fleetwatch.models.reading import Reading
from fleetwatch.models.severity import Alert, AlertScope, Classification, SeverityLevel
from fleetwatch.models.snapshot import AggregateSummary

logger = logging.getLogger(__name__)


class AlertAggregator:
    """Stateless: every input it needs is passed in from the previous snapshot."""

    def __init__(self, config: AggregatorConfig, kinds: Iterable[EntityKindSpec]):
        self.config = config
        self._attention: Dict[str, set] = {k.kind: set(k.attention_states) for k in kinds}

    # --- Aggregates ---

    def summarize(
        self,
        readings: Mapping[str, Reading],
        entities: Mapping[str, Entity],
        classifications: Mapping[str, Classification],
    ) -> AggregateSummary:
        """Recompute every aggregate from the full entity and reading sets."""
        ordered = [entities[k] for k in sorted(entities)]
        state_counts = Counter(e.state for e in ordered)
        attention = sum(
            1 for e in ordered if e.state in self._attention.get(e.kind, ())
        )
        total = len(ordered)
        fraction = attention / total if total else 0.0

        by_kind: Dict[str, List[float]] = {}
        for reading_id in sorted(readings):
            reading = readings[reading_id]
            by_kind.setdefault(reading.kind, []).append(reading.value)
        precision = self.config.mean_precision
        reading_means = {
            kind: round(fmean(values), precision)
            for kind, values in sorted(by_kind.items())
        }

        levels = [classifications[k].level for k in sorted(classifications)]
        severity_counts = {level: 0 for level in SeverityLevel}
        for level in levels:
            severity_counts[level] += 1
        worst = max(levels) if levels else SeverityLevel.lowest()

        return AggregateSummary(
            entity_count=total,
            state_counts=dict(sorted(state_counts.items())),
            attention_count=attention,
            attention_fraction=fraction,
            attention_percent=round(fraction * 100, 1),
            mean_score=round(fmean(e.score for e in ordered), 1) if ordered else None,
            reading_means=reading_means,
            severity_counts=severity_counts,
            worst_level=worst,
        )

    # --- Standing alert ---

    def update_standing(
        self,
        previous: Optional[Alert],
        summary: AggregateSummary,
        now: float,
    ) -> Optional[Alert]:
        """Raise, hold or clear the standing attention alert."""
        fraction = summary.attention_fraction
        message = self.config.standing_message.format(
            percent=summary.attention_percent,
            count=summary.attention_count,
            total=summary.entity_count,
        )

        if previous is None:
            if fraction > self.config.raise_fraction:
                logger.info("Standing alert raised: %s", message)
                return Alert(
                    message=message,
                    severity=self.config.standing_severity,
                    created_at=now,
                    ttl=None,
                    scope=AlertScope.STANDING,
                )
            return None

        clear_at = self.config.clear_fraction
        if clear_at is None:
            clear_at = self.config.raise_fraction
        if fraction <= clear_at:
            logger.info("Standing alert cleared at %.1f%%", summary.attention_percent)
            return None

        if previous.message == message:
            return previous
        return previous.model_copy(update={"message": message})

    # --- Transient alerts ---

    def station_alert(
        self,
        station_id: str,
        label: str,
        previous: Optional[Classification],
        current: Classification,
        now: float,
    ) -> Optional[Alert]:
        """A transient alert when a station climbs into an alerting level."""
        if current.level < self.config.transient_min_level:
            return None
        if previous is not None and current.level <= previous.level:
            return None
        return Alert(
            message=f"{label or station_id}: {current.message}",
            severity=current.level,
            created_at=now,
            ttl=self.config.transient_ttl,
            scope=AlertScope.TRANSIENT,
            source=station_id,
        )

    def entity_alert(self, entity: Entity, now: float) -> Alert:
        """A transient alert for an entity that just entered maintenance-needed."""
        return Alert(
            message=entity.alert or f"{entity.id} needs attention",
            severity=self.config.entity_alert_severity,
            created_at=now,
            ttl=self.config.transient_ttl,
            scope=AlertScope.TRANSIENT,
            source=entity.id,
        )

    def offer(
        self, current: Optional[Alert], candidate: Alert, now: float
    ) -> Optional[Alert]:
        """Decide whether ``candidate`` replaces the displayed transient alert."""
        if current is None or not current.is_live(now):
            return candidate
        if candidate.severity >= current.severity:
            return candidate
        return current

    def expire(self, current: Optional[Alert], now: float) -> Optional[Alert]:
        if current is not None and not current.is_live(now):
            return None
        return current
