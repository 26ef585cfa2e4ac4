"""Snapshot — the immutable per-tick unit handed to a renderer."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from fleetwatch.models.entity import Entity, TransitionRecord
from fleetwatch.models.reading import Reading
from fleetwatch.models.severity import Alert, Classification, SeverityLevel


class AggregateSummary(BaseModel):
    """System-wide aggregates recomputed from scratch every tick."""

    model_config = ConfigDict(frozen=True)

    entity_count: int = 0
    state_counts: Dict[str, int] = {}
    attention_count: int = 0
    attention_fraction: float = 0.0
    attention_percent: float = 0.0
    mean_score: Optional[float] = None
    reading_means: Dict[str, float] = {}    # reading kind -> mean value
    severity_counts: Dict[SeverityLevel, int] = {}
    worst_level: SeverityLevel = SeverityLevel.GOOD


class Snapshot(BaseModel):
    """All readings, entities and alerts as of one tick."""

    model_config = ConfigDict(frozen=True)

    tick: int
    time: float
    readings: Dict[str, Reading] = {}
    entities: Dict[str, Entity] = {}
    classifications: Dict[str, Classification] = {}
    summary: AggregateSummary = AggregateSummary()
    standing_alert: Optional[Alert] = None
    transient_alert: Optional[Alert] = None
    transitions: List[TransitionRecord] = []

    @property
    def headline(self) -> Optional[Alert]:
        """
        The single alert to display: the most severe live alert,
        the most recent one among equal severities.
        """
        candidates = [a for a in (self.standing_alert, self.transient_alert) if a]
        if not candidates:
            return None
        return max(candidates, key=lambda a: (a.severity.rank, a.created_at))
