"""FleetWatch data models."""

from fleetwatch.models.classifier import (
    Band,
    ClassifierConfig,
    CompoundRule,
    Condition,
    ReadingRule,
    StationSpec,
)
from fleetwatch.models.config import AggregatorConfig, SimulationConfig
from fleetwatch.models.entity import (
    CounterRule,
    Entity,
    EntityKindSpec,
    EntitySeed,
    LongDwellRule,
    ScoreRule,
    TransitionEdge,
    TransitionRecord,
)
from fleetwatch.models.reading import Reading, ReadingSpec
from fleetwatch.models.severity import Alert, AlertScope, Classification, SeverityLevel
from fleetwatch.models.snapshot import AggregateSummary, Snapshot

__all__ = [
    "AggregateSummary",
    "AggregatorConfig",
    "Alert",
    "AlertScope",
    "Band",
    "Classification",
    "ClassifierConfig",
    "CompoundRule",
    "Condition",
    "CounterRule",
    "Entity",
    "EntityKindSpec",
    "EntitySeed",
    "LongDwellRule",
    "Reading",
    "ReadingRule",
    "ReadingSpec",
    "ScoreRule",
    "SimulationConfig",
    "Snapshot",
    "StationSpec",
    "TransitionEdge",
    "TransitionRecord",
]
