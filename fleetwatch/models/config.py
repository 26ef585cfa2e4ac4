"""Static simulation configuration, supplied once at construction."""

from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from fleetwatch.models.classifier import StationSpec
from fleetwatch.models.entity import EntityKindSpec, EntitySeed
from fleetwatch.models.reading import ReadingSpec
from fleetwatch.models.severity import SeverityLevel


class AggregatorConfig(BaseModel):
    """Configuration for system-wide aggregates and alerts."""

    raise_fraction: float = Field(ge=0, le=1, default=0.3)
    # None keeps the single-threshold behaviour: clear at raise_fraction
    clear_fraction: Optional[float] = Field(ge=0, le=1, default=None)
    standing_severity: SeverityLevel = SeverityLevel.HIGH
    standing_message: str = "{percent:.0f}% of entities need attention"
    transient_ttl: float = Field(gt=0, default=10.0)
    transient_min_level: SeverityLevel = SeverityLevel.HIGH
    entity_alert_severity: SeverityLevel = SeverityLevel.MODERATE
    mean_precision: int = Field(ge=0, default=2)

    @model_validator(mode="after")
    def _check_hysteresis(self) -> "AggregatorConfig":
        if self.clear_fraction is not None and self.clear_fraction > self.raise_fraction:
            raise ValueError("clear_fraction must not exceed raise_fraction")
        return self


class SimulationConfig(BaseModel):
    """Everything a simulation needs: tick period, bounds, breakpoints, probabilities."""

    name: str = "fleet"
    tick_period: float = Field(gt=0, default=2.0)
    seed: Optional[int] = None
    readings: List[ReadingSpec] = []
    entity_kinds: List[EntityKindSpec] = []
    entities: List[EntitySeed] = []
    stations: List[StationSpec] = []
    aggregator: AggregatorConfig = AggregatorConfig()

    @model_validator(mode="after")
    def _check_references(self) -> "SimulationConfig":
        _require_unique("reading", [r.id for r in self.readings])
        _require_unique("entity kind", [k.kind for k in self.entity_kinds])
        _require_unique("entity", [e.id for e in self.entities])
        _require_unique("station", [s.id for s in self.stations])

        kinds = {k.kind: k for k in self.entity_kinds}
        for seed in self.entities:
            spec = kinds.get(seed.kind)
            if spec is None:
                raise ValueError(f"entity {seed.id}: unknown kind {seed.kind}")
            if seed.state is not None and seed.state not in spec.states:
                raise ValueError(f"entity {seed.id}: unknown state {seed.state}")

        readings = {r.id: r for r in self.readings}
        for station in self.stations:
            missing = sorted(set(station.readings.values()) - set(readings))
            if missing:
                raise ValueError(f"station {station.id}: unknown readings {missing}")
            for rule in station.classifier.rules:
                spec = readings[station.readings[rule.role]]
                if not rule.covers(spec.lower_bound, spec.upper_bound):
                    raise ValueError(
                        f"station {station.id}: rule {rule.role} does not cover "
                        f"{spec.id} range {spec.lower_bound}..{spec.upper_bound}"
                    )
        return self

    def kind(self, name: str) -> EntityKindSpec:
        for spec in self.entity_kinds:
            if spec.kind == name:
                return spec
        raise KeyError(name)


def _require_unique(what: str, ids: List[str]) -> None:
    seen = set()
    for item in ids:
        if item in seen:
            raise ValueError(f"duplicate {what} id: {item}")
        seen.add(item)
