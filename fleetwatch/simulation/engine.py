"""
Simulation — the pure ``advance(previous, rng, now) -> next`` step.

Every reading and entity is advanced from the previous snapshot only, so no
update sees a value already changed within the same tick. Classifications
and alerts are then derived from the new tick's readings and entities.
"""

import random
from typing import Dict, List, Optional, Tuple

from fleetwatch.alerts.aggregator import AlertAggregator
from fleetwatch.classifier.engine import ThresholdClassifier
from fleetwatch.entities.state_machine import (
    EntityNotFoundError,
    EntityStateMachine,
    OverrideResult,
)
from fleetwatch.models.config import SimulationConfig
from fleetwatch.models.entity import Entity, TransitionRecord
from fleetwatch.models.reading import Reading
from fleetwatch.models.severity import Alert, Classification
from fleetwatch.models.snapshot import Snapshot
from fleetwatch.walk.random_walk import advance_reading, initial_reading


class Simulation:
    """Binds a static configuration to the engines that evaluate it."""

    def __init__(self, config: SimulationConfig):
        self.config = config
        self.machine = EntityStateMachine(config.entity_kinds)
        self.aggregator = AlertAggregator(config.aggregator, config.entity_kinds)
        self._reading_specs = {r.id: r for r in config.readings}
        self._classifiers = {
            s.id: ThresholdClassifier(s.classifier) for s in config.stations
        }

    def initial(self, now: float = 0.0) -> Snapshot:
        """Tick 0: readings at their initial values, entities at their seeds."""
        readings = {r.id: initial_reading(r, now) for r in self.config.readings}
        entities = {e.id: self.machine.create(e, now) for e in self.config.entities}
        classifications = self._classify(readings)
        summary = self.aggregator.summarize(readings, entities, classifications)
        standing = self.aggregator.update_standing(None, summary, now)
        return Snapshot(
            tick=0,
            time=now,
            readings=readings,
            entities=entities,
            classifications=classifications,
            summary=summary,
            standing_alert=standing,
        )

    def advance(self, previous: Snapshot, rng: random.Random, now: float) -> Snapshot:
        """Produce the next snapshot. ``previous`` is never modified."""
        readings: Dict[str, Reading] = {}
        for reading_id in sorted(previous.readings):
            reading = previous.readings[reading_id]
            spec = self._reading_specs.get(reading_id)
            if spec is None:
                readings[reading_id] = reading
                continue
            readings[reading_id] = advance_reading(reading, spec, rng, now)

        entities: Dict[str, Entity] = {}
        transitions: List[TransitionRecord] = []
        for entity_id in sorted(previous.entities):
            entity, record = self.machine.step(previous.entities[entity_id], now, rng)
            entities[entity_id] = entity
            if record is not None:
                transitions.append(record)

        classifications = self._classify(readings)
        summary = self.aggregator.summarize(readings, entities, classifications)
        standing = self.aggregator.update_standing(previous.standing_alert, summary, now)

        transient = self.aggregator.expire(previous.transient_alert, now)
        for candidate in self._transient_candidates(previous, classifications, transitions, entities, now):
            transient = self.aggregator.offer(transient, candidate, now)

        return Snapshot(
            tick=previous.tick + 1,
            time=now,
            readings=readings,
            entities=entities,
            classifications=classifications,
            summary=summary,
            standing_alert=standing,
            transient_alert=transient,
            transitions=transitions,
        )

    def override(
        self,
        current: Snapshot,
        entity_id: str,
        target_state: str,
        rng: random.Random,
    ) -> Tuple[Snapshot, OverrideResult]:
        """
        Apply a manual transition between ticks.

        A rejected override returns ``current`` unchanged. An accepted one
        returns a snapshot with the same tick number and recomputed aggregates.
        """
        entity = current.entities.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)

        result = self.machine.override(entity, target_state, current.time, rng)
        if not result.accepted:
            return current, result

        entities = dict(current.entities)
        entities[entity_id] = result.entity
        summary = self.aggregator.summarize(current.readings, entities, current.classifications)
        standing = self.aggregator.update_standing(current.standing_alert, summary, current.time)

        transient = current.transient_alert
        if result.entity.alert and result.entity.alert != entity.alert:
            transient = self.aggregator.offer(
                transient, self.aggregator.entity_alert(result.entity, current.time), current.time
            )

        updated = current.model_copy(update={
            "entities": entities,
            "summary": summary,
            "standing_alert": standing,
            "transient_alert": transient,
            "transitions": list(current.transitions) + [result.transition],
        })
        return updated, result

    def _classify(self, readings: Dict[str, Reading]) -> Dict[str, Classification]:
        classifications = {}
        for station in self.config.stations:
            values = {
                role: readings[reading_id].value
                for role, reading_id in station.readings.items()
                if reading_id in readings
            }
            classifications[station.id] = self._classifiers[station.id].classify(values)
        return classifications

    def _transient_candidates(
        self,
        previous: Snapshot,
        classifications: Dict[str, Classification],
        transitions: List[TransitionRecord],
        entities: Dict[str, Entity],
        now: float,
    ) -> List[Alert]:
        candidates = []
        for station in self.config.stations:
            alert = self.aggregator.station_alert(
                station.id,
                station.label,
                previous.classifications.get(station.id),
                classifications[station.id],
                now,
            )
            if alert:
                candidates.append(alert)

        for record in transitions:
            entity = entities[record.entity_id]
            before = previous.entities[record.entity_id]
            if entity.alert and entity.alert != before.alert:
                candidates.append(self.aggregator.entity_alert(entity, now))
        return candidates


def advance(
    previous: Snapshot,
    config: SimulationConfig,
    rng: random.Random,
    now: Optional[float] = None,
) -> Snapshot:
    """Functional form of :meth:`Simulation.advance`."""
    if now is None:
        now = previous.time + config.tick_period
    return Simulation(config).advance(previous, rng, now)
