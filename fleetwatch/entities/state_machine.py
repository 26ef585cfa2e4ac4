"""
Entity State Machine — stochastic, dwell-gated transitions per entity.

Every kind shares one shape: an idle state, an active state entered by
chance, a maintenance-needed state forced when the quality score falls
under its floor, and a maintenance state that times out back to idle.

Behavioral Contract:
- At most one transition per entity per tick
- Transitions only along the kind's declared edges
- Dwell-gated edges are not even drawn before ``min_dwell`` has elapsed
- Manual overrides are validated against the current state; a rejected
  override leaves the entity untouched
"""

import logging
import random
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel

from fleetwatch.models.entity import (
    Entity,
    EntityKindSpec,
    EntitySeed,
    TransitionEdge,
    TransitionRecord,
)

logger = logging.getLogger(__name__)


class EntityNotFoundError(Exception):
    """Raised when an override names an entity the simulation does not have."""
    pass


class OverrideResult(BaseModel):
    """Outcome of a manual override request."""
    accepted: bool
    entity: Entity
    reason: Optional[str] = None
    transition: Optional[TransitionRecord] = None


class EntityStateMachine:
    """Applies each kind's transition rules to entities."""

    def __init__(self, kinds: List[EntityKindSpec]):
        self._kinds: Dict[str, EntityKindSpec] = {k.kind: k for k in kinds}

    def kind(self, name: str) -> EntityKindSpec:
        return self._kinds[name]

    def create(self, seed: EntitySeed, now: float) -> Entity:
        """Create an entity at its seeded (or the kind's initial) state."""
        spec = self._kinds[seed.kind]
        state = seed.state or spec.initial_state
        score = spec.score.maximum if spec.score else 100.0
        if seed.score is not None:
            score = seed.score
        counters = {c.name: 0 for c in spec.counters}
        return Entity(
            id=seed.id,
            kind=seed.kind,
            state=state,
            entered_state_at=now,
            counters=counters,
            score=score,
        )

    def step(
        self, entity: Entity, now: float, rng: random.Random
    ) -> Tuple[Entity, Optional[TransitionRecord]]:
        """
        Advance one entity by one tick.

        Outgoing edges are tried in declared order; the first successful
        Bernoulli trial fires and the rest are not drawn.
        """
        spec = self._kinds[entity.kind]
        dwell = entity.dwell(now)

        for edge in spec.edges_from(entity.state):
            if not self._is_drawable(edge, dwell):
                continue
            if rng.random() < edge.probability:
                return self._transition(entity, spec, edge.target, now, rng, manual=False)

        return self._annotate(entity, spec, now), None

    def override(
        self,
        entity: Entity,
        target_state: str,
        now: float,
        rng: random.Random,
    ) -> OverrideResult:
        """
        Apply a manual transition (e.g. "start cleaning now").

        Legal only along a declared edge from the current state. A legal
        override behaves as the automatic transition: counters, score and
        dwell are updated the same way.
        """
        spec = self._kinds[entity.kind]

        if target_state not in spec.states:
            reason = f"Unknown state '{target_state}' for kind '{spec.kind}'"
        elif not spec.is_legal(entity.state, target_state):
            reason = (
                f"'{target_state}' is not applicable in current state "
                f"'{entity.state}'"
            )
        else:
            reason = None

        if reason:
            logger.warning("Override rejected for %s: %s", entity.id, reason)
            return OverrideResult(accepted=False, entity=entity, reason=reason)

        updated, record = self._transition(entity, spec, target_state, now, rng, manual=True)
        return OverrideResult(accepted=True, entity=updated, transition=record)

    def _is_drawable(self, edge: TransitionEdge, dwell: float) -> bool:
        if edge.probability <= 0:
            return False  # manual-only
        return dwell >= edge.min_dwell

    def _transition(
        self,
        entity: Entity,
        spec: EntityKindSpec,
        target: str,
        now: float,
        rng: random.Random,
        manual: bool,
    ) -> Tuple[Entity, TransitionRecord]:
        source = entity.state
        counters = dict(entity.counters)
        score = entity.score
        alert = entity.alert
        forced = False

        for rule in spec.counters:
            if rule.source == source and rule.target == target:
                if rng.random() < rule.probability:
                    counters[rule.name] = counters.get(rule.name, 0) + 1

        rule = spec.score
        if rule is not None:
            if source == rule.degrade_from and target == rule.degrade_to:
                score = max(0.0, score - rng.uniform(rule.degrade_min, rule.degrade_max))
                score = round(score, 1)
                if score < rule.floor:
                    target = rule.forced_state
                    forced = True
            if target == rule.forced_state and source != rule.forced_state:
                alert = rule.forced_alert.format(entity=entity.id, score=score)
            if target == rule.reset_state:
                score = rule.maximum
                alert = None

        updated = entity.model_copy(update={
            "state": target,
            "entered_state_at": now,
            "counters": counters,
            "score": score,
            "alert": alert,
            "warning": None,
        })
        record = TransitionRecord(
            entity_id=entity.id,
            kind=entity.kind,
            source=source,
            target=target,
            at=now,
            manual=manual,
            forced=forced,
        )
        logger.debug(
            "%s: %s -> %s%s%s",
            entity.id, source, target,
            " (manual)" if manual else "",
            " (forced)" if forced else "",
        )
        return updated, record

    def _annotate(self, entity: Entity, spec: EntityKindSpec, now: float) -> Entity:
        """Set or clear the long-dwell warning of an entity that did not move."""
        rule = spec.long_dwell
        warning = None
        if rule is not None and entity.state == rule.state:
            dwell = entity.dwell(now)
            if dwell > rule.threshold:
                warning = rule.message.format(entity=entity.id, state=entity.state, dwell=dwell)
        if warning == entity.warning:
            return entity
        return entity.model_copy(update={"warning": warning})
