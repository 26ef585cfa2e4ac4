"""Entity kinds, their state machines, and entity state."""

from typing import Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TransitionEdge(BaseModel):
    """
    One allowed edge of an entity kind's state machine.

    Edges are tried in declaration order. ``probability=0`` declares a
    manual-only edge: legal for overrides and forced redirects, never drawn.
    """
    source: str
    target: str
    probability: float = Field(ge=0, le=1, default=0.0)
    min_dwell: float = Field(ge=0, default=0.0)


class CounterRule(BaseModel):
    """Increment ``name`` when the ``source -> target`` edge fires, with ``probability``."""
    name: str
    source: str
    target: str
    probability: float = Field(ge=0, le=1, default=1.0)


class ScoreRule(BaseModel):
    """
    Degrading quality score (e.g. cleanliness).

    Each ``degrade_from -> degrade_to`` transition lowers the score by a random
    amount; below ``floor`` the transition is redirected to ``forced_state``.
    Entering ``reset_state`` restores ``maximum``.
    """
    name: str = "cleanliness"
    maximum: float = Field(gt=0, default=100.0)
    floor: float = Field(ge=0, default=40.0)
    degrade_min: float = Field(ge=0, default=2.0)
    degrade_max: float = Field(ge=0, default=10.0)
    degrade_from: str
    degrade_to: str
    forced_state: str
    reset_state: str
    forced_alert: str = "{entity} needs maintenance"

    @model_validator(mode="after")
    def _check_ranges(self) -> "ScoreRule":
        if self.degrade_min > self.degrade_max:
            raise ValueError("degrade_min exceeds degrade_max")
        if self.floor > self.maximum:
            raise ValueError("floor exceeds maximum")
        return self


class LongDwellRule(BaseModel):
    """Side-channel warning raised while an entity sits in ``state`` too long."""
    state: str
    threshold: float = Field(gt=0)
    message: str = "{entity} has been {state} for {dwell:.0f}s"


class EntityKindSpec(BaseModel):
    """Closed state set and transition rules shared by all entities of a kind."""

    kind: str
    states: List[str]
    initial_state: str
    idle_state: str
    active_state: str
    attention_states: List[str] = []        # states counted by the aggregator
    edges: List[TransitionEdge]
    counters: List[CounterRule] = []
    score: Optional[ScoreRule] = None
    long_dwell: Optional[LongDwellRule] = None

    @model_validator(mode="after")
    def _check_references(self) -> "EntityKindSpec":
        known = set(self.states)
        if len(known) != len(self.states):
            raise ValueError(f"kind {self.kind}: duplicate states")

        named = [self.initial_state, self.idle_state, self.active_state]
        named.extend(self.attention_states)
        for edge in self.edges:
            named.extend([edge.source, edge.target])
        for counter in self.counters:
            named.extend([counter.source, counter.target])
        if self.score:
            named.extend([
                self.score.degrade_from,
                self.score.degrade_to,
                self.score.forced_state,
                self.score.reset_state,
            ])
        if self.long_dwell:
            named.append(self.long_dwell.state)
        unknown = sorted({s for s in named if s not in known})
        if unknown:
            raise ValueError(f"kind {self.kind}: unknown states {unknown}")

        declared = self.edge_set()
        for counter in self.counters:
            if (counter.source, counter.target) not in declared:
                raise ValueError(
                    f"kind {self.kind}: counter {counter.name} is on an "
                    f"undeclared edge {counter.source} -> {counter.target}"
                )
        if self.score:
            required = [
                (self.score.degrade_from, self.score.degrade_to),
                # Forced redirect replaces the degrading edge's target
                (self.score.degrade_from, self.score.forced_state),
            ]
            for edge in required:
                if edge not in declared:
                    raise ValueError(
                        f"kind {self.kind}: score rule needs edge "
                        f"{edge[0]} -> {edge[1]}"
                    )
        return self

    def edge_set(self) -> Set[Tuple[str, str]]:
        return {(e.source, e.target) for e in self.edges}

    def edges_from(self, state: str) -> List[TransitionEdge]:
        """Outgoing edges of ``state`` in priority order."""
        return [e for e in self.edges if e.source == state]

    def is_legal(self, source: str, target: str) -> bool:
        return (source, target) in self.edge_set()


class Entity(BaseModel):
    """A monitored entity. Frozen: every tick produces a new copy."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: str
    state: str
    entered_state_at: float
    counters: Dict[str, int] = {}
    score: float = 100.0
    alert: Optional[str] = None             # standing per-entity alert
    warning: Optional[str] = None           # long-dwell annotation

    def dwell(self, now: float) -> float:
        return now - self.entered_state_at


class EntitySeed(BaseModel):
    """Initial placement of one entity in a simulation."""
    id: str
    kind: str
    state: Optional[str] = None             # defaults to the kind's initial state
    score: Optional[float] = None


class TransitionRecord(BaseModel):
    """A state change observed on a tick."""

    model_config = ConfigDict(frozen=True)

    entity_id: str
    kind: str
    source: str
    target: str
    at: float
    manual: bool = False
    forced: bool = False                    # redirected by the score floor
