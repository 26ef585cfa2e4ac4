"""Threshold rule configuration."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from fleetwatch.models.severity import SeverityLevel


class Band(BaseModel):
    """A value range ``[lower, upper)`` mapped to a severity. ``None`` is unbounded."""
    lower: Optional[float] = None
    upper: Optional[float] = None
    level: SeverityLevel
    fragment: Optional[str] = None          # may reference {value} and {role}

    def contains(self, value: float) -> bool:
        if self.lower is not None and value < self.lower:
            return False
        if self.upper is not None and value >= self.upper:
            return False
        return True


class ReadingRule(BaseModel):
    """
    Ordered, contiguous bands for one reading role.

    Band levels must fall then rise (or only rise) along the value axis, so
    moving further away from the safe band never lowers the severity.
    """

    role: str
    bands: List[Band] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_bands(self) -> "ReadingRule":
        previous_upper = None
        for index, band in enumerate(self.bands):
            if band.lower is not None and band.upper is not None and band.lower >= band.upper:
                raise ValueError(f"rule {self.role}: empty band {band.lower}..{band.upper}")
            if index > 0:
                if band.lower is None or previous_upper is None:
                    raise ValueError(f"rule {self.role}: only outer bands may be unbounded")
                if band.lower < previous_upper:
                    raise ValueError(f"rule {self.role}: overlapping bands at {band.lower}")
                if band.lower > previous_upper:
                    raise ValueError(
                        f"rule {self.role}: gap between {previous_upper} and {band.lower}"
                    )
            previous_upper = band.upper

        ranks = [band.level.rank for band in self.bands]
        bottom = ranks.index(min(ranks))
        falling = all(a >= b for a, b in zip(ranks[:bottom], ranks[1:bottom + 1]))
        rising = all(a <= b for a, b in zip(ranks[bottom:], ranks[bottom + 1:]))
        if not (falling and rising):
            raise ValueError(
                f"rule {self.role}: severity must not decrease away from the safe band"
            )
        return self

    def covers(self, lower: float, upper: float) -> bool:
        """True when every value in ``[lower, upper]`` falls in some band."""
        first, last = self.bands[0], self.bands[-1]
        if first.lower is not None and first.lower > lower:
            return False
        if last.upper is not None and last.upper <= upper:
            return False
        return True

    @classmethod
    def from_breakpoints(
        cls,
        role: str,
        breakpoints: List[float],
        levels: List[SeverityLevel],
        fragments: Optional[List[Optional[str]]] = None,
    ) -> "ReadingRule":
        """
        Build a rising rule from ascending breakpoints.

        ``levels`` has one more entry than ``breakpoints``:
        ``from_breakpoints("co2", [800, 1200, 1800], [GOOD, MODERATE, HIGH, CRITICAL])``
        gives ``<800 good, 800-1199.x moderate, 1200-1799.x high, >=1800 critical``.
        """
        if len(levels) != len(breakpoints) + 1:
            raise ValueError("levels must have exactly one more entry than breakpoints")
        if fragments is None:
            fragments = [None] * len(levels)
        if len(fragments) != len(levels):
            raise ValueError("fragments must match levels")

        edges = [None] + list(breakpoints) + [None]
        bands = [
            Band(lower=edges[i], upper=edges[i + 1], level=levels[i], fragment=fragments[i])
            for i in range(len(levels))
        ]
        return cls(role=role, bands=bands)


class Condition(BaseModel):
    """``value > above`` and/or ``value < below`` for one role."""
    role: str
    above: Optional[float] = None
    below: Optional[float] = None

    @model_validator(mode="after")
    def _check_bound(self) -> "Condition":
        if self.above is None and self.below is None:
            raise ValueError(f"condition on {self.role} needs 'above' or 'below'")
        return self

    def holds(self, value: float) -> bool:
        if self.above is not None and not value > self.above:
            return False
        if self.below is not None and not value < self.below:
            return False
        return True


class CompoundRule(BaseModel):
    """Fires only when every condition holds at once (e.g. humid AND low pressure)."""
    name: str
    conditions: List[Condition] = Field(min_length=2)
    level: SeverityLevel
    fragment: str


class ClassifierConfig(BaseModel):
    """Rules for one station: single-reading rules first, then compound rules."""

    rules: List[ReadingRule] = []
    compound_rules: List[CompoundRule] = []
    normal_message: str = "All readings normal"
    labels: Dict[SeverityLevel, str] = {}

    def roles(self) -> List[str]:
        names = [rule.role for rule in self.rules]
        for compound in self.compound_rules:
            names.extend(c.role for c in compound.conditions)
        return sorted(set(names))

    def label_for(self, level: SeverityLevel) -> str:
        return self.labels.get(level, level.value.capitalize())


class StationSpec(BaseModel):
    """A group of readings classified together (a room, a river gauge, a grid line)."""
    id: str
    label: str = ""
    readings: Dict[str, str]                # role -> reading id
    classifier: ClassifierConfig

    @model_validator(mode="after")
    def _check_roles(self) -> "StationSpec":
        missing = [r for r in self.classifier.roles() if r not in self.readings]
        if missing:
            raise ValueError(f"station {self.id}: rules reference unbound roles {missing}")
        return self
