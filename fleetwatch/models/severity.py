"""Severity levels, classifications and alerts."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class SeverityLevel(str, Enum):
    """Linearly ordered severity. ``CRITICAL`` is the worst element."""

    GOOD = "good"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @classmethod
    def lowest(cls) -> "SeverityLevel":
        return cls.GOOD

    @classmethod
    def worst(cls) -> "SeverityLevel":
        return cls.CRITICAL

    # str already defines the rich comparisons, so all four are overridden
    def __lt__(self, other):
        if not isinstance(other, SeverityLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, SeverityLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, SeverityLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, SeverityLevel):
            return NotImplemented
        return self.rank >= other.rank


_RANKS = {level: index for index, level in enumerate(SeverityLevel)}


class AlertScope(str, Enum):
    STANDING = "standing"
    TRANSIENT = "transient"


class Alert(BaseModel):
    """
    An operator-facing alert.

    Standing alerts carry ``ttl=None`` and live until their condition clears.
    Transient alerts expire at ``created_at + ttl`` whatever the condition.
    """

    model_config = ConfigDict(frozen=True)

    message: str
    severity: SeverityLevel
    created_at: float
    ttl: Optional[float] = None
    scope: AlertScope = AlertScope.TRANSIENT
    source: Optional[str] = None            # station or entity id

    def expires_at(self) -> Optional[float]:
        if self.ttl is None:
            return None
        return self.created_at + self.ttl

    def is_live(self, now: float) -> bool:
        expiry = self.expires_at()
        return expiry is None or now < expiry


class Classification(BaseModel):
    """Output of the threshold classifier for one station."""

    model_config = ConfigDict(frozen=True)

    level: SeverityLevel
    label: str
    message: str
    fragments: List[str] = []               # fragments at ``level`` only
    reading_levels: Dict[str, SeverityLevel] = {}
    compound_rules_fired: List[str] = []
