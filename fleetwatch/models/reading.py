"""Numeric sensor readings and their random-walk parameters."""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ReadingSpec(BaseModel):
    """Static description of one numeric reading (noise dB, CO2 ppm, volts...)."""

    id: str
    kind: str                               # e.g. "noise_db", "co2_ppm"
    initial: float
    lower_bound: float
    upper_bound: float
    amplitude: float = Field(ge=0)
    spike_probability: float = Field(ge=0, le=1, default=0.0)
    spike_low: float = 0.0
    spike_high: float = 0.0
    precision: int = Field(ge=0, le=6, default=1)   # decimal places kept each tick

    @model_validator(mode="after")
    def _check_ranges(self) -> "ReadingSpec":
        if self.lower_bound > self.upper_bound:
            raise ValueError(
                f"reading {self.id}: lower_bound {self.lower_bound} "
                f"exceeds upper_bound {self.upper_bound}"
            )
        if self.spike_probability > 0 and self.spike_low > self.spike_high:
            raise ValueError(
                f"reading {self.id}: spike_low {self.spike_low} "
                f"exceeds spike_high {self.spike_high}"
            )
        return self


class Reading(BaseModel):
    """Current value of a reading. Always within its bounds."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: str
    value: float
    lower_bound: float
    upper_bound: float
    last_updated: float
