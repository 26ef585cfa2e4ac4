"""
Bounded Random Walk — next value of a numeric reading.

Used by every numeric sensor: noise dB, CO2 ppm, voltage, temperature...
The result always lies within the reading's bounds; clamping is the only
guard against out-of-range values, so nothing here raises.
"""

import random

from fleetwatch.models.reading import Reading, ReadingSpec


def bounded_random_walk(
    value: float,
    amplitude: float,
    lower: float,
    upper: float,
    rng: random.Random,
    spike_probability: float = 0.0,
    spike_low: float = 0.0,
    spike_high: float = 0.0,
    precision: int = 1,
) -> float:
    """
    Return the next value of a walk started at ``value``.

    1. step uniformly within ``[-amplitude, +amplitude]``
    2. with ``spike_probability``, replace by ``uniform(spike_low, spike_high)``
    3. clamp to ``[lower, upper]``
    4. round to ``precision`` decimals, clamping again
    """
    candidate = value + rng.uniform(-amplitude, amplitude)

    # Drawn every step, even when spike_probability is 0
    if rng.random() < spike_probability:
        candidate = rng.uniform(spike_low, spike_high)

    candidate = _clamp(candidate, lower, upper)
    return _clamp(round(candidate, precision), lower, upper)


def advance_reading(
    reading: Reading, spec: ReadingSpec, rng: random.Random, now: float
) -> Reading:
    """Advance one reading by a single walk step."""
    value = bounded_random_walk(
        reading.value,
        spec.amplitude,
        spec.lower_bound,
        spec.upper_bound,
        rng,
        spike_probability=spec.spike_probability,
        spike_low=spec.spike_low,
        spike_high=spec.spike_high,
        precision=spec.precision,
    )
    return reading.model_copy(update={"value": value, "last_updated": now})


def initial_reading(spec: ReadingSpec, now: float) -> Reading:
    """Create a reading at its configured initial value (clamped, rounded)."""
    value = _clamp(round(spec.initial, spec.precision), spec.lower_bound, spec.upper_bound)
    return Reading(
        id=spec.id,
        kind=spec.kind,
        value=value,
        lower_bound=spec.lower_bound,
        upper_bound=spec.upper_bound,
        last_updated=now,
    )


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))
