"""
Ready-made configurations for the dashboards FleetWatch drives.

Each builder returns a fresh ``SimulationConfig``; callers may tweak it with
``model_copy(update=...)`` before handing it to a scheduler.
"""

from typing import Callable, Dict, List, Optional

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
    EntityKindSpec,
    EntitySeed,
    LongDwellRule,
    ScoreRule,
    TransitionEdge,
)
from fleetwatch.models.reading import ReadingSpec
from fleetwatch.models.severity import SeverityLevel

GOOD = SeverityLevel.GOOD
MODERATE = SeverityLevel.MODERATE
HIGH = SeverityLevel.HIGH
CRITICAL = SeverityLevel.CRITICAL


# --- Entity kinds ---

def restroom_stall_kind() -> EntityKindSpec:
    """vacant → occupied → vacant, degrading cleanliness, cleaning crew."""
    return EntityKindSpec(
        kind="restroom_stall",
        states=["vacant", "occupied", "needs_cleaning", "cleaning_in_progress"],
        initial_state="vacant",
        idle_state="vacant",
        active_state="occupied",
        attention_states=["needs_cleaning"],
        edges=[
            TransitionEdge(source="vacant", target="occupied", probability=0.3),
            TransitionEdge(source="vacant", target="cleaning_in_progress"),
            TransitionEdge(source="occupied", target="vacant", probability=0.4, min_dwell=15),
            TransitionEdge(source="occupied", target="needs_cleaning"),
            TransitionEdge(source="needs_cleaning", target="cleaning_in_progress", probability=0.2),
            TransitionEdge(
                source="cleaning_in_progress", target="vacant", probability=1.0, min_dwell=10
            ),
        ],
        counters=[
            CounterRule(name="uses", source="vacant", target="occupied"),
            CounterRule(name="flushed", source="occupied", target="vacant", probability=0.9),
            CounterRule(name="handwashed", source="occupied", target="vacant", probability=0.7),
        ],
        score=ScoreRule(
            name="cleanliness",
            maximum=100.0,
            floor=40.0,
            degrade_min=2.0,
            degrade_max=10.0,
            degrade_from="occupied",
            degrade_to="vacant",
            forced_state="needs_cleaning",
            reset_state="cleaning_in_progress",
            forced_alert="{entity} needs cleaning",
        ),
        long_dwell=LongDwellRule(
            state="occupied",
            threshold=120,
            message="{entity}: prolonged occupancy ({dwell:.0f}s)",
        ),
    )


def parking_slot_kind() -> EntityKindSpec:
    return EntityKindSpec(
        kind="parking_slot",
        states=["vacant", "occupied", "reserved"],
        initial_state="vacant",
        idle_state="vacant",
        active_state="occupied",
        attention_states=["occupied", "reserved"],
        edges=[
            TransitionEdge(source="vacant", target="occupied", probability=0.25),
            TransitionEdge(source="vacant", target="reserved", probability=0.02),
            TransitionEdge(source="occupied", target="vacant", probability=0.15, min_dwell=30),
            TransitionEdge(source="reserved", target="occupied", probability=0.3),
            TransitionEdge(source="reserved", target="vacant", probability=0.05, min_dwell=60),
        ],
        counters=[
            CounterRule(name="arrivals", source="vacant", target="occupied"),
            CounterRule(name="arrivals", source="reserved", target="occupied"),
        ],
        long_dwell=LongDwellRule(
            state="occupied",
            threshold=600,
            message="{entity}: overstay ({dwell:.0f}s)",
        ),
    )


def hospital_bed_kind() -> EntityKindSpec:
    return EntityKindSpec(
        kind="hospital_bed",
        states=["empty", "occupied", "cleaning"],
        initial_state="empty",
        idle_state="empty",
        active_state="occupied",
        attention_states=["occupied"],
        edges=[
            TransitionEdge(source="empty", target="occupied", probability=0.1),
            TransitionEdge(source="empty", target="cleaning"),
            TransitionEdge(source="occupied", target="cleaning", probability=0.05, min_dwell=60),
            TransitionEdge(source="cleaning", target="empty", probability=0.5, min_dwell=10),
        ],
        counters=[CounterRule(name="admissions", source="empty", target="occupied")],
    )


# --- Classifier rules ---

def noise_rule(role: str = "noise") -> ReadingRule:
    return ReadingRule.from_breakpoints(
        role,
        [50, 70, 85],
        [GOOD, MODERATE, HIGH, CRITICAL],
        [None, "Moderate noise ({value:.0f} dB)", "Loud ({value:.0f} dB)",
         "Extreme noise ({value:.0f} dB)"],
    )


def co2_rule(role: str = "co2") -> ReadingRule:
    return ReadingRule.from_breakpoints(
        role,
        [800, 1200, 1800],
        [GOOD, MODERATE, HIGH, CRITICAL],
        [None, "CO2 elevated ({value:.0f} ppm)", "CO2 high, ventilate ({value:.0f} ppm)",
         "CO2 critical ({value:.0f} ppm)"],
    )


def voltage_rule(role: str = "voltage", nominal: float = 230.0) -> ReadingRule:
    """Two-sided band: both sag and swell are unsafe."""
    return ReadingRule(
        role=role,
        bands=[
            Band(upper=nominal * 0.85, level=CRITICAL, fragment="Severe undervoltage ({value} V)"),
            Band(lower=nominal * 0.85, upper=nominal * 0.94, level=HIGH,
                 fragment="Undervoltage ({value} V)"),
            Band(lower=nominal * 0.94, upper=nominal * 1.06, level=GOOD),
            Band(lower=nominal * 1.06, upper=nominal * 1.1, level=HIGH,
                 fragment="Overvoltage ({value} V)"),
            Band(lower=nominal * 1.1, level=CRITICAL, fragment="Severe overvoltage ({value} V)"),
        ],
    )


# --- Dashboards ---

def restroom_dashboard(stalls: int = 8, seed: Optional[int] = None) -> SimulationConfig:
    return SimulationConfig(
        name="restroom",
        tick_period=3.0,
        seed=seed,
        entity_kinds=[restroom_stall_kind()],
        entities=[
            EntitySeed(id=f"stall_{i + 1}", kind="restroom_stall") for i in range(stalls)
        ],
        aggregator=AggregatorConfig(
            raise_fraction=0.3,
            standing_message="{percent:.0f}% of stalls need cleaning",
        ),
    )


def parking_dashboard(slots: int = 20, seed: Optional[int] = None) -> SimulationConfig:
    return SimulationConfig(
        name="parking",
        tick_period=2.0,
        seed=seed,
        entity_kinds=[parking_slot_kind()],
        entities=[EntitySeed(id=f"slot_{i + 1}", kind="parking_slot") for i in range(slots)],
        aggregator=AggregatorConfig(
            raise_fraction=0.9,
            clear_fraction=0.8,
            standing_severity=MODERATE,
            standing_message="Lot nearly full: {count}/{total} slots taken",
        ),
    )


def hospital_dashboard(beds: int = 12, seed: Optional[int] = None) -> SimulationConfig:
    return SimulationConfig(
        name="hospital",
        tick_period=5.0,
        seed=seed,
        entity_kinds=[hospital_bed_kind()],
        entities=[EntitySeed(id=f"bed_{i + 1}", kind="hospital_bed") for i in range(beds)],
        aggregator=AggregatorConfig(
            raise_fraction=0.85,
            standing_severity=CRITICAL,
            standing_message="Bed occupancy at {percent:.0f}%",
        ),
    )


def classroom_dashboard(rooms: int = 4, seed: Optional[int] = None) -> SimulationConfig:
    readings: List[ReadingSpec] = []
    stations: List[StationSpec] = []
    for i in range(rooms):
        room = f"room_{i + 1}"
        readings.append(ReadingSpec(
            id=f"{room}_noise", kind="noise_db", initial=45, lower_bound=30,
            upper_bound=120, amplitude=5, spike_probability=0.05,
            spike_low=85, spike_high=110, precision=0,
        ))
        readings.append(ReadingSpec(
            id=f"{room}_co2", kind="co2_ppm", initial=700, lower_bound=400,
            upper_bound=3000, amplitude=60, spike_probability=0.02,
            spike_low=1500, spike_high=2200, precision=0,
        ))
        stations.append(StationSpec(
            id=room,
            label=f"Room {i + 1}",
            readings={"noise": f"{room}_noise", "co2": f"{room}_co2"},
            classifier=ClassifierConfig(
                rules=[noise_rule(), co2_rule()],
                normal_message="Comfortable",
                labels={GOOD: "Good", MODERATE: "Moderate", HIGH: "Poor", CRITICAL: "Hazardous"},
            ),
        ))
    return SimulationConfig(
        name="classroom",
        tick_period=2.0,
        seed=seed,
        readings=readings,
        stations=stations,
        aggregator=AggregatorConfig(transient_ttl=10.0),
    )


def flood_dashboard(gauges: int = 3, seed: Optional[int] = None) -> SimulationConfig:
    readings: List[ReadingSpec] = []
    stations: List[StationSpec] = []
    for i in range(gauges):
        gauge = f"gauge_{i + 1}"
        readings.extend([
            ReadingSpec(id=f"{gauge}_humidity", kind="humidity_pct", initial=60,
                        lower_bound=0, upper_bound=100, amplitude=3, precision=1),
            ReadingSpec(id=f"{gauge}_pressure", kind="pressure_hpa", initial=1012,
                        lower_bound=950, upper_bound=1050, amplitude=2, precision=1),
            ReadingSpec(id=f"{gauge}_rainfall", kind="rainfall_mm", initial=2,
                        lower_bound=0, upper_bound=150, amplitude=3,
                        spike_probability=0.03, spike_low=40, spike_high=120, precision=1),
        ])
        stations.append(StationSpec(
            id=gauge,
            label=f"Gauge {i + 1}",
            readings={
                "humidity": f"{gauge}_humidity",
                "pressure": f"{gauge}_pressure",
                "rainfall": f"{gauge}_rainfall",
            },
            classifier=ClassifierConfig(
                rules=[
                    ReadingRule.from_breakpoints(
                        "humidity", [80, 90], [GOOD, MODERATE, HIGH],
                        [None, "Humid ({value}%)", "Very humid ({value}%)"],
                    ),
                    ReadingRule(role="pressure", bands=[
                        Band(upper=990, level=HIGH, fragment="Low pressure ({value} hPa)"),
                        Band(lower=990, upper=1000, level=MODERATE,
                             fragment="Falling pressure ({value} hPa)"),
                        Band(lower=1000, level=GOOD),
                    ]),
                    ReadingRule.from_breakpoints(
                        "rainfall", [10, 30, 60], [GOOD, MODERATE, HIGH, CRITICAL],
                        [None, "Rain ({value} mm)", "Heavy rain ({value} mm)",
                         "Torrential rain ({value} mm)"],
                    ),
                ],
                compound_rules=[
                    CompoundRule(
                        name="flood_risk",
                        conditions=[
                            Condition(role="humidity", above=85),
                            Condition(role="pressure", below=1000),
                        ],
                        level=CRITICAL,
                        fragment="Flood risk: high humidity with low pressure",
                    ),
                ],
                normal_message="Stable",
                labels={GOOD: "Stable", MODERATE: "Watch", HIGH: "Warning", CRITICAL: "Danger"},
            ),
        ))
    return SimulationConfig(
        name="flood",
        tick_period=5.0,
        seed=seed,
        readings=readings,
        stations=stations,
        aggregator=AggregatorConfig(transient_ttl=30.0, transient_min_level=HIGH),
    )


def grid_dashboard(lines: int = 5, seed: Optional[int] = None) -> SimulationConfig:
    readings: List[ReadingSpec] = []
    stations: List[StationSpec] = []
    for i in range(lines):
        line = f"line_{i + 1}"
        readings.extend([
            ReadingSpec(id=f"{line}_voltage", kind="voltage_v", initial=230,
                        lower_bound=180, upper_bound=270, amplitude=3,
                        spike_probability=0.02, spike_low=185, spike_high=265, precision=1),
            ReadingSpec(id=f"{line}_load", kind="load_pct", initial=55,
                        lower_bound=0, upper_bound=120, amplitude=4,
                        spike_probability=0.03, spike_low=90, spike_high=115, precision=1),
            ReadingSpec(id=f"{line}_temperature", kind="temperature_c", initial=45,
                        lower_bound=-10, upper_bound=120, amplitude=1.5, precision=2),
        ])
        stations.append(StationSpec(
            id=line,
            label=f"Line {i + 1}",
            readings={
                "voltage": f"{line}_voltage",
                "load": f"{line}_load",
                "temperature": f"{line}_temperature",
            },
            classifier=ClassifierConfig(
                rules=[
                    voltage_rule(),
                    ReadingRule.from_breakpoints(
                        "load", [70, 90, 100], [GOOD, MODERATE, HIGH, CRITICAL],
                        [None, "Load elevated ({value}%)", "Load high ({value}%)",
                         "Overloaded ({value}%)"],
                    ),
                    ReadingRule.from_breakpoints(
                        "temperature", [70, 90], [GOOD, MODERATE, HIGH],
                        [None, "Line warm ({value} °C)", "Line hot ({value} °C)"],
                    ),
                ],
                compound_rules=[
                    CompoundRule(
                        name="thermal_overload",
                        conditions=[
                            Condition(role="load", above=85),
                            Condition(role="temperature", above=80),
                        ],
                        level=CRITICAL,
                        fragment="Thermal overload: high load on a hot line",
                    ),
                ],
                normal_message="Stable",
                labels={GOOD: "Stable", MODERATE: "Elevated", HIGH: "Stressed", CRITICAL: "Critical"},
            ),
        ))
    return SimulationConfig(
        name="grid",
        tick_period=2.0,
        seed=seed,
        readings=readings,
        stations=stations,
        aggregator=AggregatorConfig(transient_ttl=10.0),
    )


DASHBOARDS: Dict[str, Callable[..., SimulationConfig]] = {
    "restroom": restroom_dashboard,
    "parking": parking_dashboard,
    "hospital": hospital_dashboard,
    "classroom": classroom_dashboard,
    "flood": flood_dashboard,
    "grid": grid_dashboard,
}


def get_dashboard(name: str, **kwargs) -> SimulationConfig:
    """Build a preset by name; raises KeyError for an unknown dashboard."""
    return DASHBOARDS[name](**kwargs)
