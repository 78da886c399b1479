from dataclasses import dataclass


@dataclass(frozen=True)
class StationReading:
    """One polled, normalized sample for one station."""
    id: str
    name: str
    temperature_c: float | None
    relative_humidity_pct: float | None
    precipitation: float = 0.0
    road_number: int | None = None
