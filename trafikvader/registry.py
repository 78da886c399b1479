"""Station registry: maps station ids to the devices publishing them."""

from dataclasses import dataclass
from typing import Iterable

from .config import SelectorMode, StationSelector
from .devices import (
    Device,
    Feature,
    Transport,
    humidity_sensor,
    precipitation_sensor,
    temperature_sensor,
    weather_station,
)
from .models import StationReading


@dataclass
class StationHandle:
    """The device(s) created for one station."""
    station_id: str
    name: str
    devices: tuple[Device, ...]

    def feature(self, name: str) -> Feature | None:
        for device in self.devices:
            feature = device.feature(name)
            if feature is not None:
                return feature
        return None


def _create_handle(
    reading: StationReading, mode: SelectorMode, transport: Transport
) -> StationHandle:
    if mode is SelectorMode.BY_ID:
        devices = (
            weather_station(reading.id, reading.name, reading.road_number, transport),
        )
    else:
        devices = (
            temperature_sensor(reading.name, transport),
            humidity_sensor(reading.name, transport),
            precipitation_sensor(reading.name, transport),
        )
    return StationHandle(station_id=reading.id, name=reading.name, devices=devices)


def build_registry(
    readings: Iterable[StationReading],
    selector: StationSelector,
    transport: Transport,
) -> dict[str, StationHandle]:
    """Create one handle per distinct station id; the first reading wins."""
    registry: dict[str, StationHandle] = {}
    for reading in readings:
        if reading.id in registry:
            continue
        registry[reading.id] = _create_handle(reading, selector.mode, transport)
    return registry


def missing_stations(
    selector: StationSelector, registry: dict[str, StationHandle]
) -> list[str]:
    """Selector values that matched no registered station, in selector order."""
    if selector.mode is SelectorMode.BY_NAME:
        found = {handle.name for handle in registry.values()}
    else:
        found = set(registry)
    return [value for value in selector.values if value not in found]
