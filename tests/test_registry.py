from __future__ import annotations

from trafikvader.config import StationSelector
from trafikvader.models import StationReading
from trafikvader.registry import build_registry, missing_stations


def _reading(station_id: str, name: str, road: int | None = None) -> StationReading:
    return StationReading(
        id=station_id,
        name=name,
        temperature_c=1.0,
        relative_humidity_pct=50.0,
        precipitation=0.0,
        road_number=road,
    )


def test_id_selector_creates_one_weather_station_per_id(transport) -> None:
    selector = StationSelector.from_ids(["1", "2", "3"])
    readings = [_reading("1", "Alpha", 13), _reading("2", "Beta"), _reading("1", "Renamed")]

    registry = build_registry(readings, selector, transport)

    assert list(registry) == ["1", "2"]
    (device,) = registry["1"].devices
    assert device.info.type == "weatherStation"
    assert device.info.name == "Alpha (väg 13)"
    assert missing_stations(selector, registry) == ["3"]


def test_single_id_creates_sensor_set(transport) -> None:
    selector = StationSelector.from_ids(["1"])

    registry = build_registry([_reading("1", "Österlen")], selector, transport)

    handle = registry["1"]
    assert [device.info.topic for device in handle.devices] == [
        "sensor/temperature/oesterlen",
        "sensor/humidity/oesterlen",
        "sensor/precipitation/oesterlen",
    ]
    assert handle.feature("currentRelativeHumidity").device is handle.devices[1]
    assert missing_stations(selector, registry) == []


def test_name_selector_reports_unmatched_names(transport) -> None:
    selector = StationSelector.from_names(["Åre", "Nowhere", "Elsewhere"])

    registry = build_registry([_reading("7", "Åre")], selector, transport)

    assert set(registry) == {"7"}
    assert registry["7"].devices[0].info.topic == "sensor/temperature/aore"
    assert missing_stations(selector, registry) == ["Nowhere", "Elsewhere"]


def test_empty_fetch_builds_empty_registry(transport) -> None:
    selector = StationSelector.from_ids(["1"])

    registry = build_registry([], selector, transport)

    assert registry == {}
    assert missing_stations(selector, registry) == ["1"]
