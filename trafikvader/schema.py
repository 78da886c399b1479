"""Adapters for the upstream response schemas.

Each adapter knows which object type to query, which fields to include and
how to turn one upstream record into a ``RawRecord``. The fetcher applies
the filtering and defaulting policy on top of that.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .config import SchemaVersion
from .errors import DecodeError, ResultCountError


@dataclass(frozen=True)
class RawRecord:
    """An upstream record with optional fields left as ``None``."""
    id: str
    name: str
    sample_time: datetime | None
    temperature_c: float | None
    relative_humidity_pct: float | None
    precipitation: float | None
    road_number: int | None = None
    active: bool = True


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO 8601 timestamp into an aware UTC datetime."""
    if not isinstance(value, str):
        return None
    candidate = value.strip()
    if not candidate:
        return None

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def _path(record: dict, *keys: str) -> Any:
    value: Any = record
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def _number(value: Any) -> float | None:
    # bool is an int subclass but never a measurement
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        value = float(value)
    except OverflowError:
        return None
    # the JSON decoder accepts NaN and turns 1e400 into inf
    return value if math.isfinite(value) else None


def _integer(value: Any) -> int | None:
    number = _number(value)
    return int(number) if number is not None else None


def _identity(record: dict) -> tuple[str, str]:
    station_id = record.get("Id")
    if station_id is None or station_id == "":
        raise DecodeError("failed to decode response: record without Id")
    station_id = str(station_id)
    name = record.get("Name")
    return station_id, str(name) if name else station_id


class WeatherStationV1:
    """WeatherStation 1.0, measurements nested under ``Measurement``."""

    object_type = "WeatherStation"
    version = "1.0"
    result_key = "WeatherStation"
    include = ("Active", "Id", "Name", "Measurement", "RoadNumberNumeric")

    def decode(self, record: dict) -> RawRecord:
        station_id, name = _identity(record)
        active = record.get("Active")
        return RawRecord(
            id=station_id,
            name=name,
            sample_time=parse_timestamp(_path(record, "Measurement", "MeasureTime")),
            temperature_c=_number(_path(record, "Measurement", "Air", "Temp")),
            relative_humidity_pct=_number(
                _path(record, "Measurement", "Air", "RelativeHumidity")
            ),
            precipitation=_number(
                _path(record, "Measurement", "Precipitation", "Amount")
            ),
            road_number=_integer(record.get("RoadNumberNumeric")),
            active=active is not False,
        )


class WeatherMeasurepointV2:
    """WeatherMeasurepoint 2.0, values nested under ``Observation``."""

    object_type = "WeatherMeasurepoint"
    version = "2.0"
    result_key = "WeatherMeasurepoint"
    include = ("Id", "Name", "Observation")

    def decode(self, record: dict) -> RawRecord:
        station_id, name = _identity(record)
        observation = record.get("Observation")
        return RawRecord(
            id=station_id,
            name=name,
            sample_time=parse_timestamp(_path(observation, "Sample")),
            temperature_c=_number(_path(observation, "Air", "Temperature", "Value")),
            relative_humidity_pct=_number(
                _path(observation, "Air", "RelativeHumidity", "Value")
            ),
            precipitation=_number(
                _path(
                    observation,
                    "Aggregated10minutes",
                    "Precipitation",
                    "TotalWaterEquivalent",
                    "Value",
                )
            ),
        )


SchemaAdapter = WeatherStationV1 | WeatherMeasurepointV2

_ADAPTERS = {
    SchemaVersion.WEATHER_STATION_1: WeatherStationV1,
    SchemaVersion.WEATHER_MEASUREPOINT_2: WeatherMeasurepointV2,
}


def adapter_for(version: SchemaVersion) -> SchemaAdapter:
    return _ADAPTERS[version]()


def result_records(payload: Any, adapter: SchemaAdapter) -> list[dict]:
    """Return the records of the single result set in ``payload``."""
    response = payload.get("RESPONSE") if isinstance(payload, dict) else None
    if not isinstance(response, dict):
        raise DecodeError("failed to decode response: missing RESPONSE")

    results = response.get("RESULT")
    if results is None:
        results = []
    if not isinstance(results, list):
        raise DecodeError("failed to decode response: RESULT is not a list")
    if len(results) != 1:
        raise ResultCountError(len(results))

    result = results[0]
    if not isinstance(result, dict):
        raise DecodeError("failed to decode response: malformed result")
    records = result.get(adapter.result_key) or []
    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        raise DecodeError(
            f"failed to decode response: malformed {adapter.result_key} list"
        )
    return records
