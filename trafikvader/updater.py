"""Pushes readings to the registered station devices."""

import logging
from typing import Iterable

from .errors import PublishError
from .models import StationReading
from .registry import StationHandle


logger = logging.getLogger(__name__)

TEMPERATURE = "currentTemperature"
HUMIDITY = "currentRelativeHumidity"
PRECIPITATION = "precipitation"


def format_value(value: float) -> str:
    return f"{value:.1f}"


def _publish(handle: StationHandle, feature_name: str, value: float) -> None:
    feature = handle.feature(feature_name)
    if feature is None:
        return
    try:
        feature.update(format_value(value))
    except PublishError as e:
        logger.error(
            "MQTT: failed to publish %s: %s",
            feature_name,
            e,
            extra={"station_id": handle.station_id, "feature": feature_name},
        )


def apply(readings: Iterable[StationReading], registry: dict[str, StationHandle]) -> None:
    """Publish every present value; unknown stations are skipped."""
    for reading in readings:
        handle = registry.get(reading.id)
        if handle is None:
            continue

        if reading.temperature_c is not None:
            _publish(handle, TEMPERATURE, reading.temperature_c)
        if reading.relative_humidity_pct is not None:
            _publish(handle, HUMIDITY, reading.relative_humidity_pct)
        _publish(handle, PRECIPITATION, reading.precipitation)
