"""Trafikinfo road weather stations published as Hemtjänst sensors."""

from .config import Config, MqttConfig, SchemaVersion, SelectorMode, StationSelector
from .models import StationReading

__version__ = "0.1.0"

# The daemon, fetcher and transport pull in httpx and paho-mqtt;
# import them from their modules when needed

__all__ = [
    "Config",
    "MqttConfig",
    "SchemaVersion",
    "SelectorMode",
    "StationReading",
    "StationSelector",
]
