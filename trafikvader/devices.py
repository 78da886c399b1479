"""Hemtjänst device model on top of the MQTT transport.

A device announces its metadata as retained JSON on ``announce/<topic>`` and
again whenever anything is published on ``discover``. Feature values are
published retained on ``<topic>/<feature>/get``.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Protocol

from .errors import PublishError


logger = logging.getLogger(__name__)

ANNOUNCE_PREFIX = "announce"
DISCOVER_TOPIC = "discover"
MANUFACTURER = "trafikväder"

_TRANSLITERATIONS = (("å", "ao"), ("ä", "ae"), ("ö", "oe"))


class Transport(Protocol):
    def publish(self, topic: str, payload: str, retain: bool = True) -> None: ...

    def subscribe(self, topic: str, callback) -> None: ...

    def on_connect(self, hook) -> None: ...

    def is_connected(self) -> bool: ...


def topic_name(name: str) -> str:
    """Turn a station name into a topic segment, e.g. Österlen -> oesterlen."""
    result = name.lower()
    for char, replacement in _TRANSLITERATIONS:
        result = result.replace(char, replacement)
    return result


@dataclass
class FeatureInfo:
    min: float | None = None
    max: float | None = None
    step: float | None = None

    def to_dict(self) -> dict:
        return {
            key: value
            for key, value in (("min", self.min), ("max", self.max), ("step", self.step))
            if value is not None
        }


@dataclass
class DeviceInfo:
    topic: str
    name: str
    type: str
    manufacturer: str = MANUFACTURER
    features: dict[str, FeatureInfo] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "topic": self.topic,
            "name": self.name,
            "type": self.type,
            "manufacturer": self.manufacturer,
            "feature": {name: info.to_dict() for name, info in self.features.items()},
        }


class Feature:
    """A single published quantity of a device."""

    def __init__(self, name: str, device: "Device"):
        self.name = name
        self.device = device
        self.get_topic = f"{device.info.topic}/{name}/get"

    def update(self, value: str) -> None:
        """Publish ``value`` as the current value; raises PublishError."""
        self.device.transport.publish(self.get_topic, value, retain=True)


class Device:

    def __init__(self, info: DeviceInfo, transport: Transport):
        self.info = info
        self.transport = transport
        self.features = {name: Feature(name, self) for name in info.features}

    @property
    def announce_topic(self) -> str:
        return f"{ANNOUNCE_PREFIX}/{self.info.topic}"

    def feature(self, name: str) -> Feature | None:
        return self.features.get(name)

    def announce(self) -> None:
        payload = json.dumps(self.info.to_dict(), ensure_ascii=False)
        try:
            self.transport.publish(self.announce_topic, payload, retain=True)
        except PublishError as e:
            logger.warning("MQTT: failed to announce %s: %s", self.info.topic, e)


def new_device(info: DeviceInfo, transport: Transport) -> Device:
    """Create a device and keep it announced across reconnects."""
    device = Device(info, transport)
    transport.on_connect(device.announce)
    transport.subscribe(DISCOVER_TOPIC, lambda _payload: device.announce())
    if transport.is_connected():
        device.announce()
    return device


def temperature_sensor(name: str, transport: Transport) -> Device:
    return new_device(
        DeviceInfo(
            topic=f"sensor/temperature/{topic_name(name)}",
            name=f"Temperature ({name})",
            type="temperatureSensor",
            features={"currentTemperature": FeatureInfo(min=-50)},
        ),
        transport,
    )


def humidity_sensor(name: str, transport: Transport) -> Device:
    return new_device(
        DeviceInfo(
            topic=f"sensor/humidity/{topic_name(name)}",
            name=f"Relative Humidity ({name})",
            type="humiditySensor",
            features={"currentRelativeHumidity": FeatureInfo()},
        ),
        transport,
    )


def precipitation_sensor(name: str, transport: Transport) -> Device:
    return new_device(
        DeviceInfo(
            topic=f"sensor/precipitation/{topic_name(name)}",
            name=f"Precipitation ({name})",
            type="precipitationSensor",
            features={"precipitation": FeatureInfo(min=0)},
        ),
        transport,
    )


def weather_station(
    station_id: str, name: str, road_number: int | None, transport: Transport
) -> Device:
    display = f"{name} (väg {road_number})" if road_number else name
    return new_device(
        DeviceInfo(
            topic=f"sensor/weather/{station_id}",
            name=display,
            type="weatherStation",
            features={
                "currentTemperature": FeatureInfo(min=-50),
                "currentRelativeHumidity": FeatureInfo(),
                "precipitation": FeatureInfo(min=0),
            },
        ),
        transport,
    )
