import os
from dataclasses import dataclass, field
from enum import Enum

from dotenv import find_dotenv, load_dotenv


TOKEN_SENTINEL = "REQUIRED"

DEFAULT_POLL_INTERVAL = 600.0       # seconds between upstream polls
DEFAULT_RECONNECT_DELAY = 5.0       # seconds between MQTT (re)connect attempts
DEFAULT_MAX_AGE = 3600.0            # observations older than this are stale
DEFAULT_REQUEST_TIMEOUT = 30.0


class SelectorMode(Enum):
    """How the configured stations are looked up upstream."""
    SINGLE = "single"
    BY_ID = "id"
    BY_NAME = "name"


class SchemaVersion(Enum):
    """Supported upstream response schemas."""
    WEATHER_STATION_1 = "1.0"
    WEATHER_MEASUREPOINT_2 = "2.0"


@dataclass(frozen=True)
class StationSelector:
    """The set of stations a deployment publishes."""
    mode: SelectorMode
    values: tuple[str, ...]

    @classmethod
    def from_ids(cls, ids) -> "StationSelector":
        ids = tuple(dict.fromkeys(ids))
        if not ids:
            raise ValueError("at least one station ID is required")
        mode = SelectorMode.SINGLE if len(ids) == 1 else SelectorMode.BY_ID
        return cls(mode=mode, values=ids)

    @classmethod
    def from_names(cls, names) -> "StationSelector":
        names = tuple(dict.fromkeys(names))
        if not names:
            raise ValueError("at least one station name is required")
        return cls(mode=SelectorMode.BY_NAME, values=names)

    @property
    def filter_field(self) -> str:
        return "Name" if self.mode is SelectorMode.BY_NAME else "Id"


@dataclass(frozen=True)
class MqttConfig:
    """Connection settings for the MQTT broker."""
    address: str = "localhost"
    port: int = 1883
    username: str | None = None
    password: str | None = None
    client_id: str = "trafikvader"
    tls: bool = False
    ca_cert: str | None = None
    keepalive: int = 60


@dataclass(frozen=True)
class Config:
    """Configuration for the daemon, built once at startup."""
    token: str
    selector: StationSelector
    schema: SchemaVersion = SchemaVersion.WEATHER_STATION_1

    # Timing configuration
    poll_interval: float = DEFAULT_POLL_INTERVAL
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY
    max_age: float = DEFAULT_MAX_AGE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    mqtt: MqttConfig = field(default_factory=MqttConfig)
    log_level: str = "INFO"


@dataclass(frozen=True)
class EnvDefaults:
    """Values picked up from the environment (and .env) for flag defaults."""
    token: str
    mqtt_address: str
    mqtt_port: int
    mqtt_username: str | None
    mqtt_password: str | None
    mqtt_client_id: str
    log_level: str


def _read_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_optional(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip() or None


def load_env_defaults() -> EnvDefaults:
    """Read flag defaults from the environment after loading a .env file."""
    load_dotenv(find_dotenv(usecwd=True))
    return EnvDefaults(
        token=_read_optional("TRAFIKINFO_TOKEN") or TOKEN_SENTINEL,
        mqtt_address=_read_optional("MQTT_BROKER_ADDRESS") or "localhost",
        mqtt_port=_read_int(os.getenv("MQTT_BROKER_PORT"), 1883),
        mqtt_username=_read_optional("MQTT_USER"),
        mqtt_password=_read_optional("MQTT_PASS"),
        mqtt_client_id=_read_optional("MQTT_CLIENT_ID") or "trafikvader",
        log_level=(_read_optional("LOG_LEVEL") or "INFO").upper(),
    )
