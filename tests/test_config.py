from __future__ import annotations

import pytest

from trafikvader.config import SchemaVersion, SelectorMode, StationSelector, load_env_defaults
from trafikvader.daemon import parse_config


_ENV_VARS = (
    "TRAFIKINFO_TOKEN",
    "MQTT_BROKER_ADDRESS",
    "MQTT_BROKER_PORT",
    "MQTT_USER",
    "MQTT_PASS",
    "MQTT_CLIENT_ID",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    # keep a developer's .env out of the tests
    monkeypatch.chdir(tmp_path)
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_selector_modes() -> None:
    assert StationSelector.from_ids(["1"]).mode is SelectorMode.SINGLE
    assert StationSelector.from_ids(["1", "2"]).mode is SelectorMode.BY_ID
    by_name = StationSelector.from_names(["Åre"])
    assert by_name.mode is SelectorMode.BY_NAME
    assert by_name.filter_field == "Name"
    with pytest.raises(ValueError):
        StationSelector.from_ids([])


def test_parse_config_from_flags() -> None:
    config = parse_config(
        [
            "--token", "abc",
            "--id", "1",
            "--id", "2",
            "--schema", "2.0",
            "--interval", "60",
            "--mqtt-address", "broker.local",
            "--mqtt-port", "8883",
            "--mqtt-tls",
            "--log-level", "debug",
        ]
    )

    assert config.token == "abc"
    assert config.selector == StationSelector(mode=SelectorMode.BY_ID, values=("1", "2"))
    assert config.schema is SchemaVersion.WEATHER_MEASUREPOINT_2
    assert config.poll_interval == 60.0
    assert config.reconnect_delay == 5.0
    assert config.max_age == 3600.0
    assert config.mqtt.address == "broker.local"
    assert config.mqtt.port == 8883
    assert config.mqtt.tls is True
    assert config.log_level == "DEBUG"


def test_env_provides_defaults(monkeypatch) -> None:
    monkeypatch.setenv("TRAFIKINFO_TOKEN", "from-env")
    monkeypatch.setenv("MQTT_BROKER_ADDRESS", "10.0.0.2")
    monkeypatch.setenv("MQTT_BROKER_PORT", "not-a-port")
    monkeypatch.setenv("MQTT_USER", "user")
    monkeypatch.setenv("MQTT_PASS", "pass")

    config = parse_config(["--name", "Österlen"])

    assert config.token == "from-env"
    assert config.selector.mode is SelectorMode.BY_NAME
    assert config.mqtt.address == "10.0.0.2"
    assert config.mqtt.port == 1883
    assert config.mqtt.username == "user"
    assert config.mqtt.password == "pass"


def test_dotenv_file_is_loaded(tmp_path) -> None:
    (tmp_path / ".env").write_text("TRAFIKINFO_TOKEN=dotenv-token\n")

    assert load_env_defaults().token == "dotenv-token"


@pytest.mark.parametrize(
    "argv",
    [
        ["--id", "1"],
        ["--token", "abc"],
        ["--token", "abc", "--id", "1", "--name", "Åre"],
        ["--token", "abc", "--id", "1", "--interval", "0"],
    ],
)
def test_invalid_command_lines_exit(argv, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        parse_config(argv)

    assert excinfo.value.code == 2


def test_repeated_ids_are_deduplicated_in_order() -> None:
    assert StationSelector.from_ids(["X", "X"]) == StationSelector(
        mode=SelectorMode.SINGLE, values=("X",)
    )
    assert StationSelector.from_ids(["2", "1", "2"]).values == ("2", "1")
    assert StationSelector.from_names(["Åre", "Åre"]).values == ("Åre",)

    config = parse_config(["--token", "abc", "--id", "X", "--id", "X"])

    assert config.selector.mode is SelectorMode.SINGLE


@pytest.mark.parametrize("token", ["", "   "])
def test_blank_token_is_rejected(token: str) -> None:
    with pytest.raises(SystemExit) as excinfo:
        parse_config(["--token", token, "--id", "1"])

    assert excinfo.value.code == 2
