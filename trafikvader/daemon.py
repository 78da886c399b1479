#!/usr/bin/env python3
"""
Trafikväder daemon

Polls the Trafikinfo API for road weather stations and publishes their
temperature, humidity and precipitation as Hemtjänst sensors over MQTT.
"""

import argparse
import logging
import signal
import sys
import threading
from enum import Enum

from . import __version__
from .config import (
    DEFAULT_MAX_AGE,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
    TOKEN_SENTINEL,
    Config,
    EnvDefaults,
    SchemaVersion,
    StationSelector,
    load_env_defaults,
)
from .errors import FetchError, StartupError
from .fetcher import Fetcher
from .logging_config import configure_logging
from .registry import build_registry, missing_stations
from .transport import MqttTransport, add_arguments, config_from_args
from .updater import apply


logger = logging.getLogger(__name__)

CONNECTION_CHECK_INTERVAL = 1.0


class DaemonState(Enum):
    STARTING = "starting"
    CONNECTING = "connecting"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class WeatherDaemon:
    """
    Runs the poll loop on the calling thread and keeps the MQTT connection
    alive on a background thread. Both wait on the same stop event.
    """

    def __init__(self, config: Config, fetcher, transport):
        self.config = config
        self.fetcher = fetcher
        self.transport = transport

        self.state = DaemonState.STARTING
        self.stations: dict = {}

        # Threading control
        self._stop_event = threading.Event()
        self._connection_thread: threading.Thread | None = None
        self._fatal: str | None = None

        # Stats
        self._cycles = 0
        self._failed_cycles = 0

    def run(self) -> int:
        """Run until shutdown; returns the process exit code."""
        try:
            self._run()
        except StartupError as e:
            self._fatal = str(e)
            logger.error("%s", e)
        finally:
            self._drain()

        if self._fatal is not None:
            return 1
        return 0

    def shutdown(self) -> None:
        """Request a graceful stop; safe to call from a signal handler."""
        self._stop_event.set()

    def _set_state(self, state: DaemonState) -> None:
        self.state = state
        logger.debug("State changed", extra={"state": state.value})

    def _run(self) -> None:
        self._set_state(DaemonState.STARTING)
        try:
            readings = self.fetcher.fetch()
        except FetchError as e:
            raise StartupError(f"failed to fetch data from API: {e}") from e
        logger.info("fetched initial data", extra={"reading_count": len(readings)})

        self._set_state(DaemonState.CONNECTING)
        self._connection_thread = threading.Thread(
            target=self._maintain_connection,
            name="MQTTConnectionThread",
            daemon=True
        )
        self._connection_thread.start()

        self.stations = build_registry(readings, self.config.selector, self.transport)

        missing = missing_stations(self.config.selector, self.stations)
        if missing:
            logger.warning(
                "Stations %s could not be found", ", ".join(missing)
            )

        if not self._await_connection():
            return

        apply(readings, self.stations)
        logger.info("MQTT: published initial sensor data")

        self._set_state(DaemonState.RUNNING)
        while not self._stop_event.wait(timeout=self.config.poll_interval):
            self._cycle()

        if self._fatal is None:
            logger.info("Received shutdown signal, terminating")

    def _await_connection(self) -> bool:
        """Block until the broker session is up; False if stopped first."""
        while not self._stop_event.is_set():
            if self.transport.wait_for_connection(CONNECTION_CHECK_INTERVAL):
                return True
        return False

    def _cycle(self) -> None:
        """One fetch-then-update pass; fetch errors only skip this cycle."""
        self._cycles += 1
        try:
            readings = self.fetcher.fetch()
        except FetchError as e:
            self._failed_cycles += 1
            logger.error(
                "failed to fetch data from API: %s",
                e,
                extra={"status_code": getattr(e, "status_code", None)},
            )
            return

        apply(readings, self.stations)
        logger.debug("Published sensor data", extra={"reading_count": len(readings)})

    def _maintain_connection(self) -> None:
        """Worker thread: (re)connect to the broker until stopped."""
        attempt = 0
        while not self._stop_event.is_set():
            attempt += 1
            ok = self.transport.start()
            if self._stop_event.is_set():
                break
            if not ok:
                self._fatal = "MQTT: could not (re)connect"
                logger.error(self._fatal, extra={"attempt": attempt})
                self._stop_event.set()
                break
            if self._stop_event.wait(timeout=self.config.reconnect_delay):
                break
            logger.info("MQTT: reconnecting", extra={"attempt": attempt})

    def _drain(self) -> None:
        self._set_state(DaemonState.DRAINING)
        self._stop_event.set()
        self.transport.stop()

        if self._connection_thread and self._connection_thread.is_alive():
            self._connection_thread.join(timeout=self.config.reconnect_delay)

        self.fetcher.close()
        logger.info(
            "Stopped after %d poll cycles (%d failed)",
            self._cycles,
            self._failed_cycles,
        )
        self._set_state(DaemonState.STOPPED)


def _positive_float(value: str) -> float:
    parsed = float(value)
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return parsed


def build_parser(defaults: EnvDefaults) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Publish Trafikinfo road weather stations as Hemtjänst sensors over MQTT",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    stations = parser.add_mutually_exclusive_group()
    stations.add_argument(
        "--id",
        dest="ids",
        action="append",
        default=[],
        help="Station ID to query for, can be passed multiple times"
    )
    stations.add_argument(
        "--name",
        dest="names",
        action="append",
        default=[],
        help="Station name to query for, can be passed multiple times"
    )
    parser.add_argument(
        "--token",
        type=str,
        default=defaults.token,
        help="Trafikinfo API token"
    )
    parser.add_argument(
        "--schema",
        choices=[version.value for version in SchemaVersion],
        default=SchemaVersion.WEATHER_STATION_1.value,
        help="Upstream schema version (1.0 WeatherStation, 2.0 WeatherMeasurepoint)"
    )
    parser.add_argument(
        "-i", "--interval",
        type=_positive_float,
        default=DEFAULT_POLL_INTERVAL,
        help="Interval between API polls in seconds"
    )
    parser.add_argument(
        "--max-age",
        type=_positive_float,
        default=DEFAULT_MAX_AGE,
        help="Observations older than this many seconds are ignored"
    )
    parser.add_argument(
        "--request-timeout",
        type=_positive_float,
        default=DEFAULT_REQUEST_TIMEOUT,
        help="Timeout for API requests in seconds"
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level,
        help="Log level"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    add_arguments(parser, defaults)
    return parser


def build_config(args: argparse.Namespace) -> Config:
    if args.names:
        selector = StationSelector.from_names(args.names)
    else:
        selector = StationSelector.from_ids(args.ids)

    return Config(
        token=args.token,
        selector=selector,
        schema=SchemaVersion(args.schema),
        poll_interval=args.interval,
        max_age=args.max_age,
        request_timeout=args.request_timeout,
        mqtt=config_from_args(args),
        log_level=args.log_level,
    )


def parse_config(argv=None) -> Config:
    """Parse the command line into a Config, exiting on invalid input."""
    parser = build_parser(load_env_defaults())
    args = parser.parse_args(argv)

    if args.token == TOKEN_SENTINEL or not args.token.strip():
        parser.error("A token is required to be able to query the Trafikinfo API")
    if not args.ids and not args.names:
        parser.error(
            "At least one station ID or name is required to be able to query the Trafikinfo API"
        )

    return build_config(args)


def main(argv=None):
    """Main entry point."""
    config = parse_config(argv)
    configure_logging(config.log_level)

    daemon = WeatherDaemon(config, Fetcher(config), MqttTransport(config.mqtt))

    # Setup signal handlers for graceful shutdown
    def signal_handler(sig, frame):
        daemon.shutdown()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    sys.exit(daemon.run())


if __name__ == "__main__":
    main()
