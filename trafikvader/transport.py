"""MQTT transport used to announce devices and publish feature values."""

import argparse
import logging
import ssl
import threading
from typing import Callable

import paho.mqtt.client as mqtt

from .config import EnvDefaults, MqttConfig
from .errors import PublishError


logger = logging.getLogger(__name__)

LEAVE_TOPIC = "leave"
LOOP_TIMEOUT = 1.0


def add_arguments(parser: argparse.ArgumentParser, defaults: EnvDefaults) -> None:
    """Register the MQTT flags on ``parser``."""
    group = parser.add_argument_group("MQTT")
    group.add_argument(
        "--mqtt-address",
        type=str,
        default=defaults.mqtt_address,
        help="MQTT broker address"
    )
    group.add_argument(
        "--mqtt-port",
        type=int,
        default=defaults.mqtt_port,
        help="MQTT broker port"
    )
    group.add_argument(
        "--mqtt-username",
        type=str,
        default=defaults.mqtt_username,
        help="MQTT username"
    )
    group.add_argument(
        "--mqtt-password",
        type=str,
        default=defaults.mqtt_password,
        help="MQTT password"
    )
    group.add_argument(
        "--mqtt-client-id",
        type=str,
        default=defaults.mqtt_client_id,
        help="MQTT client ID, also sent on the leave topic"
    )
    group.add_argument(
        "--mqtt-tls",
        action="store_true",
        help="Enable TLS"
    )
    group.add_argument(
        "--mqtt-ca-cert",
        type=str,
        default=None,
        help="CA certificate used to verify the broker when TLS is enabled"
    )
    group.add_argument(
        "--mqtt-keepalive",
        type=int,
        default=60,
        help="Keepalive interval in seconds"
    )


def config_from_args(args: argparse.Namespace) -> MqttConfig:
    return MqttConfig(
        address=args.mqtt_address,
        port=args.mqtt_port,
        username=args.mqtt_username,
        password=args.mqtt_password,
        client_id=args.mqtt_client_id,
        tls=args.mqtt_tls,
        ca_cert=args.mqtt_ca_cert,
        keepalive=args.mqtt_keepalive,
    )


class MqttTransport:
    """Owns the paho client; ``start`` runs one connection session."""

    def __init__(self, config: MqttConfig, client: mqtt.Client | None = None):
        self.config = config
        self.client = client or mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2, client_id=config.client_id
        )

        if config.username:
            self.client.username_pw_set(config.username, config.password)
        if config.tls:
            self.client.tls_set(
                ca_certs=config.ca_cert,
                tls_version=ssl.PROTOCOL_TLSv1_2,
            )
        self.client.will_set(LEAVE_TOPIC, config.client_id, qos=1)

        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        self._subscriptions: dict[str, list[Callable[[bytes], None]]] = {}
        self._connect_hooks: list[Callable[[], None]] = []
        self._lock = threading.Lock()
        self._stopping = threading.Event()
        self._connected = threading.Event()
        self._refused = False

    def start(self) -> bool:
        """Connect and block until the session ends or ``stop`` is called.

        Returns False when the broker refused the connection, which retrying
        will not fix. Network failures return True so the caller can retry.
        """
        self._refused = False
        if self._stopping.is_set():
            return True

        try:
            self.client.connect(
                self.config.address, self.config.port, keepalive=self.config.keepalive
            )
        except (OSError, ValueError) as e:
            logger.error("MQTT Error: %s", e)
            return True

        while not self._stopping.is_set():
            rc = self.client.loop(timeout=LOOP_TIMEOUT)
            if rc != mqtt.MQTT_ERR_SUCCESS:
                if not self._stopping.is_set():
                    logger.warning("MQTT: connection lost: %s", mqtt.error_string(rc))
                break

        self._connected.clear()
        return not self._refused

    def stop(self) -> None:
        """Ask a running ``start`` to return and close the connection."""
        self._stopping.set()
        try:
            self.client.disconnect()
        except OSError as e:
            logger.debug("MQTT: disconnect failed: %s", e)

    def is_connected(self) -> bool:
        return self._connected.is_set()

    def wait_for_connection(self, timeout: float) -> bool:
        return self._connected.wait(timeout=timeout)

    def publish(self, topic: str, payload: str, retain: bool = True) -> None:
        info = self.client.publish(topic, payload, qos=1, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(f"{topic}: {mqtt.error_string(info.rc)}")

    def subscribe(self, topic: str, callback: Callable[[bytes], None]) -> None:
        """Call ``callback`` with the payload of every message on ``topic``."""
        with self._lock:
            first = topic not in self._subscriptions
            self._subscriptions.setdefault(topic, []).append(callback)
        if first:
            self.client.message_callback_add(topic, self._dispatch)
            if self.is_connected():
                self.client.subscribe(topic, qos=1)

    def on_connect(self, hook: Callable[[], None]) -> None:
        """Run ``hook`` after every successful (re)connect."""
        with self._lock:
            self._connect_hooks.append(hook)

    def _dispatch(self, client, userdata, message) -> None:
        with self._lock:
            callbacks = list(self._subscriptions.get(message.topic, ()))
        for callback in callbacks:
            callback(message.payload)

    def _on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if reason_code.is_failure:
            logger.error("MQTT: connection refused: %s", reason_code)
            self._refused = True
            client.disconnect()
            return

        self._connected.set()
        logger.info(
            "MQTT: connected to %s:%s", self.config.address, self.config.port
        )
        with self._lock:
            topics = list(self._subscriptions)
            hooks = list(self._connect_hooks)
        for topic in topics:
            client.subscribe(topic, qos=1)
        for hook in hooks:
            hook()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None) -> None:
        self._connected.clear()
        if reason_code.is_failure:
            logger.warning("MQTT: disconnected: %s", reason_code)
        else:
            logger.info("MQTT: disconnected")
