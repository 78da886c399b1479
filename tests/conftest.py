from __future__ import annotations

import threading

import pytest

from trafikvader.config import Config, StationSelector
from trafikvader.errors import PublishError


class FakeTransport:
    """Records publishes instead of talking to a broker."""

    def __init__(self, connected: bool = True, start_result: bool = True) -> None:
        self.published: list[tuple[str, str, bool]] = []
        self.fail_topics: set[str] = set()
        self.subscriptions: dict[str, list] = {}
        self.hooks: list = []
        self.start_result = start_result
        self.start_calls = 0
        self.stop_calls = 0
        self._connected = threading.Event()
        self._stopped = threading.Event()
        if connected:
            self._connected.set()

    def publish(self, topic: str, payload: str, retain: bool = True) -> None:
        if topic in self.fail_topics:
            raise PublishError(f"{topic}: the client is not currently connected.")
        self.published.append((topic, payload, retain))

    def subscribe(self, topic: str, callback) -> None:
        self.subscriptions.setdefault(topic, []).append(callback)

    def on_connect(self, hook) -> None:
        self.hooks.append(hook)

    def is_connected(self) -> bool:
        return self._connected.is_set()

    def wait_for_connection(self, timeout: float) -> bool:
        return self._connected.wait(timeout)

    def start(self) -> bool:
        self.start_calls += 1
        if not self.start_result:
            return False
        self._stopped.wait()
        return True

    def stop(self) -> None:
        self.stop_calls += 1
        self._stopped.set()

    def values(self) -> list[tuple[str, str]]:
        return [(topic, payload) for topic, payload, _ in self.published if topic.endswith("/get")]


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def make_transport():
    return FakeTransport


@pytest.fixture()
def config() -> Config:
    return Config(token="secret", selector=StationSelector.from_ids(["1", "2"]))
