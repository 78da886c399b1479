"""Fetches weather readings from the Trafikinfo API."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

import httpx

from .config import Config, StationSelector
from .errors import (
    ApiError,
    AuthenticationError,
    DecodeError,
    StatusError,
    TransportError,
)
from .models import StationReading
from .query import ENDPOINT, Query, Request, equal, or_
from .schema import SchemaAdapter, adapter_for, result_records


logger = logging.getLogger(__name__)


def build_request(token: str, selector: StationSelector, adapter: SchemaAdapter) -> bytes:
    """Build the request body selecting the configured stations."""
    filters = [equal(selector.filter_field, value) for value in selector.values]
    query = (
        Query(adapter.object_type, adapter.version)
        .filter(or_(*filters))
        .include(*adapter.include)
    )
    return Request(token).query(query).build()


def _error_message(payload) -> str | None:
    if not isinstance(payload, dict):
        return None
    message = payload.get("MESSAGE")
    if isinstance(message, str):
        return message
    try:
        message = payload["RESPONSE"]["RESULT"][0]["ERROR"]["MESSAGE"]
    except (KeyError, IndexError, TypeError):
        return None
    return message if isinstance(message, str) else None


class Fetcher:
    """Queries the upstream API and normalizes the returned stations."""

    def __init__(
        self,
        config: Config,
        client: httpx.Client | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config = config
        self.adapter = adapter_for(config.schema)
        self.max_age = timedelta(seconds=config.max_age)
        self.body = build_request(config.token, config.selector, self.adapter)
        self._client = client or httpx.Client(timeout=config.request_timeout)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def close(self) -> None:
        self._client.close()

    def fetch(self) -> list[StationReading]:
        """Run one query and return the fresh readings in upstream order."""
        try:
            response = self._client.post(
                ENDPOINT,
                content=self.body,
                headers={"Content-Type": "text/xml"},
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"request failed: {exc}") from exc

        # httpx reads the whole body before returning, so the connection
        # is back in the pool whatever the status code is.
        if response.status_code == 401:
            raise AuthenticationError("invalid credentials")

        if response.status_code == 400:
            try:
                payload = response.json()
            except ValueError as exc:
                raise DecodeError(f"failed to decode API error response: {exc}") from exc
            message = _error_message(payload)
            if message is None:
                raise DecodeError("failed to decode API error response: no message")
            raise ApiError(f"invalid request: {message}")

        if response.status_code != 200:
            raise StatusError(response.status_code, response.reason_phrase)

        try:
            payload = response.json()
        except ValueError as exc:
            raise DecodeError(f"failed to decode response: {exc}") from exc

        records = result_records(payload, self.adapter)
        return self._normalize(records)

    def _normalize(self, records: list[dict]) -> list[StationReading]:
        now = self._clock()
        readings: list[StationReading] = []
        for record in records:
            raw = self.adapter.decode(record)
            if not raw.active:
                continue
            if raw.sample_time is None or now - raw.sample_time > self.max_age:
                continue
            readings.append(
                StationReading(
                    id=raw.id,
                    name=raw.name,
                    temperature_c=raw.temperature_c,
                    relative_humidity_pct=raw.relative_humidity_pct,
                    precipitation=raw.precipitation if raw.precipitation is not None else 0.0,
                    road_number=raw.road_number,
                )
            )
        logger.debug(
            "Decoded %d of %d stations",
            len(readings),
            len(records),
            extra={"reading_count": len(readings)},
        )
        return readings
