from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from trafikvader.config import StationSelector
from trafikvader.fetcher import build_request
from trafikvader.query import Query, Request, equal, or_
from trafikvader.schema import WeatherMeasurepointV2, WeatherStationV1


def test_request_document_structure() -> None:
    body = (
        Request("key")
        .query(
            Query("WeatherStation", "1.0")
            .filter(or_(equal("Id", "a"), equal("Id", "b")))
            .include("Id", "Name")
        )
        .build()
    )

    root = ET.fromstring(body)
    assert root.tag == "REQUEST"
    assert root.find("LOGIN").get("authenticationkey") == "key"
    query = root.find("QUERY")
    assert query.get("objecttype") == "WeatherStation"
    assert query.get("schemaversion") == "1.0"
    values = [eq.get("value") for eq in query.findall("FILTER/OR/EQ")]
    assert values == ["a", "b"]
    assert [include.text for include in query.findall("INCLUDE")] == ["Id", "Name"]


def test_single_filter_is_not_wrapped_in_or() -> None:
    assert or_(equal("Id", "a")) == equal("Id", "a")


def test_request_requires_key_and_query() -> None:
    with pytest.raises(ValueError):
        Request("")
    with pytest.raises(ValueError):
        Request("key").build()


def test_build_request_filters_on_name_for_name_selector() -> None:
    selector = StationSelector.from_names(["Österlen"])

    root = ET.fromstring(build_request("key", selector, WeatherMeasurepointV2()))

    eq = root.find("QUERY/FILTER/EQ")
    assert eq.get("name") == "Name"
    assert eq.get("value") == "Österlen"
    includes = [include.text for include in root.findall("QUERY/INCLUDE")]
    assert includes == ["Id", "Name", "Observation"]


def test_build_request_includes_v1_fields() -> None:
    selector = StationSelector.from_ids(["1"])

    root = ET.fromstring(build_request("key", selector, WeatherStationV1()))

    includes = [include.text for include in root.findall("QUERY/INCLUDE")]
    assert includes == ["Active", "Id", "Name", "Measurement", "RoadNumberNumeric"]
    assert root.find("QUERY/FILTER/EQ").get("name") == "Id"
