"""Request builder for the Trafikinfo data API.

Requests are XML documents of the form::

    <REQUEST>
      <LOGIN authenticationkey="..."/>
      <QUERY objecttype="WeatherStation" schemaversion="1.0">
        <FILTER><OR><EQ name="Id" value="..."/></OR></FILTER>
        <INCLUDE>Id</INCLUDE>
      </QUERY>
    </REQUEST>
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field


ENDPOINT = "https://api.trafikinfo.trafikverket.se/v2/data.json"


@dataclass(frozen=True)
class Filter:
    """A single filter operator with optional nested filters."""
    operator: str
    name: str | None = None
    value: str | None = None
    children: tuple["Filter", ...] = ()

    def to_element(self) -> ET.Element:
        element = ET.Element(self.operator)
        if self.name is not None:
            element.set("name", self.name)
        if self.value is not None:
            element.set("value", self.value)
        for child in self.children:
            element.append(child.to_element())
        return element


def equal(name: str, value: str) -> Filter:
    return Filter(operator="EQ", name=name, value=value)


def or_(*filters: Filter) -> Filter:
    """Combine filters with OR; a single filter is returned unchanged."""
    if not filters:
        raise ValueError("or_ needs at least one filter")
    if len(filters) == 1:
        return filters[0]
    return Filter(operator="OR", children=tuple(filters))


@dataclass
class Query:
    object_type: str
    version: str
    filters: list[Filter] = field(default_factory=list)
    includes: list[str] = field(default_factory=list)

    def filter(self, *filters: Filter) -> "Query":
        self.filters.extend(filters)
        return self

    def include(self, *fields: str) -> "Query":
        self.includes.extend(fields)
        return self

    def to_element(self) -> ET.Element:
        element = ET.Element(
            "QUERY", objecttype=self.object_type, schemaversion=self.version
        )
        if self.filters:
            filter_element = ET.SubElement(element, "FILTER")
            for item in self.filters:
                filter_element.append(item.to_element())
        for name in self.includes:
            ET.SubElement(element, "INCLUDE").text = name
        return element


class Request:
    """Builds the request body sent to ``ENDPOINT``."""

    def __init__(self, api_key: str):
        if not api_key:
            raise ValueError("an API key is required")
        self.api_key = api_key
        self._queries: list[Query] = []

    def query(self, *queries: Query) -> "Request":
        self._queries.extend(queries)
        return self

    def build(self) -> bytes:
        if not self._queries:
            raise ValueError("a request needs at least one query")
        root = ET.Element("REQUEST")
        ET.SubElement(root, "LOGIN", authenticationkey=self.api_key)
        for query in self._queries:
            root.append(query.to_element())
        return ET.tostring(root, encoding="utf-8")
