"""Shared TLE samples and test doubles."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import requests

from satnow.elements import ElementRecord, checksum
from satnow.errors import CatalogError, PropagationError
from satnow.propagation import Bearing


ISS_LINE1 = "1 25544U 98067A   24001.50000000  .00016717  00000-0  10270-3 0  9009"
ISS_LINE2 = "2 25544  51.6400 208.5000 0007417  68.0000 292.1000 15.49560000400004"
HST_LINE1 = "1 20580U 90037B   24001.50000000  .00000764  00000-0  34340-4 0  9991"
HST_LINE2 = "2 20580  28.4700 100.2000 0002500 300.0000  60.0000 15.09000000400006"

ISS_3LE = f"ISS (ZARYA)\n{ISS_LINE1}\n{ISS_LINE2}\n"
HST_3LE = f"HST\n{HST_LINE1}\n{HST_LINE2}\n"

T0 = datetime(2024, 1, 1, 13, 0, tzinfo=timezone.utc)


def make_record(norad_id: int, name: str | None = None) -> ElementRecord:
    """A record whose lines carry ``norad_id``; the rest is ISS data."""
    return ElementRecord(name=name, line1=_with_id(ISS_LINE1, norad_id), line2=_with_id(ISS_LINE2, norad_id))


def _with_id(line: str, norad_id: int) -> str:
    body = f"{line[0]} {norad_id:05d}{line[7:68]}"
    return f"{body}{checksum(body)}"


class FakePropagator:
    """Returns preset ranges by catalog number and records every call."""

    def __init__(self, ranges: dict[int, float]):
        self.ranges = dict(ranges)
        self.failing: set[int] = set()
        self.calls: list[tuple[int, datetime]] = []

    def bearing(self, record, observer, when):
        self.calls.append((record.catalog_id, when))
        if record.catalog_id in self.failing:
            raise PropagationError(f"no position for {record.catalog_id}")
        return Bearing(azimuth=10.0, elevation=5.0, range=self.ranges[record.catalog_id])


class Clock:
    """Returns one minute later on every call."""

    def __init__(self, start: datetime = T0):
        self.now = start
        self.calls = 0

    def __call__(self) -> datetime:
        self.calls += 1
        self.now += timedelta(minutes=1)
        return self.now


class FakeStore:
    """In-memory CatalogStore that can be told to reject some ids."""

    def __init__(self, records=()):
        self.rows: dict[int, ElementRecord] = {}
        self.upserts: list[ElementRecord] = []
        self.reject: set[int] = set()
        self.fetches = 0
        self._error = ""
        for r in records:
            self.rows[r.catalog_id] = r

    def upsert(self, record):
        self.upserts.append(record)
        if record.catalog_id in self.reject:
            self._error = "disk I/O error"
            raise CatalogError(f"Error storing {record.catalog_id}: disk I/O error")
        self.rows[record.catalog_id] = record
        self._error = ""

    def fetch_all(self):
        self.fetches += 1
        return list(self.rows.values())

    def ok(self):
        return not self._error

    def error_message(self):
        return self._error

    def close(self):
        pass


class FakeResponse:
    def __init__(self, text: str, status_code: int = 200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class FakeSession:
    """Stands in for requests.Session; maps URLs to responses or exceptions."""

    def __init__(self, pages: dict | None = None):
        self.pages = pages or {}
        self.headers: dict[str, str] = {}
        self.requested: list[str] = []
        self.closed = False

    def get(self, url, timeout=None):
        self.requested.append(url)
        page = self.pages.get(url)
        if page is None:
            raise requests.ConnectionError(f"cannot resolve {url}")
        if isinstance(page, Exception):
            raise page
        return page if isinstance(page, FakeResponse) else FakeResponse(page)

    def close(self):
        self.closed = True


@pytest.fixture
def clock():
    return Clock()
