"""Resolve TLE source locations to element records.

A location is either a local file path or a remote URL. Anything containing
``://`` is treated as remote and fetched with one blocking HTTP GET; anything
else is opened as a file. Exactly one of the two is tried for a given
location, and failure is reported as ``found=False`` rather than raised, so a
bad entry never stops a batch of sources.

Example::

    with SourceLoader(timeout=10) as loader:
        records, found = loader.load("https://celestrak.org/NORAD/elements/gp.php?GROUP=stations")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import requests

from . import __version__
from .elements import ElementRecord, parse_elements, parse_text

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
"""Seconds to wait for a remote source before giving up."""

USER_AGENT = f"satnow/{__version__}"

LoadResult = tuple[list[ElementRecord], bool]


def is_remote(location: str) -> bool:
    """Return True if ``location`` looks like a URL."""
    return "://" in location


def load_local(location: str | Path) -> LoadResult:
    """Parse element records from a local file.

    Returns:
        ``(records, found)``. ``found`` is False if the location looks like a
        URL or the file cannot be opened.
    """
    location = str(location)
    if is_remote(location):
        return [], False

    try:
        fh = open(location, encoding="utf-8", errors="replace")
    except OSError as e:
        logger.debug(f"Cannot open {location}: {e}")
        return [], False

    with fh:
        records = list(parse_elements(fh, source=location))
    logger.debug(f"Parsed {len(records)} records from {location}")
    return records, True


def load_remote(
    location: str,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> LoadResult:
    """Download a remote source and parse the buffered response.

    Returns:
        ``(records, found)``. ``found`` is False if the location is not a URL
        or the request fails (connection error, timeout, HTTP error status).
    """
    if not is_remote(location):
        return [], False

    http = session or requests
    logger.info(f"Downloading contents from {location}")
    try:
        resp = http.get(location, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"Failed to download {location}: {e}")
        return [], False

    records = parse_text(resp.text, source=location)
    logger.debug(f"Parsed {len(records)} records from {location}")
    return records, True


def load_source(
    location: str,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> LoadResult:
    """Resolve ``location`` by whichever path applies to it."""
    if is_remote(location):
        return load_remote(location, session=session, timeout=timeout)
    return load_local(location)


class SourceLoader:
    """Loads sources over one shared HTTP session."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = USER_AGENT

    def load_local(self, location: str) -> LoadResult:
        return load_local(location)

    def load_remote(self, location: str) -> LoadResult:
        return load_remote(location, session=self.session, timeout=self.timeout)

    def load(self, location: str) -> LoadResult:
        return load_source(location, session=self.session, timeout=self.timeout)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> SourceLoader:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
