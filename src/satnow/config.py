"""Runtime settings.

Values come from command-line options first, then environment variables::

    export SATNOW_DB="~/.satnow.sql3"
    export SATNOW_REFRESH_MS=1000
    export SATNOW_FETCH_TIMEOUT=15
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .catalog import DEFAULT_DB_PATH
from .errors import ConfigError
from .propagation import Observer
from .sources import DEFAULT_TIMEOUT


@dataclass
class Settings:
    """Everything a satnow run needs to know.

    Attributes:
        observer: Ground position; None for commands that do not track.
        db_path: Catalog database file.
        manifest: Manifest to ingest before tracking, if any.
        interactive: Use the curses navigator instead of one-shot output.
        refresh_ms: Interactive refresh period; negative waits for keys only.
        verbose: Log per-record progress and debug output.
        fetch_timeout: Seconds to wait for each remote source.
        output: CSV file to write batch results to, if any.
    """

    observer: Optional[Observer] = None
    db_path: str = DEFAULT_DB_PATH
    manifest: Optional[str] = None
    interactive: bool = False
    refresh_ms: int = -1
    verbose: bool = False
    fetch_timeout: float = DEFAULT_TIMEOUT
    output: Optional[str] = None

    @classmethod
    def from_env(
        cls,
        observer: Optional[Observer] = None,
        db_path: Optional[str] = None,
        refresh_ms: Optional[int] = None,
        fetch_timeout: Optional[float] = None,
        **kwargs,
    ) -> Settings:
        """Build settings, filling unset values from the environment.

        Raises:
            ConfigError: If a numeric environment variable does not parse.
        """
        db_path = db_path or os.environ.get("SATNOW_DB", DEFAULT_DB_PATH)
        if refresh_ms is None:
            refresh_ms = _env_number("SATNOW_REFRESH_MS", -1, int)
        if fetch_timeout is None:
            fetch_timeout = _env_number("SATNOW_FETCH_TIMEOUT", DEFAULT_TIMEOUT, float)

        return cls(
            observer=observer,
            db_path=str(Path(db_path).expanduser()),
            refresh_ms=refresh_ms,
            fetch_timeout=fetch_timeout,
            **kwargs,
        )

    def validate(self) -> Settings:
        """Check the observer position before any work starts.

        Raises:
            InvalidObserverError: If the observer is out of range.
        """
        if self.observer is not None:
            self.observer.validate()
        return self


def _env_number(name: str, default, convert):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return convert(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
