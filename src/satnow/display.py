"""Presenting the tracking view.

Two presenters share one interface:

    * ``BatchPresenter`` prints the view once as a table and returns.
    * ``InteractivePresenter`` runs a curses list/detail navigator that
      refreshes the view on a timer.

The navigator's behavior lives in ``Session`` and ``handle()``, a small state
machine with no terminal dependency; the curses code only draws the session
and turns key codes into ``Action`` values.

Keys::

    q                quit
    space, r         refresh now
    up/down, k/j     move one row
    PgUp/PgDn        move one page
    d                toggle details
    Enter            show details
    Esc, b, Bksp     back to the list
"""

from __future__ import annotations

import curses
import logging
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Iterator, Optional, Protocol

from rich.console import Console
from rich.table import Table
from rich import box

from . import __version__
from .config import Settings
from .tracking import TrackingEntry, TrackingView

logger = logging.getLogger(__name__)


class Presenter(Protocol):
    def render(self, view: TrackingView) -> None:
        ...


def make_presenter(settings: Settings, console: Optional[Console] = None) -> Presenter:
    """Pick the presenter ``settings`` asks for."""
    if settings.interactive:
        return InteractivePresenter(refresh_ms=settings.refresh_ms)
    return BatchPresenter(console=console, output=settings.output)


def entry_rows(view: TrackingView) -> list[dict]:
    """Flat rows for each entry, in view order."""
    return [
        {
            "rank": i,
            "norad_id": e.record.line1[2:7].strip(),
            "name": e.record.name or "",
            "azimuth_deg": e.bearing.azimuth,
            "elevation_deg": e.bearing.elevation,
            "range_km": e.bearing.range,
        }
        for i, e in enumerate(view, start=1)
    ]


# ═══════════════════════════════════════════════════════════════
# BATCH
# ═══════════════════════════════════════════════════════════════


class BatchPresenter:
    """Prints every entry once, closest first."""

    def __init__(
        self,
        console: Optional[Console] = None,
        output: Optional[str | Path] = None,
    ):
        self.console = console or Console()
        self.output = output

    def render(self, view: TrackingView) -> None:
        when = f"{view.timestamp:%Y-%m-%d %H:%M:%S} UTC" if view.timestamp else "-"
        table = Table(
            title=f"Look angles from {view.observer} at {when}",
            box=box.SIMPLE_HEAVY,
        )
        table.add_column("#", justify="right")
        table.add_column("NORAD", justify="right", style="cyan")
        table.add_column("NAME")
        table.add_column("AZIMUTH", justify="right")
        table.add_column("ELEVATION", justify="right")
        table.add_column("RANGE (KM)", justify="right")

        for row in entry_rows(view):
            color = "green" if row["elevation_deg"] > 0 else "dim"
            table.add_row(
                str(row["rank"]),
                row["norad_id"],
                row["name"],
                f"{row['azimuth_deg']:.2f}",
                f"[{color}]{row['elevation_deg']:.2f}[/{color}]",
                f"{row['range_km']:.1f}",
            )

        self.console.print(table)
        self.console.print(f"{len(view)} satellites")

        if self.output:
            import pandas as pd

            df = pd.DataFrame(entry_rows(view))
            df.to_csv(self.output, index=False)
            self.console.print(f"Results saved to {self.output}")


# ═══════════════════════════════════════════════════════════════
# INTERACTIVE STATE MACHINE
# ═══════════════════════════════════════════════════════════════


class State(Enum):
    LISTING = auto()
    DETAIL = auto()
    TERMINATED = auto()


class Action(Enum):
    UP = auto()
    DOWN = auto()
    PAGE_UP = auto()
    PAGE_DOWN = auto()
    SELECT = auto()
    BACK = auto()
    TOGGLE = auto()
    REFRESH = auto()
    TIMEOUT = auto()
    QUIT = auto()


@dataclass
class Session:
    """State of one interactive run.

    Attributes:
        view: The tracking view being navigated.
        refresh_ms: Refresh period; a timeout only refreshes when >= 0.
        page_size: Rows moved by PAGE_UP/PAGE_DOWN.
        state: Current screen.
        cursor: Index of the highlighted entry.
        selected: Entry shown on the detail screen.
        fields: Decoded elements of the selected entry.
    """

    view: TrackingView
    refresh_ms: int = -1
    page_size: int = 10
    state: State = State.LISTING
    cursor: int = 0
    selected: Optional[TrackingEntry] = None
    fields: list[tuple[str, str]] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.view)

    @property
    def running(self) -> bool:
        return self.state is not State.TERMINATED

    def current(self) -> Optional[TrackingEntry]:
        return self.view[self.cursor] if self.size else None

    def move(self, delta: int) -> None:
        """Move the cursor, clamped to the view."""
        self.cursor = _clamp(self.cursor + delta, self.size)

    def select(self, entry: TrackingEntry) -> None:
        """Show ``entry`` on the detail screen, decoding its elements once."""
        self.selected = entry
        try:
            self.fields = entry.record.elements().fields()
        except ValueError as e:
            self.fields = [("Elements", f"unreadable ({e})")]
        self.state = State.DETAIL

    def refresh(self) -> None:
        """Recompute the view, keeping the cursor's position index.

        The cursor stays on the same row, not the same satellite, so it may
        land on a different satellite when the ordering changes.
        """
        self.view.refresh()
        self.cursor = _clamp(self.cursor, self.size)
        if self.selected is not None:
            i = self.view.find(self.selected.catalog_id)
            if i is not None:
                self.selected = self.view[i]


def handle(session: Session, action: Action) -> Session:
    """Apply one action to ``session`` and return it."""
    if action is Action.QUIT:
        session.state = State.TERMINATED
        return session

    if action is Action.TIMEOUT:
        if session.refresh_ms < 0:
            return session
        action = Action.REFRESH

    if action is Action.REFRESH:
        if session.running:
            session.refresh()
        return session

    if session.state is State.LISTING:
        if action is Action.UP:
            session.move(-1)
        elif action is Action.DOWN:
            session.move(1)
        elif action is Action.PAGE_UP:
            session.move(-session.page_size)
        elif action is Action.PAGE_DOWN:
            session.move(session.page_size)
        elif action in (Action.SELECT, Action.TOGGLE):
            entry = session.current()
            if entry is not None:
                session.select(entry)
    elif session.state is State.DETAIL:
        if action in (Action.BACK, Action.TOGGLE):
            session.state = State.LISTING

    return session


def _clamp(index: int, size: int) -> int:
    return max(0, min(index, size - 1))


# ═══════════════════════════════════════════════════════════════
# CURSES DRIVER
# ═══════════════════════════════════════════════════════════════

KEY_ACTIONS = {
    ord("q"): Action.QUIT,
    ord("Q"): Action.QUIT,
    ord(" "): Action.REFRESH,
    ord("r"): Action.REFRESH,
    curses.KEY_UP: Action.UP,
    ord("k"): Action.UP,
    curses.KEY_DOWN: Action.DOWN,
    ord("j"): Action.DOWN,
    curses.KEY_PPAGE: Action.PAGE_UP,
    curses.KEY_NPAGE: Action.PAGE_DOWN,
    ord("d"): Action.TOGGLE,
    ord("\n"): Action.SELECT,
    curses.KEY_ENTER: Action.SELECT,
    27: Action.BACK,
    ord("b"): Action.BACK,
    curses.KEY_BACKSPACE: Action.BACK,
    curses.ERR: Action.TIMEOUT,
}

COLUMNS = f"{'ID':<10}{'NAME':<25}{'AZIMUTH':>12}{'ELEVATION':>12}{'RANGE (KM)':>14}"
LEGEND = "[Quit: (q)] [Update: (space)] [Movement: (pg)up/(pg)down] [Details: (d)]"


def key_action(key: int) -> Optional[Action]:
    """Action bound to a curses key code, or None."""
    return KEY_ACTIONS.get(key)


class InteractivePresenter:
    """Curses list/detail navigator.

    Args:
        refresh_ms: Milliseconds to wait for a key before refreshing the
            view. Negative waits indefinitely and refreshes only on request.
    """

    def __init__(self, refresh_ms: int = -1):
        self.refresh_ms = refresh_ms

    def render(self, view: TrackingView) -> None:
        # curses.wrapper restores the terminal on every exit path
        with held_log_output():
            curses.wrapper(self._run, view)

    def _run(self, stdscr, view: TrackingView) -> None:
        try:
            curses.curs_set(0)
        except curses.error:
            pass
        stdscr.keypad(True)
        stdscr.timeout(self.refresh_ms if self.refresh_ms >= 0 else -1)

        session = Session(view=view, refresh_ms=self.refresh_ms)
        while session.running:
            self.draw(stdscr, session)
            action = key_action(stdscr.getch())
            if action is not None:
                handle(session, action)

    def draw(self, stdscr, session: Session) -> None:
        stdscr.erase()
        rows, cols = stdscr.getmaxyx()
        session.page_size = max(1, rows - 5)
        if session.state is State.DETAIL and session.selected is not None:
            self._draw_detail(stdscr, session.selected, session)
        else:
            self._draw_listing(stdscr, session, rows, cols)
        stdscr.refresh()

    def _draw_listing(self, stdscr, session: Session, rows: int, cols: int) -> None:
        view = session.view
        title = f"}}-- satnow {__version__} --{{"
        safe_addstr(stdscr, 0, max(0, (cols - len(title)) // 2), title)
        safe_addstr(stdscr, 1, 3, COLUMNS)

        visible = session.page_size
        top = (session.cursor // visible) * visible
        for row, i in enumerate(range(top, min(top + visible, len(view))), start=2):
            entry = view[i]
            mark = "->" if i == session.cursor else "  "
            b = entry.bearing
            line = (
                f"{mark} {i:<7}{(entry.record.name or entry.record.line1[2:7].strip()):<25}"
                f"{b.azimuth:>12.2f}{b.elevation:>12.2f}{b.range:>14.1f}"
            )
            attr = curses.A_REVERSE if i == session.cursor else curses.A_NORMAL
            safe_addstr(stdscr, row, 1, line, attr)

        if not len(view):
            safe_addstr(stdscr, 2, 3, "No satellites in the catalog.")

        safe_addstr(stdscr, rows - 2, 1, "-" * max(0, cols - 2))
        when = f"{view.timestamp:%H:%M:%S} UTC" if view.timestamp else ""
        safe_addstr(stdscr, rows - 1, 1, f"{LEGEND}  {when}")

    def _draw_detail(self, stdscr, entry: TrackingEntry, session: Session) -> None:
        _, cols = stdscr.getmaxyx()
        record = entry.record
        row = 1
        if record.name:
            safe_addstr(stdscr, row, 1, f"Name : {record.name}")
        else:
            safe_addstr(stdscr, row, 1, f"Name : {record.line1[2:7].strip()} (NORAD ID)")
        safe_addstr(stdscr, row + 1, 1, f"Line1: {record.line1}")
        safe_addstr(stdscr, row + 2, 1, f"Line2: {record.line2}")
        safe_addstr(stdscr, row + 3, 1, "-" * max(0, cols - 2))
        row += 5

        b = entry.bearing
        fields = session.fields + [
            ("Azimuth (degs)", f"{b.azimuth:.4f}"),
            ("Elevation (degs)", f"{b.elevation:.4f}"),
            ("Range (km)", f"{b.range:.3f}"),
        ]
        width = max(len(label) for label, _ in fields)
        for label, value in fields:
            safe_addstr(stdscr, row, 1, f"{label:>{width}}: {value}")
            row += 1

        safe_addstr(stdscr, row + 1, 1, "[Back: (d/b/esc)] [Update: (space)] [Quit: (q)]")


def safe_addstr(win, y: int, x: int, text: str, attr: int = 0) -> None:
    """Write ``text`` clipped to the window; curses raises on the last cell."""
    height, width = win.getmaxyx()
    if y >= height or x >= width:
        return
    trimmed = text[: max(0, width - x - 1)]
    if trimmed:
        try:
            win.addstr(y, x, trimmed, attr)
        except curses.error:
            pass


class _HeldRecords(logging.Handler):
    """Keeps the most recent log records instead of emitting them."""

    def __init__(self, capacity: int = 200):
        super().__init__(logging.NOTSET)
        self.records: deque[logging.LogRecord] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@contextmanager
def held_log_output() -> Iterator[_HeldRecords]:
    """Hold back console log output while a curses screen owns the terminal.

    The root logger's stream handlers are swapped for a buffer and restored on
    exit, then each distinct held record is passed to them once. File
    handlers keep writing as usual.
    """
    root = logging.getLogger()
    streams = [
        h for h in root.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]
    held = _HeldRecords()
    for h in streams:
        root.removeHandler(h)
    root.addHandler(held)
    try:
        yield held
    finally:
        root.removeHandler(held)
        for h in streams:
            root.addHandler(h)
        seen = set()
        for record in held.records:
            key = (record.name, record.levelno, record.getMessage())
            if key in seen:
                continue
            seen.add(key)
            for h in streams:
                if record.levelno >= h.level:
                    h.handle(record)
