#!/usr/bin/env python3
"""Tests for the batch printer and the interactive navigator."""
import curses
import io
import logging

import pandas as pd
import pytest
from rich.console import Console

from satnow.config import Settings
from satnow.display import (
    Action,
    BatchPresenter,
    InteractivePresenter,
    Session,
    State,
    handle,
    held_log_output,
    key_action,
    make_presenter,
)
from satnow.elements import ElementRecord
from satnow.propagation import Observer
from satnow.tracking import TrackingView

from conftest import FakePropagator, make_record

HOME = Observer(51.48, 0.0, 20.0)


def _session(ranges, clock, refresh_ms=-1, page_size=2):
    records = [make_record(i, name=f"SAT-{i}") for i in ranges]
    propagator = FakePropagator(ranges)
    view = TrackingView(HOME, records, propagator, clock=clock)
    view.refresh()
    return Session(view=view, refresh_ms=refresh_ms, page_size=page_size), propagator


class FakeScreen:
    """Just enough of a curses window to drive InteractivePresenter."""

    def __init__(self, keys, rows=24, cols=80):
        self.keys = list(keys)
        self.rows, self.cols = rows, cols
        self.text: list[str] = []
        self.timeouts: list[int] = []

    def getmaxyx(self):
        return self.rows, self.cols

    def keypad(self, flag):
        pass

    def timeout(self, ms):
        self.timeouts.append(ms)

    def erase(self):
        pass

    def refresh(self):
        pass

    def addstr(self, y, x, text, attr=0):
        self.text.append(text)

    def getch(self):
        return self.keys.pop(0)


class TestListing:
    def test_cursor_clamped_at_top(self, clock):
        session, _ = _session({1: 500.0, 2: 100.0, 3: 300.0}, clock)
        for _ in range(10):
            handle(session, Action.UP)
        assert session.cursor == 0
        assert session.state is State.LISTING

    def test_cursor_clamped_at_bottom(self, clock):
        session, _ = _session({1: 500.0, 2: 100.0, 3: 300.0}, clock)
        for _ in range(10):
            handle(session, Action.DOWN)
        assert session.cursor == 2

    def test_page_moves(self, clock):
        session, _ = _session({i: float(i) for i in range(1, 8)}, clock, page_size=3)
        handle(session, Action.PAGE_DOWN)
        assert session.cursor == 3
        handle(session, Action.PAGE_DOWN)
        handle(session, Action.PAGE_DOWN)
        assert session.cursor == 6
        handle(session, Action.PAGE_UP)
        assert session.cursor == 3

    def test_empty_view(self, clock):
        session, _ = _session({}, clock)
        handle(session, Action.DOWN)
        handle(session, Action.UP)
        assert session.cursor == 0
        handle(session, Action.SELECT)
        assert session.state is State.LISTING

    def test_refresh_keeps_position_not_satellite(self, clock):
        session, propagator = _session({1: 100.0, 2: 200.0, 3: 300.0}, clock)
        handle(session, Action.DOWN)
        assert session.current().catalog_id == 2

        propagator.ranges = {1: 100.0, 2: 900.0, 3: 50.0}
        handle(session, Action.REFRESH)
        assert session.cursor == 1
        assert session.current().catalog_id == 1

    def test_refresh_clamps_when_view_shrinks(self, clock):
        session, propagator = _session({1: 100.0, 2: 200.0, 3: 300.0}, clock)
        handle(session, Action.PAGE_DOWN)
        handle(session, Action.PAGE_DOWN)
        assert session.cursor == 2
        propagator.failing.update({2, 3})
        handle(session, Action.REFRESH)
        assert len(session.view) == 1
        assert session.cursor == 0

    def test_timeout_refreshes_when_enabled(self, clock):
        session, _ = _session({1: 100.0}, clock, refresh_ms=500)
        handle(session, Action.TIMEOUT)
        assert clock.calls == 2

    def test_timeout_ignored_when_disabled(self, clock):
        session, _ = _session({1: 100.0}, clock, refresh_ms=-1)
        handle(session, Action.TIMEOUT)
        assert clock.calls == 1

    def test_zero_refresh_is_enabled(self, clock):
        session, _ = _session({1: 100.0}, clock, refresh_ms=0)
        handle(session, Action.TIMEOUT)
        assert clock.calls == 2


class TestDetail:
    def test_select_and_back(self, clock):
        session, _ = _session({1: 500.0, 2: 100.0}, clock)
        handle(session, Action.DOWN)
        handle(session, Action.SELECT)
        assert session.state is State.DETAIL
        assert session.selected.catalog_id == 1

        handle(session, Action.BACK)
        assert session.state is State.LISTING
        assert session.cursor == 1

    def test_toggle(self, clock):
        session, _ = _session({1: 500.0}, clock)
        handle(session, Action.TOGGLE)
        assert session.state is State.DETAIL
        handle(session, Action.TOGGLE)
        assert session.state is State.LISTING

    def test_movement_ignored_in_detail(self, clock):
        session, _ = _session({1: 500.0, 2: 100.0}, clock)
        handle(session, Action.SELECT)
        handle(session, Action.DOWN)
        assert session.cursor == 0
        assert session.state is State.DETAIL

    def test_back_does_not_refresh(self, clock):
        session, _ = _session({1: 500.0}, clock)
        handle(session, Action.SELECT)
        handle(session, Action.BACK)
        assert clock.calls == 1

    def test_refresh_updates_selected_bearing(self, clock):
        session, propagator = _session({1: 500.0, 2: 100.0}, clock)
        handle(session, Action.SELECT)
        propagator.ranges[2] = 1000.0
        handle(session, Action.REFRESH)
        assert session.state is State.DETAIL
        assert session.selected.catalog_id == 2
        assert session.selected.bearing.range == 1000.0

    def test_selected_kept_when_it_drops_out(self, clock):
        session, propagator = _session({1: 500.0, 2: 100.0}, clock)
        handle(session, Action.SELECT)
        propagator.failing.add(2)
        handle(session, Action.REFRESH)
        assert session.selected.catalog_id == 2
        assert session.selected.bearing.range == 100.0


class TestQuit:
    @pytest.mark.parametrize("first", [None, Action.SELECT])
    def test_quit_from_any_state(self, clock, first):
        session, _ = _session({1: 500.0}, clock)
        if first:
            handle(session, first)
        handle(session, Action.QUIT)
        assert session.state is State.TERMINATED
        assert not session.running


class TestKeys:
    def test_bindings(self):
        assert key_action(ord("q")) is Action.QUIT
        assert key_action(ord(" ")) is Action.REFRESH
        assert key_action(curses.KEY_DOWN) is Action.DOWN
        assert key_action(curses.KEY_NPAGE) is Action.PAGE_DOWN
        assert key_action(ord("d")) is Action.TOGGLE
        assert key_action(curses.ERR) is Action.TIMEOUT
        assert key_action(ord("z")) is None


class TestInteractivePresenter:
    def test_drives_session_until_quit(self, clock):
        session, _ = _session({1: 500.0, 2: 100.0}, clock)
        screen = FakeScreen([curses.KEY_DOWN, ord("d"), ord("d"), curses.ERR, ord("z"), ord("q")])
        InteractivePresenter(refresh_ms=250)._run(screen, session.view)

        assert screen.timeouts == [250]
        assert screen.keys == []
        assert clock.calls == 2
        assert any("satnow" in t for t in screen.text)
        assert any(t.startswith("Name : SAT-1") for t in screen.text)
        assert any("Inclination" in t for t in screen.text)

    def test_blocks_without_refresh(self, clock):
        session, _ = _session({1: 500.0}, clock)
        screen = FakeScreen([ord("q")])
        InteractivePresenter(refresh_ms=-5)._run(screen, session.view)
        assert screen.timeouts == [-1]

    def test_small_terminal(self, clock):
        session, _ = _session({i: float(i) for i in range(1, 30)}, clock)
        screen = FakeScreen([curses.KEY_NPAGE] * 5 + [ord("q")], rows=8, cols=20)
        InteractivePresenter()._run(screen, session.view)
        assert all(len(t) <= 19 for t in screen.text)


class TestBatchPresenter:
    def test_prints_in_range_order(self, clock):
        session, _ = _session({1: 500.0, 2: 100.0, 3: 300.0}, clock)
        buf = io.StringIO()
        BatchPresenter(console=Console(file=buf, width=120)).render(session.view)
        out = buf.getvalue()
        assert out.index("SAT-2") < out.index("SAT-3") < out.index("SAT-1")
        assert "3 satellites" in out

    def test_csv_output(self, clock, tmp_path):
        session, _ = _session({1: 500.0, 2: 100.0}, clock)
        path = tmp_path / "out.csv"
        BatchPresenter(console=Console(file=io.StringIO()), output=path).render(session.view)
        df = pd.read_csv(path)
        assert list(df["range_km"]) == [100.0, 500.0]
        assert list(df["name"]) == ["SAT-2", "SAT-1"]


class TestMakePresenter:
    def test_selects_by_settings(self):
        assert isinstance(make_presenter(Settings()), BatchPresenter)
        presenter = make_presenter(Settings(interactive=True, refresh_ms=750))
        assert isinstance(presenter, InteractivePresenter)
        assert presenter.refresh_ms == 750


def _bad_checksum(record: ElementRecord) -> ElementRecord:
    digit = (int(record.line1[68]) + 1) % 10
    return ElementRecord(record.name, record.line1[:68] + str(digit), record.line2)


@pytest.fixture
def console_log():
    """A stream handler on the root logger, like the one basicConfig installs."""
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setLevel(logging.WARNING)
    root = logging.getLogger()
    root.addHandler(handler)
    yield stream
    root.removeHandler(handler)


class TestLogOutputDuringCurses:
    def test_nothing_written_while_screen_is_up(self, clock, console_log, monkeypatch):
        records = [_bad_checksum(make_record(1, name="BAD SUM")), make_record(2, name="GONE")]
        propagator = FakePropagator({1: 500.0, 2: 100.0})
        propagator.failing.add(2)
        view = TrackingView(HOME, records, propagator, clock=clock)
        view.refresh()

        seen = []

        class WatchedScreen(FakeScreen):
            def getch(self):
                seen.append(console_log.getvalue())
                return super().getch()

        screen = WatchedScreen([ord("d")] + [curses.ERR] * 5 + [ord("q")])
        monkeypatch.setattr(curses, "wrapper", lambda fn, *args: fn(screen, *args))
        console_log.truncate(0)
        console_log.seek(0)

        InteractivePresenter(refresh_ms=100).render(view)

        assert clock.calls == 6
        assert seen == [""] * 7
        out = console_log.getvalue()
        assert out.count("Checksum mismatch on line 1") == 1
        assert out.count("Skipping") == 1
        assert any(t.startswith("Name : BAD SUM") for t in screen.text)

    def test_handlers_restored(self):
        root = logging.getLogger()
        before = list(root.handlers)
        with held_log_output():
            logging.getLogger("satnow.test").warning("held")
        assert set(root.handlers) == set(before)
        assert len(root.handlers) == len(before)

    def test_detail_decodes_elements_once(self, clock, monkeypatch):
        session, _ = _session({1: 500.0}, clock, refresh_ms=0)
        calls = []
        original = ElementRecord.elements

        def counting(self):
            calls.append(self.catalog_id)
            return original(self)

        monkeypatch.setattr(ElementRecord, "elements", counting)
        screen = FakeScreen([ord("d")] + [curses.ERR] * 3 + [ord("q")])
        InteractivePresenter(refresh_ms=0)._run(screen, session.view)
        assert calls == [1]
        assert sum(t.lstrip().startswith("Inclination") for t in screen.text) == 4
