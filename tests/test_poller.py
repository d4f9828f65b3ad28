"""
tests/test_poller.py
────────────────────
Polling loop behaviour with a fake fetch function and a fake clock.
"""
import threading

import pytest

from monitor_client import ApiError, Poller, format_elapsed
from monitor_client.poller import CONTROL_INTERVAL, SURVEILLANCE_INTERVAL, control_poller, surveillance_poller
from monitor_client.session import Session


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class ScriptedFetch:
    """Returns (or raises) the queued outcomes in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def clock():
    return FakeClock()


def test_successful_poll_updates_state(clock):
    seen = []
    poller = Poller(ScriptedFetch({"temperature1": 40}), 5, on_update=seen.append, clock=clock)

    assert poller.poll() is True
    assert poller.state == {"temperature1": 40}
    assert seen == [{"temperature1": 40}]
    assert poller.seconds_since_update() == 0


def test_failed_poll_keeps_last_state(clock):
    poller = Poller(ScriptedFetch("first", ApiError("down", 503)), 5, clock=clock)
    poller.poll()
    clock.advance(7)

    assert poller.poll() is False
    assert poller.state == "first"
    assert poller.last_error.status_code == 503
    assert poller.seconds_since_update() == 7


def test_staleness_after_two_missed_intervals(clock):
    poller = Poller(ScriptedFetch("ok"), 5, clock=clock)
    assert poller.is_stale
    poller.poll()
    clock.advance(10)
    assert not poller.is_stale
    clock.advance(1)
    assert poller.is_stale


def test_refresh_is_debounced(clock):
    fetch = ScriptedFetch("a", "b", "c")
    poller = Poller(fetch, 30, clock=clock)

    assert poller.refresh() is True
    clock.advance(0.5)
    assert poller.refresh() is False
    clock.advance(0.6)
    assert poller.refresh() is True
    assert fetch.calls == 2
    assert poller.state == "b"


def test_other_errors_propagate(clock):
    poller = Poller(ScriptedFetch(KeyError("boom")), 5, clock=clock)
    with pytest.raises(KeyError):
        poller.poll()


def test_stop_ends_run_loop():
    poller = Poller(lambda: "tick", 0.01)
    worker = threading.Thread(target=poller.run)
    worker.start()
    poller.stop()
    worker.join(timeout=2)

    assert not worker.is_alive()
    assert poller.stopped


@pytest.mark.parametrize("seconds, expected", [
    (0, "0s"),
    (42, "42s"),
    (185, "3m 5s"),
    (7800, "2h 10m"),
])
def test_format_elapsed(seconds, expected):
    assert format_elapsed(seconds) == expected


def test_factories_use_view_intervals():
    session = Session("http://monitor.local/api", token="t")
    assert surveillance_poller(session, 3).interval == SURVEILLANCE_INTERVAL == 5.0
    assert control_poller(session, 3).interval == CONTROL_INTERVAL == 30.0
