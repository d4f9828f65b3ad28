"""
Fixed-interval polling for the live dashboard views.

A ``Poller`` owns one fetch function and the last state it produced. It
runs on the calling thread: ``run()`` polls, sleeps for the interval and
polls again until ``stop()`` is called. A failed poll keeps the previous
state and leaves the "last updated" clock alone, so staleness shows up in
``seconds_since_update()`` instead of as an error.
"""
import logging
import threading
import time
from dataclasses import dataclass
from functools import partial

from . import api
from .exceptions import ApiError

logger = logging.getLogger(__name__)

SURVEILLANCE_INTERVAL = 5.0
CONTROL_INTERVAL = 30.0
REFRESH_DEBOUNCE = 1.0


class Poller:
    def __init__(self, fetch, interval, on_update=None, debounce=REFRESH_DEBOUNCE, clock=time.monotonic, name=None):
        self.fetch = fetch
        self.interval = interval
        self.on_update = on_update
        self.debounce = debounce
        self.clock = clock
        self.name = name or getattr(fetch, "__name__", "poller")

        self.state = None
        self.last_updated = None
        self.last_error = None
        self._last_refresh = None
        self._stopped = threading.Event()

    def poll(self):
        """
        Fetch once. Returns True when the state was replaced.
        """
        try:
            state = self.fetch()
        except ApiError as exc:
            self.last_error = exc
            logger.warning("%s: poll failed, keeping last state (%s)", self.name, exc.message)
            return False

        self.state = state
        self.last_updated = self.clock()
        self.last_error = None
        if self.on_update is not None:
            self.on_update(state)
        return True

    def refresh(self):
        """
        Manual refresh. Calls inside the debounce window are dropped and
        return False.
        """
        now = self.clock()
        if self._last_refresh is not None and now - self._last_refresh < self.debounce:
            return False
        self._last_refresh = now
        self.poll()
        return True

    def seconds_since_update(self):
        if self.last_updated is None:
            return None
        return int(self.clock() - self.last_updated)

    @property
    def is_stale(self):
        """True once more than two intervals went by without a good poll."""
        elapsed = self.seconds_since_update()
        return elapsed is None or elapsed > 2 * self.interval

    def run(self):
        """Poll immediately, then every ``interval`` seconds until stopped."""
        while not self._stopped.is_set():
            self.poll()
            if self._stopped.wait(self.interval):
                break

    def stop(self):
        """Clear the timer. A request already in flight is not cancelled."""
        self._stopped.set()

    @property
    def stopped(self):
        return self._stopped.is_set()


def format_elapsed(seconds):
    """Render a staleness counter: ``42s``, ``3m 5s``, ``2h 10m``."""
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


@dataclass
class ControlSnapshot:
    status: object
    history: list


def _fetch_control(session, machine_id):
    status = api.get_machine_status(session, machine_id)
    try:
        history = api.get_machine_status_history(session, machine_id)
    except ApiError as exc:
        logger.warning("Status history unavailable for machine %s: %s", machine_id, exc.message)
        history = []
    return ControlSnapshot(status=status, history=history)


def surveillance_poller(session, machine_id, **kwargs):
    """Latest sensor reading of one machine, every 5 seconds."""
    fetch = partial(api.get_latest_sensor_data, session, machine_id)
    return Poller(fetch, SURVEILLANCE_INTERVAL, name=f"surveillance:{machine_id}", **kwargs)


def control_poller(session, machine_id, **kwargs):
    """Current status and status history of one machine, every 30 seconds."""
    fetch = partial(_fetch_control, session, machine_id)
    return Poller(fetch, CONTROL_INTERVAL, name=f"control:{machine_id}", **kwargs)
