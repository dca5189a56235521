"""
Session Driver for the Zonna Territory Engine

Location fixes and the one-second timer arrive on different threads, but
the tracking session must see them strictly one at a time. The driver puts
every event (fix, tick, user action) on a single queue.Queue consumed by
one worker thread.

Threads:
- Worker thread: the only thread that touches the TrackingSession.
- Timer thread: posts a tick every ``session.tick_interval_s`` while a
  recording is active.
- Provider thread(s): whatever thread the location provider calls back on;
  they only enqueue.

Each event carries the generation it was produced in. ``discard`` and
``close`` bump the generation, so anything still queued for a discarded
recording is dropped instead of applied.
"""

import logging
import queue
import threading
from concurrent.futures import Future
from typing import Any, Callable, Optional
from .errors import LocationError, LocationPermissionDenied, SessionStateError
from .location import LocationProvider, Subscription
from .models import CaptureMode, ConquestRequest, GeoPoint
from .session import TrackingSession

logger = logging.getLogger(__name__)

_STOP = object()


class SessionDriver:
    """
    Owns a TrackingSession and serializes everything that mutates it.

    Typical use:
        driver = SessionDriver(session, provider)
        driver.open()
        driver.start()
        ...
        request = driver.finalize()
        driver.close()
    """

    def __init__(self, session: TrackingSession, provider: LocationProvider,
                 tick_interval_s: Optional[float] = None):
        self.session = session
        self.provider = provider
        self.tick_interval_s = (tick_interval_s if tick_interval_s is not None
                                else session.config.session.tick_interval_s)

        self._events: "queue.Queue" = queue.Queue()
        self._generation = 0
        self._gen_lock = threading.Lock()

        self._subscription: Optional[Subscription] = None
        self._worker: Optional[threading.Thread] = None
        self._timer: Optional[threading.Thread] = None
        self._timer_stop = threading.Event()
        self._running = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def is_open(self) -> bool:
        return self._running

    def open(self) -> None:
        """Start the worker thread and subscribe to the location provider."""
        if self._running:
            logger.warning("Session driver already open")
            return

        self._worker = threading.Thread(target=self._run, name="SessionWorkerThread", daemon=True)
        self._worker.start()
        self._running = True

        generation = self._current_generation()
        self._subscription = self.provider.subscribe(
            lambda fix: self._post("fix", generation, fix),
            lambda error: self._post("error", generation, error),
        )

        seed = self.provider.current_fix()
        if seed is not None:
            self._post("fix", generation, seed)
        logger.info("Session driver opened for %s", self.session.owner_id)

    def close(self) -> None:
        """
        Discard any active recording and release every resource.

        After close returns, no provider or timer callback reaches the
        session.
        """
        if not self._running:
            return

        self._bump_generation()
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        self._stop_timer()

        self._call(self.session.stop)
        self._events.put(_STOP)
        if self._worker is not None:
            self._worker.join(timeout=5.0)
            self._worker = None
        self._running = False
        logger.info("Session driver closed for %s", self.session.owner_id)

    # ------------------------------------------------------------------
    # User actions (run on the worker thread, block until applied)
    # ------------------------------------------------------------------
    def start(self, mode: Optional[CaptureMode] = None) -> GeoPoint:
        start_point = self._call(self.session.start, mode)
        self._start_timer()
        return start_point

    def discard(self) -> None:
        """Stop the recording without finalizing; queued events are dropped."""
        self._stop_timer()
        self._bump_generation()
        self._call(self.session.stop)
        self._resubscribe()

    def finalize(self) -> ConquestRequest:
        request = self._call(self.session.finalize)
        self._stop_timer()
        return request

    def snapshot(self) -> dict:
        return self._call(self.session.snapshot)

    def flush(self) -> None:
        """Block until every event queued so far has been applied."""
        self._call(lambda: None)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _current_generation(self) -> int:
        with self._gen_lock:
            return self._generation

    def _bump_generation(self) -> int:
        with self._gen_lock:
            self._generation += 1
            return self._generation

    def _resubscribe(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
        generation = self._current_generation()
        self._subscription = self.provider.subscribe(
            lambda fix: self._post("fix", generation, fix),
            lambda error: self._post("error", generation, error),
        )

    def _post(self, kind: str, generation: int, payload: Any = None) -> None:
        self._events.put((kind, generation, payload))

    def _call(self, fn: Callable, *args) -> Any:
        if not self._running:
            raise SessionStateError("Session driver is not open")
        future: Future = Future()
        self._events.put(("call", None, (fn, args, future)))
        return future.result()

    def _start_timer(self) -> None:
        self._stop_timer()
        self._timer_stop = threading.Event()
        generation = self._current_generation()
        self._timer = threading.Thread(
            target=self._tick_loop,
            args=(self._timer_stop, generation),
            name="SessionTimerThread",
            daemon=True,
        )
        self._timer.start()

    def _stop_timer(self) -> None:
        self._timer_stop.set()
        if self._timer is not None and self._timer is not threading.current_thread():
            self._timer.join(timeout=5.0)
        self._timer = None

    def _tick_loop(self, stop_event: threading.Event, generation: int) -> None:
        while not stop_event.wait(self.tick_interval_s):
            self._post("tick", generation)

    def _run(self) -> None:
        while True:
            event = self._events.get()
            if event is _STOP:
                break

            kind, generation, payload = event
            if kind == "call":
                fn, args, future = payload
                try:
                    future.set_result(fn(*args))
                except Exception as exc:
                    future.set_exception(exc)
                continue

            if generation != self._current_generation():
                logger.debug("Dropped stale %s event from generation %d", kind, generation)
                continue

            try:
                if kind == "fix":
                    self.session.on_fix(payload)
                elif kind == "tick":
                    self.session.tick()
                elif kind == "error":
                    self._handle_error(payload)
            except Exception:
                logger.exception("Session event %s failed", kind)

    def _handle_error(self, error: LocationError) -> None:
        if isinstance(error, LocationPermissionDenied):
            self.session.on_permission_denied()
        else:
            logger.warning("Location provider error: %s", error)
