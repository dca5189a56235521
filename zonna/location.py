"""
Location Provider Contract for the Zonna Territory Engine

The location provider is external: it pushes RawFix events to subscribers
and exposes a one-shot "current fix" call. Permission denial is reported
through the subscriber's error callback and is terminal.

``ReplayLocationProvider`` implements the contract over a recorded list of
fixes; tests and offline replays drive sessions with it.
"""

import threading
from typing import Callable, Dict, Iterable, List, Optional, Protocol
from .errors import LocationError, LocationPermissionDenied
from .models import RawFix

FixCallback = Callable[[RawFix], None]
ErrorCallback = Callable[[LocationError], None]


class Subscription(Protocol):
    def cancel(self) -> None:
        ...


class LocationProvider(Protocol):
    def subscribe(self, on_fix: FixCallback,
                  on_error: Optional[ErrorCallback] = None) -> Subscription:
        ...

    def current_fix(self) -> Optional[RawFix]:
        ...


class _ReplaySubscription:
    def __init__(self, provider: "ReplayLocationProvider", token: int):
        self._provider = provider
        self._token = token

    def cancel(self) -> None:
        self._provider._remove(self._token)


class ReplayLocationProvider:
    """
    In-process provider that pushes recorded fixes on demand.

    Callbacks run on the thread calling ``push`` / ``replay``. A cancelled
    subscription never receives another callback.
    """

    def __init__(self, fixes: Optional[Iterable[RawFix]] = None):
        self._fixes: List[RawFix] = list(fixes or [])
        self._subscribers: Dict[int, tuple] = {}
        self._next_token = 0
        self._last_fix: Optional[RawFix] = None
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self, on_fix: FixCallback,
                  on_error: Optional[ErrorCallback] = None) -> _ReplaySubscription:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subscribers[token] = (on_fix, on_error)
        return _ReplaySubscription(self, token)

    def current_fix(self) -> Optional[RawFix]:
        return self._last_fix

    def push(self, fix: RawFix) -> None:
        """Deliver one fix to every live subscriber."""
        self._last_fix = fix
        for on_fix, _ in self._snapshot():
            on_fix(fix)

    def replay(self) -> int:
        """Push every recorded fix in order. Returns the number pushed."""
        for fix in self._fixes:
            self.push(fix)
        return len(self._fixes)

    def deny_permission(self) -> None:
        """Report a permission denial to every subscriber."""
        error = LocationPermissionDenied("Location permission denied")
        for _, on_error in self._snapshot():
            if on_error is not None:
                on_error(error)

    def _snapshot(self) -> List[tuple]:
        with self._lock:
            return list(self._subscribers.values())

    def _remove(self, token: int) -> None:
        with self._lock:
            self._subscribers.pop(token, None)
