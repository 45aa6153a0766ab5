"""
Reference-counted ambient risk mode.

Observers assert risk while they see a high-severity incident and release when they stop
seeing one (or go away). Mode is RISK iff the outstanding assertion count is > 0.

Every count change, the resulting mode and the notification of subscribers happen under one
re-entrant lock, so a reader never sees a mode that disagrees with the count. Extra releases
are floored at zero: observers may tear down in any order.
"""

import itertools
import logging
import threading
from typing import Callable

from core.models import RiskMode

logger = logging.getLogger("saferoute.risk_mode")

ModeListener = Callable[[RiskMode, int], None]


class RiskAssertion:
    """One outstanding assert_risk(). release() is idempotent; use as a context manager to scope it."""

    def __init__(self, controller: "RiskModeController"):
        self._controller = controller
        self._lock = threading.Lock()
        self._active = True
        controller.assert_risk()

    @property
    def active(self) -> bool:
        return self._active

    def release(self) -> bool:
        """Release once. Returns False if this handle was already released."""
        with self._lock:
            if not self._active:
                return False
            self._active = False
        self._controller.release_risk()
        return True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False


class RiskModeController:
    """
    Shared ambient mode for one application. Created at startup, handed to every observer,
    torn down at shutdown. Tests create as many independent instances as they need.
    """

    def __init__(self, name: str = "default"):
        self.name = name
        self._lock = threading.RLock()
        self._count = 0
        self._mode = RiskMode.DAY
        self._listeners: dict[int, ModeListener] = {}
        self._ids = itertools.count(1)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------
    def current_mode(self) -> RiskMode:
        with self._lock:
            return self._mode

    @property
    def assertion_count(self) -> int:
        with self._lock:
            return self._count

    def snapshot(self) -> dict:
        """Mode and count read together."""
        with self._lock:
            return {"mode": self._mode.value, "assertions": self._count}

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------
    def assert_risk(self) -> RiskMode:
        with self._lock:
            self._count += 1
            return self._apply()

    def release_risk(self) -> RiskMode:
        with self._lock:
            if self._count == 0:
                logger.debug("release_risk with no outstanding assertion controller=%s (ignored)", self.name)
                return self._mode
            self._count -= 1
            return self._apply()

    def acquire(self) -> RiskAssertion:
        """Assert risk and return the handle that undoes it."""
        return RiskAssertion(self)

    def _apply(self) -> RiskMode:
        # Caller holds self._lock.
        mode = RiskMode.RISK if self._count > 0 else RiskMode.DAY
        if mode is not self._mode:
            self._mode = mode
            logger.info("risk mode -> %s controller=%s assertions=%d", mode.value, self.name, self._count)
            self._publish(mode, self._count)
        return mode

    def _publish(self, mode: RiskMode, count: int) -> None:
        for listener in list(self._listeners.values()):
            self._notify(listener, mode, count)

    def _notify(self, listener: ModeListener, mode: RiskMode, count: int) -> None:
        try:
            listener(mode, count)
        except Exception:
            logger.exception("risk mode listener failed controller=%s", self.name)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------
    def subscribe(self, listener: ModeListener, *, replay: bool = False) -> Callable[[], None]:
        """
        Call listener(mode, assertions) on every mode change. Returns an unsubscribe function.
        With replay=True the listener is first called with the current state, under the same lock,
        so it cannot miss a transition between reading and subscribing.
        """
        with self._lock:
            token = next(self._ids)
            self._listeners[token] = listener
            if replay:
                self._notify(listener, self._mode, self._count)

        def unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(token, None)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    def teardown(self) -> None:
        """Drop listeners and reset to DAY. Outstanding assertions at this point are leaks."""
        with self._lock:
            if self._count > 0:
                logger.warning("risk controller %s torn down with %d outstanding assertion(s)", self.name, self._count)
            self._count = 0
            self._apply()
            self._listeners.clear()
