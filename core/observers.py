"""Observers: one display surface watching the high-severity count and driving the risk controller."""

import logging
import threading
from typing import Callable, Iterable, Optional

from core.aggregator import count_by_severity
from core.models import Incident, Severity
from core.risk_mode import RiskAssertion, RiskModeController

logger = logging.getLogger("saferoute.observers")


class HighSeverityObserver:
    """
    Holds at most one risk assertion: taken when the incidents it is shown contain a high-severity
    report, given back when they no longer do or when the observer is closed.
    """

    def __init__(self, controller: RiskModeController, name: str = "observer"):
        self.controller = controller
        self.name = name
        self._lock = threading.Lock()
        self._assertion: Optional[RiskAssertion] = None
        self._closed = False
        self.high_severity_count = 0

    @property
    def asserting(self) -> bool:
        return self._assertion is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def refresh(self, incidents: Iterable[Incident]) -> bool:
        """Re-evaluate against the current incident list. Returns whether risk is asserted."""
        high = count_by_severity(incidents, Severity.HIGH)
        with self._lock:
            if self._closed:
                return False
            self.high_severity_count = high
            if high > 0 and self._assertion is None:
                self._assertion = self.controller.acquire()
                logger.debug("observer %s asserting risk high=%d", self.name, high)
            elif high == 0 and self._assertion is not None:
                self._assertion.release()
                self._assertion = None
                logger.debug("observer %s released risk", self.name)
            return self._assertion is not None

    def close(self) -> None:
        """Teardown: release any outstanding assertion. Safe to call more than once."""
        with self._lock:
            self._closed = True
            if self._assertion is not None:
                self._assertion.release()
                self._assertion = None
                logger.debug("observer %s released risk on close", self.name)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class ObserverRegistry:
    """
    Observers currently mounted against one controller, refreshed together when incidents change.

    Reading the incident list and applying it to the observers happen under one lock, so a refresh
    that read an older list can never be applied after one that read a newer list.
    """

    def __init__(self, controller: RiskModeController):
        self.controller = controller
        self._lock = threading.Lock()
        self._refresh_lock = threading.RLock()
        self._observers: list[HighSeverityObserver] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._observers)

    def mount(self, name: str, fetch: Callable[[], Iterable[Incident]]) -> HighSeverityObserver:
        """
        Register a new observer, then evaluate it against fetch(). The observer is registered before
        the fetch, so a concurrent refresh_all either sees it or runs entirely before this one.
        If fetch raises, the observer is unmounted again and the error propagates.
        """
        observer = HighSeverityObserver(self.controller, name=name)
        with self._refresh_lock:
            with self._lock:
                self._observers.append(observer)
            try:
                observer.refresh(fetch())
            except BaseException:
                self.unmount(observer)
                raise
        logger.info("observer mounted name=%s asserting=%s", name, observer.asserting)
        return observer

    def unmount(self, observer: HighSeverityObserver) -> None:
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)
        observer.close()
        logger.info("observer unmounted name=%s", observer.name)

    def refresh_all(self, fetch: Callable[[], Iterable[Incident]]) -> None:
        """Read the current incidents with fetch() and re-evaluate every mounted observer against them."""
        with self._refresh_lock:
            snapshot = tuple(fetch())
            with self._lock:
                observers = list(self._observers)
            for observer in observers:
                observer.refresh(snapshot)

    def close_all(self) -> None:
        with self._lock:
            observers = list(self._observers)
            self._observers.clear()
        for observer in observers:
            observer.close()
