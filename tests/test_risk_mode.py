"""Tests for the risk controller: counting, flooring, interleavings, handles, listeners, teardown."""

import itertools
import logging
import threading

import pytest

from core.models import RiskMode
from core.risk_mode import RiskAssertion, RiskModeController


def _interleavings(n_observers: int, n_releasing: int):
    """
    Every order of n_observers asserts and n_releasing releases in which each releasing
    observer releases after its own assert.
    """
    events = [("assert", i) for i in range(n_observers)] + [("release", i) for i in range(n_releasing)]
    for order in set(itertools.permutations(events)):
        seen = set()
        valid = True
        for kind, obs in order:
            if kind == "assert":
                seen.add(obs)
            elif obs not in seen:
                valid = False
                break
        if valid:
            yield order


class TestCounting:
    def test_initial_state(self, controller):
        assert controller.current_mode() is RiskMode.DAY
        assert controller.assertion_count == 0

    def test_assert_assert_release_stays_risk(self, controller):
        controller.assert_risk()
        controller.assert_risk()
        controller.release_risk()
        assert controller.current_mode() is RiskMode.RISK
        assert controller.assertion_count == 1

    def test_extra_release_floors_at_zero(self, controller):
        controller.assert_risk()
        controller.release_risk()
        assert controller.release_risk() is RiskMode.DAY
        assert controller.current_mode() is RiskMode.DAY
        assert controller.assertion_count == 0

    def test_release_on_fresh_controller_is_noop(self, controller):
        controller.release_risk()
        controller.assert_risk()
        assert controller.current_mode() is RiskMode.RISK

    def test_snapshot(self, controller):
        controller.assert_risk()
        assert controller.snapshot() == {"mode": "risk", "assertions": 1}

    def test_instances_are_independent(self):
        a = RiskModeController(name="a")
        b = RiskModeController(name="b")
        a.assert_risk()
        assert a.current_mode() is RiskMode.RISK
        assert b.current_mode() is RiskMode.DAY


class TestInterleavings:
    @pytest.mark.parametrize("n,m", [(1, 0), (1, 1), (2, 1), (2, 2), (3, 1), (3, 2), (3, 3)])
    def test_final_mode_depends_only_on_counts(self, n, m):
        orders = list(_interleavings(n, m))
        assert orders
        for order in orders:
            c = RiskModeController()
            for kind, _ in order:
                if kind == "assert":
                    c.assert_risk()
                else:
                    c.release_risk()
            assert (c.current_mode() is RiskMode.RISK) == (n > m), order
            assert c.assertion_count == n - m

    def test_listener_never_sees_day_while_count_positive(self, controller):
        seen = []
        controller.subscribe(lambda mode, count: seen.append((mode, count, controller.assertion_count)))
        for op in ["a", "a", "r", "a", "r", "r", "r", "a", "r"]:
            if op == "a":
                controller.assert_risk()
            else:
                controller.release_risk()
        assert seen
        for mode, count, live_count in seen:
            assert count == live_count
            assert (mode is RiskMode.RISK) == (count > 0)
        # published modes alternate, no duplicate notifications
        modes = [m for m, _, _ in seen]
        assert all(a is not b for a, b in zip(modes, modes[1:]))

    def test_threads(self, controller):
        """Many concurrent acquire/release pairs leave the controller consistent and back at DAY."""
        violations = []

        def check(mode, count):
            if (mode is RiskMode.RISK) != (controller.assertion_count > 0):
                violations.append((mode, count))

        controller.subscribe(check)
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            for _ in range(200):
                with controller.acquire():
                    assert controller.current_mode() is RiskMode.RISK

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert violations == []
        assert controller.assertion_count == 0
        assert controller.current_mode() is RiskMode.DAY


class TestRiskAssertion:
    def test_acquire_asserts(self, controller):
        handle = controller.acquire()
        assert isinstance(handle, RiskAssertion)
        assert handle.active
        assert controller.current_mode() is RiskMode.RISK

    def test_release_is_idempotent(self, controller):
        other = controller.acquire()
        handle = controller.acquire()
        assert handle.release() is True
        assert handle.release() is False
        assert controller.assertion_count == 1
        other.release()
        assert controller.current_mode() is RiskMode.DAY

    def test_context_manager_releases_on_error(self, controller):
        with pytest.raises(RuntimeError):
            with controller.acquire():
                assert controller.current_mode() is RiskMode.RISK
                raise RuntimeError("observer crashed")
        assert controller.current_mode() is RiskMode.DAY


class TestSubscribe:
    def test_notified_only_on_mode_change(self, controller):
        events = []
        controller.subscribe(lambda mode, count: events.append((mode.value, count)))
        controller.assert_risk()
        controller.assert_risk()
        controller.release_risk()
        controller.release_risk()
        assert events == [("risk", 1), ("day", 0)]

    def test_replay_sends_current_state(self, controller):
        controller.assert_risk()
        events = []
        controller.subscribe(lambda mode, count: events.append((mode.value, count)), replay=True)
        assert events == [("risk", 1)]

    def test_unsubscribe(self, controller):
        events = []
        unsubscribe = controller.subscribe(lambda mode, count: events.append(mode))
        unsubscribe()
        unsubscribe()
        controller.assert_risk()
        assert events == []
        assert controller.listener_count == 0

    def test_failing_listener_does_not_block_others(self, controller, caplog):
        events = []

        def broken(mode, count):
            raise ValueError("boom")

        controller.subscribe(broken)
        controller.subscribe(lambda mode, count: events.append(mode))
        with caplog.at_level(logging.ERROR, logger="saferoute.risk_mode"):
            controller.assert_risk()
        assert events == [RiskMode.RISK]
        assert controller.assertion_count == 1
        assert "listener failed" in caplog.text

    def test_failing_replay_is_logged_and_listener_stays_subscribed(self, controller, caplog):
        calls = []

        def flaky(mode, count):
            calls.append((mode, count))
            if len(calls) == 1:
                raise RuntimeError("first delivery fails")

        with caplog.at_level(logging.ERROR, logger="saferoute.risk_mode"):
            unsubscribe = controller.subscribe(flaky, replay=True)
        assert callable(unsubscribe)
        assert "listener failed" in caplog.text
        assert controller.listener_count == 1

        controller.assert_risk()
        assert calls == [(RiskMode.DAY, 0), (RiskMode.RISK, 1)]


class TestTeardown:
    def test_teardown_resets_and_warns_on_leak(self, caplog):
        c = RiskModeController(name="leaky")
        events = []
        c.subscribe(lambda mode, count: events.append(mode))
        c.assert_risk()
        with caplog.at_level(logging.WARNING, logger="saferoute.risk_mode"):
            c.teardown()
        assert "outstanding assertion" in caplog.text
        assert c.current_mode() is RiskMode.DAY
        assert c.assertion_count == 0
        assert events == [RiskMode.RISK, RiskMode.DAY]
        assert c.listener_count == 0
