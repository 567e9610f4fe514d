"""Unit tests for the lifecycle waiter."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from oci_peering_operator.models import CONNECT_PENDING, CONNECT_TARGET, CREATED_PENDING, CREATED_TARGET
from oci_peering_operator.sync.exceptions import (
    NotFoundError,
    OperationCancelledError,
    RemoteServiceError,
    TransientError,
    UnexpectedStateError,
    WaitTimeoutError,
)
from oci_peering_operator.sync.retry import PolicyFactory, RetryConfig
from oci_peering_operator.sync.waiter import LifecycleWaiter, peering_status_of

from .fakes import FakeClock, make_observed


def _fetch_sequence(*responses):
    fetch = MagicMock(side_effect=list(responses))
    return fetch


class TestWaitFor:
    """Test cases for LifecycleWaiter.wait_for."""

    def test_returns_first_target_observation(self, waiter, clock):
        """Test that two pending reads and one target read sleep exactly twice."""
        fetch = _fetch_sequence(
            make_observed("PROVISIONING"),
            make_observed("PROVISIONING"),
            make_observed("AVAILABLE", display_name="done"),
        )

        observed = waiter.wait_for(fetch, CREATED_PENDING, CREATED_TARGET, timeout=60)

        assert observed.lifecycle_state == "AVAILABLE"
        assert observed.display_name == "done"
        assert fetch.call_count == 3
        assert clock.sleeps == [1.0, 2.0]

    def test_target_on_first_read_does_not_sleep(self, waiter, clock):
        fetch = _fetch_sequence(make_observed("AVAILABLE"))

        waiter.wait_for(fetch, CREATED_PENDING, CREATED_TARGET, timeout=60)

        assert clock.sleeps == []

    def test_times_out_while_pending(self, waiter, clock):
        """Test that a permanently pending entity fails at the deadline, not before."""
        fetch = MagicMock(return_value=make_observed("PROVISIONING"))

        with pytest.raises(WaitTimeoutError) as exc_info:
            waiter.wait_for(fetch, CREATED_PENDING, CREATED_TARGET, timeout=10)

        assert clock.now >= 10
        assert clock.now == pytest.approx(10)
        assert all(delay <= 10 for delay in clock.sleeps)
        assert exc_info.value.observed == "PROVISIONING"
        assert exc_info.value.last_state.lifecycle_state == "PROVISIONING"
        assert "timed out" in str(exc_info.value)

    def test_unexpected_state_fails_immediately(self, waiter, clock):
        """Test that a state outside pending and target is never treated as transient."""
        fetch = _fetch_sequence(make_observed("PROVISIONING"), make_observed("TERMINATED"))

        with pytest.raises(UnexpectedStateError) as exc_info:
            waiter.wait_for(fetch, CREATED_PENDING, CREATED_TARGET, timeout=60)

        assert exc_info.value.observed == "TERMINATED"
        assert exc_info.value.expected == ["AVAILABLE", "PROVISIONING"]
        assert exc_info.value.last_state.lifecycle_state == "TERMINATED"
        assert fetch.call_count == 2
        assert clock.sleeps == [1.0]

    def test_polls_custom_state(self, waiter):
        """Test polling on the peering status instead of the lifecycle state."""
        fetch = _fetch_sequence(
            make_observed(peering_status="PENDING"),
            make_observed(peering_status="PEERED"),
        )

        observed = waiter.wait_for(
            fetch, CONNECT_PENDING, CONNECT_TARGET, timeout=60, state_of=peering_status_of
        )

        assert observed.is_peered

    def test_missing_state_is_unexpected(self, waiter):
        fetch = _fetch_sequence(make_observed(peering_status=None))

        with pytest.raises(UnexpectedStateError) as exc_info:
            waiter.wait_for(fetch, CONNECT_PENDING, CONNECT_TARGET, timeout=60, state_of=peering_status_of)

        assert exc_info.value.observed is None

    def test_transient_fetch_errors_are_retried(self, waiter, clock):
        fetch = _fetch_sequence(
            TransientError("throttled", status=429),
            make_observed("AVAILABLE"),
        )

        observed = waiter.wait_for(fetch, CREATED_PENDING, CREATED_TARGET, timeout=60)

        assert observed.lifecycle_state == "AVAILABLE"
        assert fetch.call_count == 2
        assert len(clock.sleeps) == 1

    def test_not_found_during_propagation_is_retried(self, waiter):
        """Test that a freshly created entity that is not yet visible is polled again."""
        fetch = _fetch_sequence(
            NotFoundError("missing", status=404),
            make_observed("PROVISIONING"),
            make_observed("AVAILABLE"),
        )

        observed = waiter.wait_for(fetch, CREATED_PENDING, CREATED_TARGET, timeout=60)

        assert observed.lifecycle_state == "AVAILABLE"

    def test_not_found_propagates_when_disabled(self, waiter, policies):
        fetch = _fetch_sequence(NotFoundError("missing", status=404))

        with pytest.raises(NotFoundError):
            waiter.wait_for(
                fetch, CREATED_PENDING, CREATED_TARGET, timeout=60,
                policy=policies.default(timeout=60, disable_not_found_retries=True),
            )

        assert fetch.call_count == 1

    def test_permanent_fetch_error_propagates(self, waiter, clock):
        """Test that a non-retryable error is raised unchanged without sleeping."""
        error = RemoteServiceError("not authorized", status=401)
        fetch = _fetch_sequence(error)

        with pytest.raises(RemoteServiceError) as exc_info:
            waiter.wait_for(fetch, CREATED_PENDING, CREATED_TARGET, timeout=60)

        assert exc_info.value is error
        assert clock.sleeps == []

    def test_fetch_errors_stop_at_deadline(self, waiter, clock):
        fetch = MagicMock(side_effect=TransientError("unavailable", status=503))

        with pytest.raises(TransientError):
            waiter.wait_for(fetch, CREATED_PENDING, CREATED_TARGET, timeout=10)

        assert clock.now == pytest.approx(10)

    def test_fetch_errors_after_pending_report_last_state(self, waiter, clock):
        """Test that a deadline hit during fetch errors still carries the last seen state."""
        error = TransientError("unavailable", status=503)
        pending = make_observed("PROVISIONING")
        responses = iter([pending])

        def fetch():
            try:
                return next(responses)
            except StopIteration:
                raise error from None

        with pytest.raises(WaitTimeoutError) as exc_info:
            waiter.wait_for(fetch, CREATED_PENDING, CREATED_TARGET, timeout=10)

        assert exc_info.value.last_state is pending
        assert exc_info.value.observed == "PROVISIONING"
        assert exc_info.value.__cause__ is error
        assert clock.now == pytest.approx(10)

    def test_permanent_fetch_error_after_pending_propagates(self, waiter):
        error = RemoteServiceError("forbidden", status=403)
        responses = iter([make_observed("PROVISIONING"), error])

        def fetch():
            item = next(responses)
            if isinstance(item, Exception):
                raise item
            return item

        with pytest.raises(RemoteServiceError) as exc_info:
            waiter.wait_for(fetch, CREATED_PENDING, CREATED_TARGET, timeout=60)

        assert exc_info.value is error

    def test_cancelled_before_first_fetch(self, clock, policies):
        cancel = threading.Event()
        cancel.set()
        waiter = LifecycleWaiter(policies.default(), clock=clock, sleep=clock.sleep, cancel_event=cancel)
        fetch = MagicMock()

        with pytest.raises(OperationCancelledError):
            waiter.wait_for(fetch, CREATED_PENDING, CREATED_TARGET, timeout=60)

        fetch.assert_not_called()

    def test_cancelled_while_sleeping(self, policies):
        """Test that setting the cancel event interrupts a pending wait."""
        clock = FakeClock()
        cancel = threading.Event()

        def sleep(seconds):
            clock.sleep(seconds)
            cancel.set()

        waiter = LifecycleWaiter(policies.default(), clock=clock, sleep=sleep, cancel_event=cancel)
        fetch = MagicMock(return_value=make_observed("PROVISIONING"))

        with pytest.raises(OperationCancelledError):
            waiter.wait_for(fetch, CREATED_PENDING, CREATED_TARGET, timeout=60)

        assert fetch.call_count == 1

    def test_real_wait_returns_early_on_cancel(self):
        """Test that the default sleep blocks on the cancel event."""
        cancel = threading.Event()
        cancel.set()
        waiter = LifecycleWaiter(PolicyFactory(RetryConfig(jitter=0.0)).default(), cancel_event=cancel)

        with pytest.raises(OperationCancelledError):
            waiter._pause(3600, "test")


class TestCall:
    """Test cases for LifecycleWaiter.call."""

    def test_returns_result(self, waiter):
        assert waiter.call(lambda: "ok") == "ok"

    def test_retries_transient_errors(self, waiter, clock):
        operation = MagicMock(side_effect=[TransientError("throttled"), TransientError("throttled"), "ok"])

        assert waiter.call(operation) == "ok"
        assert operation.call_count == 3
        assert clock.sleeps == [1.0, 2.0]

    def test_propagates_permanent_error(self, waiter):
        error = RemoteServiceError("bad request", status=400)
        operation = MagicMock(side_effect=error)

        with pytest.raises(RemoteServiceError) as exc_info:
            waiter.call(operation)

        assert exc_info.value is error
        assert operation.call_count == 1

    def test_gives_up_after_policy_timeout(self, waiter, clock, policies):
        operation = MagicMock(side_effect=TransientError("unavailable", status=503))

        with pytest.raises(TransientError):
            waiter.call(operation, policies.default(timeout=20))

        assert clock.now == pytest.approx(20)
