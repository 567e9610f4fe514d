"""Poll loop that waits for a remote entity to reach a target state."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Iterable, TypeVar

from .. import metrics
from ..models import ObservedState
from .exceptions import OperationCancelledError, UnexpectedStateError, WaitTimeoutError
from .retry import Outcome, RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


def lifecycle_state_of(observed: ObservedState) -> str:
    return observed.lifecycle_state


def peering_status_of(observed: ObservedState) -> str | None:
    return observed.peering_status


class LifecycleWaiter:
    """Polls a fetch operation until a target state, a failure or the deadline.

    The waiter holds no per-call state, so one instance can be shared by many
    synchronizers. ``clock`` and ``sleep`` are injectable for tests; when no
    ``sleep`` is given the waiter blocks on ``cancel_event`` so that setting the
    event interrupts the wait immediately.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self.clock = clock
        self._sleep = sleep
        self.cancel_event = cancel_event or threading.Event()

    def wait_for(
        self,
        fetch: Callable[[], ObservedState],
        pending: Iterable[str],
        target: Iterable[str],
        timeout: float,
        state_of: Callable[[ObservedState], Any] = lifecycle_state_of,
        policy: RetryPolicy | None = None,
        operation: str = "wait",
    ) -> ObservedState:
        """Poll ``fetch`` until its state is in ``target``.

        Args:
            fetch: Read-equivalent operation returning the current state
            pending: States that mean "keep polling"
            target: States that mean success
            timeout: Seconds from the first fetch after which polling stops
            state_of: Extracts the polled state from an observation
            policy: Retry policy for fetch errors and pending payloads
            operation: Label for logs and metrics

        Returns:
            The first observation whose state is in ``target``

        Raises:
            WaitTimeoutError: If still pending when the timeout elapses
            UnexpectedStateError: If a state outside pending and target is observed
            OperationCancelledError: If the cancel event is set while waiting
        """
        policy = policy or self.policy
        pending_set = frozenset(str(value) for value in pending)
        target_set = frozenset(str(value) for value in target)
        started = self.clock()
        last: ObservedState | None = None
        state: str | None = None
        attempts = 0

        while True:
            self._check_cancelled(operation)
            attempts += 1
            try:
                observed = fetch()
            except Exception as e:
                elapsed = self.clock() - started
                decision = policy.decide(Outcome(error=e), elapsed)
                if not decision.retry or elapsed >= timeout:
                    # a retryable error at the deadline still reports the last observed state
                    out_of_time = elapsed >= min(timeout, policy.timeout)
                    if last is not None and out_of_time and policy.should_retry(Outcome(error=e), 0.0):
                        metrics.poll_attempts_total.labels(operation=operation, result="timeout").inc()
                        raise WaitTimeoutError(timeout, state, last_state=last) from e
                    metrics.poll_attempts_total.labels(operation=operation, result="error").inc()
                    raise
                logger.debug(f"{operation}: retrying after {type(e).__name__} (attempt {attempts})")
                self._pause(min(decision.delay, timeout - elapsed), operation)
                continue

            last = observed
            state = state_of(observed)
            state = None if state is None else str(state)
            if state in target_set:
                metrics.poll_attempts_total.labels(operation=operation, result="target").inc()
                logger.debug(f"{operation}: reached `{state}` after {attempts} attempt(s)")
                return observed

            # unrecognized states are failures, never treated as transient
            if state not in pending_set and not policy.is_pending(observed):
                metrics.poll_attempts_total.labels(operation=operation, result="unexpected").inc()
                raise UnexpectedStateError(state, pending_set | target_set, last_state=observed)

            elapsed = self.clock() - started
            if elapsed >= timeout:
                metrics.poll_attempts_total.labels(operation=operation, result="timeout").inc()
                raise WaitTimeoutError(timeout, state, last_state=last)

            metrics.poll_attempts_total.labels(operation=operation, result="pending").inc()
            delay = policy.next_delay(Outcome(result=observed), elapsed)
            self._pause(min(delay, timeout - elapsed), operation)

    def call(self, operation_fn: Callable[[], T], policy: RetryPolicy | None = None, operation: str = "call") -> T:
        """Invoke a single remote operation, retrying the failures ``policy`` accepts."""
        policy = policy or self.policy
        started = self.clock()
        while True:
            self._check_cancelled(operation)
            try:
                return operation_fn()
            except Exception as e:
                elapsed = self.clock() - started
                decision = policy.decide(Outcome(error=e), elapsed)
                if not decision.retry:
                    raise
                logger.debug(f"{operation}: retrying after {type(e).__name__} in {decision.delay:.2f}s")
                self._pause(min(decision.delay, max(policy.timeout - elapsed, 0.0)), operation)

    def _check_cancelled(self, operation: str) -> None:
        if self.cancel_event.is_set():
            raise OperationCancelledError(f"{operation} cancelled")

    def _pause(self, delay: float, operation: str) -> None:
        delay = max(delay, 0.0)
        if self._sleep is not None:
            self._sleep(delay)
            cancelled = self.cancel_event.is_set()
        else:
            cancelled = self.cancel_event.wait(delay)
        if cancelled:
            raise OperationCancelledError(f"{operation} cancelled while waiting")
