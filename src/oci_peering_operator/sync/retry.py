"""Retry decisions for remote calls and status polling.

Policies are pure: every decision is a function of the last outcome, the time
elapsed since the first attempt and static configuration. Sleeping is left to
the caller (see :mod:`.waiter`).
"""

from __future__ import annotations

import math
import os
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from ..constants import DEFAULT_CREATE_TIMEOUT_SECONDS
from .exceptions import NotFoundError, TransientError


@dataclass(frozen=True)
class RetryConfig:
    """Static backoff configuration.

    Attributes:
        base_delay: First delay in seconds
        max_delay: Upper bound for any single delay
        multiplier: Growth factor of the backoff curve
        jitter: Extra random delay as a fraction of the computed delay
        not_found_window: Seconds after the first attempt during which
            "not found" is treated as eventual-consistency lag
        timeout: Default overall budget when the caller does not supply one
    """

    base_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0
    jitter: float = 0.25
    not_found_window: float = 120.0
    timeout: float = float(DEFAULT_CREATE_TIMEOUT_SECONDS)

    @classmethod
    def from_env(cls) -> "RetryConfig":
        """Build a config from ``RPC_RETRY_*`` environment variables."""
        return cls(
            base_delay=float(os.getenv("RPC_RETRY_BASE_DELAY_SECONDS", "1.0")),
            max_delay=float(os.getenv("RPC_RETRY_MAX_DELAY_SECONDS", "30.0")),
            multiplier=float(os.getenv("RPC_RETRY_MULTIPLIER", "2.0")),
            jitter=float(os.getenv("RPC_RETRY_JITTER", "0.25")),
            not_found_window=float(os.getenv("RPC_NOT_FOUND_RETRY_SECONDS", "120.0")),
            timeout=float(os.getenv("RPC_RETRY_TIMEOUT_SECONDS", str(DEFAULT_CREATE_TIMEOUT_SECONDS))),
        )


@dataclass(frozen=True)
class Outcome:
    """Result or error of a single remote call."""

    result: Any = None
    error: BaseException | None = None


@dataclass(frozen=True)
class RetryDecision:
    retry: bool
    delay: float = 0.0


class RetryPolicy:
    """Default policy: retry transient errors and early "not found" until the timeout."""

    def __init__(
        self,
        config: RetryConfig | None = None,
        timeout: float | None = None,
        disable_not_found_retries: bool = False,
        random_fn: Callable[[], float] = random.random,
    ) -> None:
        self.config = config or RetryConfig()
        self.timeout = self.config.timeout if timeout is None else timeout
        self.disable_not_found_retries = disable_not_found_retries
        self._random = random_fn

    def should_retry(self, outcome: Outcome, elapsed: float) -> bool:
        if elapsed >= self.timeout:
            return False
        if outcome.error is None:
            return self.is_pending(outcome.result)
        if isinstance(outcome.error, NotFoundError):
            if self.disable_not_found_retries:
                return False
            return elapsed < self.config.not_found_window
        return isinstance(outcome.error, TransientError)

    def is_pending(self, result: Any) -> bool:
        """Whether a successful result still needs polling."""
        return False

    def next_delay(self, outcome: Outcome, elapsed: float) -> float:
        cfg = self.config
        if cfg.base_delay <= 0:
            return 0.0
        if cfg.multiplier <= 1:
            delay = cfg.base_delay
        else:
            step = math.floor(math.log(1 + max(elapsed, 0.0) / cfg.base_delay, cfg.multiplier))
            # avoid float overflow on very long waits
            step = min(step, 64)
            delay = cfg.base_delay * cfg.multiplier ** step
        delay = min(delay, cfg.max_delay)
        if cfg.jitter > 0:
            delay += delay * cfg.jitter * self._random()
        return min(delay, cfg.max_delay)

    def decide(self, outcome: Outcome, elapsed: float) -> RetryDecision:
        if not self.should_retry(outcome, elapsed):
            return RetryDecision(False)
        return RetryDecision(True, self.next_delay(outcome, elapsed))


class PendingStatusRetryPolicy(RetryPolicy):
    """Also retries successful responses whose status field is still pending."""

    def __init__(
        self,
        pending: Iterable[str],
        status_attr: str = "peering_status",
        config: RetryConfig | None = None,
        timeout: float | None = None,
        random_fn: Callable[[], float] = random.random,
    ) -> None:
        super().__init__(config, timeout=timeout, disable_not_found_retries=False, random_fn=random_fn)
        self.pending = frozenset(str(value) for value in pending)
        self.status_attr = status_attr

    def is_pending(self, result: Any) -> bool:
        status = getattr(result, self.status_attr, None)
        return status is not None and str(status) in self.pending


@dataclass
class PolicyFactory:
    """Builds per-operation policies from one shared config."""

    config: RetryConfig = field(default_factory=RetryConfig)
    random_fn: Callable[[], float] = random.random

    def default(self, timeout: float | None = None, disable_not_found_retries: bool = False) -> RetryPolicy:
        return RetryPolicy(
            self.config,
            timeout=timeout,
            disable_not_found_retries=disable_not_found_retries,
            random_fn=self.random_fn,
        )

    def pending_status(self, pending: Iterable[str], timeout: float | None = None) -> PendingStatusRetryPolicy:
        return PendingStatusRetryPolicy(
            pending,
            config=self.config,
            timeout=timeout,
            random_fn=self.random_fn,
        )
