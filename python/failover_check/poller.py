from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from failover_check.errors import ConfigurationError, FailoverCheckError, PollTimeoutError

log = logging.getLogger(__name__)

PollPredicate = Callable[[], tuple[bool, Exception | None]]


@dataclass(frozen=True)
class PollConfig:
    interval_ms: int
    timeout_ms: int

    def __post_init__(self) -> None:
        if self.interval_ms <= 0:
            raise ConfigurationError(f"poll interval must be positive, got {self.interval_ms}ms")
        if self.timeout_ms < 0:
            raise ConfigurationError(f"poll timeout must not be negative, got {self.timeout_ms}ms")

    @classmethod
    def from_seconds(cls, interval_s: float, timeout_s: float) -> PollConfig:
        return cls(interval_ms=int(round(interval_s * 1000)), timeout_ms=int(round(timeout_s * 1000)))

    @property
    def interval_s(self) -> float:
        return self.interval_ms / 1000.0

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def max_attempts(self) -> int:
        return self.timeout_ms // self.interval_ms


@dataclass(frozen=True)
class PollResult:
    ok: bool
    attempts: int
    timed_out: bool = False
    error: str = ""

    def __bool__(self) -> bool:
        return self.ok

    def raise_for_failure(self) -> None:
        if self.ok:
            return
        if self.timed_out:
            raise PollTimeoutError(f"no success after {self.attempts} attempts")
        raise PollTimeoutError(f"polling aborted after {self.attempts} attempts: {self.error}")


def poll_until(
    predicate: PollPredicate,
    config: PollConfig,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> PollResult:
    """Call ``predicate`` every ``config.interval_ms`` until it reports done.

    The predicate is invoked at most ``timeout // interval`` times, so a
    timeout shorter than the interval gives up without a single call. An
    error returned (or a ``FailoverCheckError`` raised) by the predicate aborts
    the loop at once; retrying the whole operation is up to the caller.
    """
    budget = config.max_attempts
    attempts = 0
    while attempts < budget:
        try:
            done, err = predicate()
        except FailoverCheckError as exc:
            done, err = False, exc
        attempts += 1
        if err is not None:
            log.error("polling aborted attempt=%d error=%s", attempts, err)
            return PollResult(ok=False, attempts=attempts, error=str(err))
        if done:
            return PollResult(ok=True, attempts=attempts)
        sleep(config.interval_s)
        log.info("polling status attempt=%d budget=%d", attempts, budget)

    log.warning("polling timed out attempts=%d timeout_ms=%d", attempts, config.timeout_ms)
    return PollResult(ok=False, attempts=attempts, timed_out=True)
