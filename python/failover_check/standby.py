from __future__ import annotations

import enum
import logging
import time
from collections.abc import Callable, Sequence

from failover_check.errors import FleetMutationError, PollTimeoutError
from failover_check.fleet import ACTIVITY_SUCCESSFUL, FleetController
from failover_check.poller import PollConfig, PollResult, poll_until

log = logging.getLogger(__name__)

DEFAULT_EXIT_ATTEMPTS = 3


class AttemptOutcome(enum.Enum):
    SUCCESS = "success"
    RETRY = "retry"
    ABORT = "abort"


def _identity(value: bool) -> bool:
    return value


def activities_finished(statuses: Sequence[str], target: str = ACTIVITY_SUCCESSFUL) -> bool:
    return all(status == target for status in statuses)


def wait_for_activities(
    fleet: FleetController,
    group_name: str,
    activity_ids: Sequence[str],
    poll: PollConfig,
    *,
    target: str = ACTIVITY_SUCCESSFUL,
    sleep: Callable[[float], None] = time.sleep,
) -> PollResult:
    log.debug("waiting for activities group=%s activity_ids=%s", group_name, list(activity_ids))

    def _predicate() -> tuple[bool, Exception | None]:
        statuses = fleet.describe_activity_status(group_name, activity_ids)
        return activities_finished(statuses, target), None

    return poll_until(_predicate, poll, sleep=sleep)


def run_attempts(attempt: Callable[[int], AttemptOutcome], max_attempts: int) -> int:
    """Run ``attempt`` up to ``max_attempts`` times and return the failure count.

    A SUCCESS resets the count to zero and stops; RETRY counts one failure and
    tries again; ABORT counts one failure and stops.
    """
    failures = 0
    for number in range(1, max_attempts + 1):
        outcome = attempt(number)
        if outcome is AttemptOutcome.SUCCESS:
            return 0
        failures += 1
        if outcome is AttemptOutcome.ABORT:
            break
    return failures


def enter_standby(
    fleet: FleetController,
    group_name: str,
    instance_ids: Sequence[str],
    poll: PollConfig,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Move ``instance_ids`` into standby and wait for the activity to succeed.

    The mutation failure and the poll failure are counted separately, so this
    phase contributes up to 2. A failed mutation does not stop the run; the
    degraded activity reference (if any) is still polled.
    """
    log.info("attempting to enter standby group=%s instance_ids=%s", group_name, list(instance_ids))
    failures = 0
    try:
        activity = fleet.enter_standby(group_name, instance_ids)
    except FleetMutationError as exc:
        log.error("error entering instances into standby group=%s error=%s", group_name, exc)
        failures += 1
        activity = exc.activity

    if activity is None:
        log.error("no scaling activity to wait on group=%s", group_name)
        return failures + 1

    try:
        wait_for_activities(fleet, group_name, [activity.activity_id], poll, sleep=sleep).raise_for_failure()
    except PollTimeoutError as exc:
        log.info(
            "some (or all) instances did not enter standby instance_ids=%s error=%s",
            list(instance_ids),
            exc,
        )
        failures += 1
    else:
        log.info("instances now in standby instance_ids=%s", list(instance_ids))
    return failures


def exit_standby(
    fleet: FleetController,
    group_name: str,
    instance_ids: Sequence[str],
    poll: PollConfig,
    *,
    is_success: Callable[[bool], bool] = _identity,
    max_attempts: int = DEFAULT_EXIT_ATTEMPTS,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Return instances to service, retrying a failed poll up to ``max_attempts`` times.

    A rejected exit-standby call is not retried: the attempt aborts without
    polling.
    """

    def _attempt(number: int) -> AttemptOutcome:
        log.info(
            "attempting to exit standby group=%s instance_ids=%s attempt=%d",
            group_name,
            list(instance_ids),
            number,
        )
        try:
            activity = fleet.exit_standby(group_name, instance_ids)
        except FleetMutationError as exc:
            log.error("error calling exit standby group=%s error=%s", group_name, exc)
            return AttemptOutcome.ABORT

        result = wait_for_activities(fleet, group_name, [activity.activity_id], poll, sleep=sleep)
        if is_success(result.ok):
            log.info("instances exited standby instance_ids=%s", list(instance_ids))
            return AttemptOutcome.SUCCESS
        log.error("instances failed to reach successful status attempt=%d", number)
        return AttemptOutcome.RETRY

    return run_attempts(_attempt, max_attempts)
