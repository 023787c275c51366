"""End-to-end failover verification.

Phases run strictly in sequence: enter standby, probe the failover content,
restore every instance to service, probe the primary content. Each phase
contributes a failure count and the run's exit code is their sum.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from failover_check.content_probe import ContentCheck, poll_for_content
from failover_check.fleet import FleetController, all_in_service, instance_ids
from failover_check.poller import PollConfig
from failover_check.standby import DEFAULT_EXIT_ATTEMPTS, enter_standby, exit_standby

log = logging.getLogger(__name__)

ContentPoller = Callable[[ContentCheck, PollConfig], int]


@dataclass(frozen=True)
class FailoverRunConfig:
    group_name: str
    failover_check: ContentCheck
    poll: PollConfig
    primary_check: ContentCheck | None = None
    exit_attempts: int = DEFAULT_EXIT_ATTEMPTS
    # 0 keeps retrying until every instance is back in service.
    max_restore_rounds: int = 0


@dataclass(frozen=True)
class FailoverReport:
    group_name: str
    instance_ids: tuple[str, ...]
    enter_failures: int
    failover_content_failures: int
    failover_content_checked: bool
    restore_failures: int
    restore_rounds: int
    restore_exhausted: bool
    primary_content_failures: int
    primary_content_checked: bool

    @property
    def exit_code(self) -> int:
        return (
            self.enter_failures
            + self.failover_content_failures
            + self.restore_failures
            + self.primary_content_failures
        )


def run_failover_check(
    fleet: FleetController,
    config: FailoverRunConfig,
    *,
    content_poller: ContentPoller = poll_for_content,
    sleep: Callable[[float], None] = time.sleep,
) -> FailoverReport:
    group = config.group_name
    ids = instance_ids(fleet.list_instances(group))

    enter_failures = enter_standby(fleet, group, ids, config.poll, sleep=sleep)

    failover_failures = 0
    failover_checked = False
    if enter_failures == 0:
        failover_checked = True
        failover_failures = content_poller(config.failover_check, config.poll)
    else:
        log.warning("skipping failover content check enter_failures=%d", enter_failures)

    restore_failures = 0
    rounds = 0
    exhausted = False
    while not all_in_service(fleet.list_instances(group)):
        if config.max_restore_rounds and rounds >= config.max_restore_rounds:
            log.error(
                "instances still not in service group=%s rounds=%d",
                group,
                rounds,
            )
            exhausted = True
            restore_failures += 1
            break
        rounds += 1
        restore_failures += exit_standby(
            fleet,
            group,
            ids,
            config.poll,
            max_attempts=config.exit_attempts,
            sleep=sleep,
        )

    primary_failures = 0
    primary_checked = config.primary_check is not None
    if config.primary_check is not None:
        primary_failures = content_poller(config.primary_check, config.poll)

    report = FailoverReport(
        group_name=group,
        instance_ids=ids,
        enter_failures=enter_failures,
        failover_content_failures=failover_failures,
        failover_content_checked=failover_checked,
        restore_failures=restore_failures,
        restore_rounds=rounds,
        restore_exhausted=exhausted,
        primary_content_failures=primary_failures,
        primary_content_checked=primary_checked,
    )
    log.info("finished group=%s exit_code=%d", group, report.exit_code)
    return report
