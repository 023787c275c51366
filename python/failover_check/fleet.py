from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from botocore.exceptions import BotoCoreError, ClientError

from failover_check.errors import FleetMutationError, FleetQueryError

log = logging.getLogger(__name__)

IN_SERVICE = "InService"
ACTIVITY_SUCCESSFUL = "Successful"


@dataclass(frozen=True)
class Instance:
    instance_id: str
    lifecycle_state: str


@dataclass(frozen=True)
class ScalingActivity:
    activity_id: str
    status_code: str = ""


class FleetController(Protocol):
    def list_instances(self, group_name: str) -> tuple[Instance, ...]: ...

    def enter_standby(self, group_name: str, instance_ids: Sequence[str]) -> ScalingActivity: ...

    def exit_standby(self, group_name: str, instance_ids: Sequence[str]) -> ScalingActivity: ...

    def describe_activity_status(
        self, group_name: str, activity_ids: Sequence[str]
    ) -> list[str]: ...


def instance_ids(instances: Sequence[Instance]) -> tuple[str, ...]:
    ids = tuple(item.instance_id for item in instances)
    log.debug("instances in group instance_ids=%s", ",".join(ids))
    return ids


def all_in_service(instances: Sequence[Instance]) -> bool:
    pending = [item for item in instances if item.lifecycle_state != IN_SERVICE]
    if pending:
        log.info(
            "some instances not in service pending=%s",
            ",".join(f"{item.instance_id}:{item.lifecycle_state}" for item in pending),
        )
        return False
    log.info("all instances now in service count=%d", len(instances))
    return True


def _first_activity(response: dict[str, Any], operation: str) -> ScalingActivity:
    activities = response.get("Activities") or []
    if not activities:
        raise FleetMutationError(f"{operation} returned no scaling activity")
    first = activities[0]
    return ScalingActivity(
        activity_id=str(first.get("ActivityId", "")),
        status_code=str(first.get("StatusCode", "")),
    )


class AutoScalingFleetController(FleetController):
    """FleetController backed by a boto3 ``autoscaling`` client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def list_instances(self, group_name: str) -> tuple[Instance, ...]:
        try:
            response = self._client.describe_auto_scaling_groups(
                AutoScalingGroupNames=[group_name],
                MaxRecords=1,
            )
        except (BotoCoreError, ClientError) as exc:
            raise FleetQueryError(f"describe_auto_scaling_groups failed for {group_name}: {exc}") from exc
        groups = response.get("AutoScalingGroups") or []
        if not groups:
            raise FleetQueryError(f"auto scaling group not found: {group_name}")
        return tuple(
            Instance(
                instance_id=str(item["InstanceId"]),
                lifecycle_state=str(item.get("LifecycleState", "")),
            )
            for item in groups[0].get("Instances", [])
        )

    def enter_standby(self, group_name: str, instance_ids: Sequence[str]) -> ScalingActivity:
        log.debug("enter standby request group=%s instance_ids=%s", group_name, list(instance_ids))
        try:
            response = self._client.enter_standby(
                AutoScalingGroupName=group_name,
                InstanceIds=list(instance_ids),
                ShouldDecrementDesiredCapacity=True,
            )
        except (BotoCoreError, ClientError) as exc:
            raise FleetMutationError(f"enter_standby failed for {group_name}: {exc}") from exc
        return _first_activity(response, "enter_standby")

    def exit_standby(self, group_name: str, instance_ids: Sequence[str]) -> ScalingActivity:
        try:
            response = self._client.exit_standby(
                AutoScalingGroupName=group_name,
                InstanceIds=list(instance_ids),
            )
        except (BotoCoreError, ClientError) as exc:
            raise FleetMutationError(f"exit_standby failed for {group_name}: {exc}") from exc
        return _first_activity(response, "exit_standby")

    def describe_activity_status(self, group_name: str, activity_ids: Sequence[str]) -> list[str]:
        try:
            response = self._client.describe_scaling_activities(
                ActivityIds=list(activity_ids),
                AutoScalingGroupName=group_name,
                MaxRecords=1,
            )
        except (BotoCoreError, ClientError) as exc:
            raise FleetQueryError(f"describe_scaling_activities failed: {exc}") from exc
        return [str(item.get("StatusCode", "")) for item in response.get("Activities", [])]


@dataclass
class InMemoryFleetController(FleetController):
    """Scripted fleet for tests and dry runs.

    ``lifecycle_states`` is consumed one entry per ``list_instances`` call;
    once exhausted every instance reports ``InService``. ``failing`` names the
    operations that raise (``enter_standby``, ``exit_standby``,
    ``describe_activity_status``, ``list_instances``).
    """

    instances: tuple[str, ...] = ("instance1", "instance2", "instance3")
    lifecycle_states: list[str] = field(default_factory=list)
    activity_status: str = ACTIVITY_SUCCESSFUL
    failing: set[str] = field(default_factory=set)
    degraded_activity_on_failure: bool = True
    calls: list[str] = field(default_factory=list)
    _activity_seq: int = 0

    def list_instances(self, group_name: str) -> tuple[Instance, ...]:
        self.calls.append("list_instances")
        if "list_instances" in self.failing:
            raise FleetQueryError(f"auto scaling group not found: {group_name}")
        state = self.lifecycle_states.pop(0) if self.lifecycle_states else IN_SERVICE
        return tuple(Instance(instance_id=item, lifecycle_state=state) for item in self.instances)

    def enter_standby(self, group_name: str, instance_ids: Sequence[str]) -> ScalingActivity:
        return self._mutate("enter_standby", group_name)

    def exit_standby(self, group_name: str, instance_ids: Sequence[str]) -> ScalingActivity:
        return self._mutate("exit_standby", group_name)

    def describe_activity_status(self, group_name: str, activity_ids: Sequence[str]) -> list[str]:
        self.calls.append("describe_activity_status")
        if "describe_activity_status" in self.failing:
            raise FleetQueryError("describe_scaling_activities failed")
        return [self.activity_status for _ in activity_ids]

    def _mutate(self, operation: str, group_name: str) -> ScalingActivity:
        self.calls.append(operation)
        self._activity_seq += 1
        activity = ScalingActivity(activity_id=f"activity{self._activity_seq}")
        if operation in self.failing:
            degraded = activity if self.degraded_activity_on_failure else None
            raise FleetMutationError(f"{operation} failed for {group_name}", activity=degraded)
        return activity
