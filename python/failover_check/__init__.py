"""failover_check: auto scaling group standby failover verification."""

from .content_probe import ContentCheck, check_content, poll_for_content, probe_content
from .errors import (
    ConfigurationError,
    ContentCheckError,
    FailoverCheckError,
    FetchError,
    FleetMutationError,
    FleetQueryError,
    InvalidURLError,
    ReadError,
)
from .fleet import (
    AutoScalingFleetController,
    FleetController,
    InMemoryFleetController,
    Instance,
    ScalingActivity,
)
from .orchestrator import FailoverReport, FailoverRunConfig, run_failover_check
from .poller import PollConfig, PollResult, poll_until
from .standby import enter_standby, exit_standby

__all__ = [
    "AutoScalingFleetController",
    "ConfigurationError",
    "ContentCheck",
    "ContentCheckError",
    "FailoverCheckError",
    "FailoverReport",
    "FailoverRunConfig",
    "FetchError",
    "FleetController",
    "FleetMutationError",
    "FleetQueryError",
    "InMemoryFleetController",
    "Instance",
    "InvalidURLError",
    "PollConfig",
    "PollResult",
    "ReadError",
    "ScalingActivity",
    "check_content",
    "enter_standby",
    "exit_standby",
    "poll_for_content",
    "poll_until",
    "probe_content",
    "run_failover_check",
]
