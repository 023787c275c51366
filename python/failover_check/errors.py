"""Error taxonomy for failover verification runs.

Only ``ConfigurationError`` and ``FleetQueryError`` raised while listing the
baseline instances escape a run; everything else is converted into a counted
failure unit by the workflow.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from failover_check.fleet import ScalingActivity


class FailoverCheckError(Exception):
    pass


class ConfigurationError(FailoverCheckError):
    """Missing credentials, group name or an unusable poll configuration."""


class FleetError(FailoverCheckError):
    pass


class FleetQueryError(FleetError):
    """A describe call against the fleet failed."""


class FleetMutationError(FleetError):
    """Enter/exit standby was rejected.

    ``activity`` holds the degraded activity reference when the fleet still
    reported one alongside the failure.
    """

    def __init__(self, message: str, activity: ScalingActivity | None = None) -> None:
        super().__init__(message)
        self.activity = activity


class PollTimeoutError(FailoverCheckError):
    pass


class ContentCheckError(FailoverCheckError):
    pass


class InvalidURLError(ContentCheckError):
    pass


class FetchError(ContentCheckError):
    pass


class ReadError(ContentCheckError):
    pass


class ContentMismatchError(ContentCheckError):
    pass
