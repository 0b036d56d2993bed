"""Exception hierarchy shared across the build engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from indigoforge.models.build import BuildStatus, BuildStep


class IndigoForgeError(RuntimeError):
    """Base class for all build engine errors."""


class BuildPreconditionError(IndigoForgeError):
    """Raised before any step runs. No BuildStatus exists."""


class MissingCredentialsError(BuildPreconditionError):
    """No stored credentials for the requested location."""

    def __init__(self, location_id: str) -> None:
        self.location_id = location_id
        super().__init__(
            f"GHL_UNAUTHORIZED: no credentials stored for location {location_id!r}"
        )


class BuildCancelledError(IndigoForgeError):
    """Raised when a build (or a pending rate-limit wait) is cancelled."""


class BuildFailedError(IndigoForgeError):
    """A step failed; the run was stopped and marked FAILED.

    The message matches the persisted ``status.error``. ``status``
    holds the persisted FAILED status with every resource id recorded
    before the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        status: BuildStatus,
        step: BuildStep | None = None,
    ) -> None:
        self.status = status
        self.step = step
        super().__init__(message)
