"""Exceptions raised by the build engine.

Every error carries the process exit code the API layer should terminate
with. Planning errors are raised before any process is spawned; job failures
carry the exit code of the failing compiler or linker.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import Job


class BuildError(Exception):
    """Base class for all build engine errors."""

    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


class PlanningError(BuildError):
    """Raised when the build description or the build directory is invalid."""

    pass


class MalformedRecordError(PlanningError):
    """Raised when a sidecar build record cannot be read or parsed."""

    pass


class ProcessLaunchError(BuildError):
    """Raised when a compiler or linker process cannot be started."""

    pass


class JobFailedError(BuildError):
    """Raised when a compiler or linker process exits with a nonzero code."""

    def __init__(self, message: str, exit_code: int, job: Optional["Job"] = None):
        super().__init__(message, exit_code)
        self.job = job


class SelfRebuildError(BuildError):
    """Raised when the rebuilt build script cannot replace the running process."""

    pass
