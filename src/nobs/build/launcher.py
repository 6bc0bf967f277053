"""Process launcher capability used by the scheduler and the self-rebuild bootstrap.

The scheduler never touches subprocess directly. It asks a ProcessLauncher to
spawn a command, polls the returned handle without blocking, and the
bootstrap asks it to replace the running process image.
"""

import logging
import subprocess
from pathlib import Path
from typing import Any, NoReturn, Optional, Protocol, runtime_checkable

from ..subprocess_utils import replace_process_image, safe_popen
from .errors import ProcessLaunchError

logger = logging.getLogger(__name__)

# Exit code reported for a process terminated by a signal
SIGNALED_EXIT_CODE = 255


@runtime_checkable
class ProcessLauncher(Protocol):
    """Protocol for starting and observing external processes."""

    def spawn(self, command: list[str], cwd: Path) -> Any:
        """Start command in cwd and return an opaque process handle.

        Raises:
            ProcessLaunchError: If the process cannot be started.
        """
        ...

    def poll(self, handle: Any) -> Optional[int]:
        """Return the exit code if the process finished, None if still running. Never blocks."""
        ...

    def replace_image(self, command: list[str]) -> NoReturn:
        """Replace the current process image with command. Never returns.

        Raises:
            OSError: If the replacement fails.
        """
        ...


class SubprocessLauncher:
    """ProcessLauncher backed by subprocess.Popen and os.execv."""

    def spawn(self, command: list[str], cwd: Path) -> subprocess.Popen:
        try:
            process = safe_popen(command, cwd=cwd)
        except OSError as e:
            raise ProcessLaunchError(f"Failed to start {command[0]}: {e}") from e
        logger.debug(f"Spawned pid {process.pid}: {' '.join(command)}")
        return process

    def poll(self, handle: subprocess.Popen) -> Optional[int]:
        returncode = handle.poll()
        if returncode is None:
            return None
        logger.debug(f"Reaped pid {handle.pid} with code {returncode}")
        if returncode < 0:
            return SIGNALED_EXIT_CODE
        return returncode

    def replace_image(self, command: list[str]) -> NoReturn:
        logger.info(f"Replacing process image with {command[0]}")
        replace_process_image(command)
