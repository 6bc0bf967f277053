"""Subprocess utilities for compiler and linker execution.

This module provides wrappers around the subprocess module and the exec
family so every tool invocation goes through the same defaults.
"""

import os
import subprocess
import sys
from typing import Any, NoReturn


def safe_popen(cmd: list[str], **kwargs: Any) -> subprocess.Popen:
    """Execute subprocess.Popen with build-tool defaults.

    Automatically applies:
    - stdin=DEVNULL (compilers never read from the terminal)

    stdout and stderr are inherited so compiler diagnostics reach the user
    as they are produced.

    Args:
        cmd: Command and arguments (same as subprocess.Popen)
        **kwargs: Additional arguments passed to subprocess.Popen

    Returns:
        Popen process handle

    Note:
        If 'stdin' is explicitly provided in kwargs, it will be used as-is.
    """
    if "stdin" not in kwargs:
        kwargs["stdin"] = subprocess.DEVNULL

    return subprocess.Popen(cmd, **kwargs)


def replace_process_image(cmd: list[str]) -> NoReturn:
    """Replace the current process with cmd via os.execv.

    Buffered output is flushed first, otherwise it is lost with the old image.

    Args:
        cmd: Executable path followed by its argv[1:]

    Raises:
        OSError: If the exec call fails
    """
    sys.stdout.flush()
    sys.stderr.flush()
    os.execv(cmd[0], cmd)
