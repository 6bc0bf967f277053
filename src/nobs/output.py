"""
Centralized console output for nobs.

User-facing lines (progress, status, errors) go through this module and are
rendered with rich so the build status colors survive on a terminal and
degrade to plain text when output is redirected. Diagnostics that are only
useful when debugging the engine go through the standard logging module.

Example output:
    Running build of demo with 3 jobs (max 2 parallel)...
    [ 50%] 1/4 Compiling g++ -std=c++23 -c -o build_dir/main.cpp.o main.cpp
    [ 75%] 2/4 Compiling g++ -std=c++23 -c -o build_dir/foo.cpp.o foo.cpp
    [100%] 4/4 Linking g++ -o build_dir/demo build_dir/main.cpp.o build_dir/foo.cpp.o
    Linking completed successfully.

Usage:
    from nobs.output import log, log_error, log_job_status

    log("Nobs build script has not changed.", style=GREEN)
    log_job_status(50, 1, 4, "Compiling", ["g++", "-c", "main.cpp"])
    log_error("Source file main.cpp does not exist!")

Timestamps in MM:SS.cc format (elapsed since program launch) can be
prefixed to every line with set_show_timestamps(True).
"""

import time
from typing import Optional, TextIO

from rich.console import Console
from rich.text import Text

RED = "bold red"
GREEN = "bold green"
GREEN_FAINT = "dim green"
YELLOW = "bold yellow"

# Global state for the timer and the console
_start_time: Optional[float] = None
_console: Console = Console(highlight=False, soft_wrap=True)
_verbose: bool = True
_show_timestamps: bool = False
_output_file: Optional[TextIO] = None


def init_timer(output_stream: Optional[TextIO] = None) -> None:
    """
    Initialize the program timer.

    Call this at program startup to set the reference time for all timestamps.
    If not called explicitly, it will be called automatically on first log.

    Args:
        output_stream: Optional output stream (defaults to sys.stdout)
    """
    global _start_time, _console
    _start_time = time.time()
    if output_stream is not None:
        _console = Console(file=output_stream, highlight=False, soft_wrap=True)


def set_verbose(verbose: bool) -> None:
    """
    Set verbose mode for logging.

    Args:
        verbose: If True, all messages are printed. If False, only non-verbose messages.
    """
    global _verbose
    _verbose = verbose


def set_show_timestamps(show: bool) -> None:
    """Prefix every line with the elapsed time since init_timer()."""
    global _show_timestamps
    _show_timestamps = show


def set_output_file(output_file: Optional[TextIO]) -> None:
    """
    Set a file to receive all log output (in addition to the console).

    Args:
        output_file: File object to receive output, or None to disable file output
    """
    global _output_file
    _output_file = output_file


def get_elapsed() -> float:
    """
    Get elapsed time since timer initialization.

    Returns:
        Elapsed time in seconds
    """
    global _start_time
    if _start_time is None:
        init_timer()
    return time.time() - _start_time  # type: ignore


def format_timestamp() -> str:
    """
    Format the current elapsed time as MM:SS.cc.

    Returns:
        Formatted timestamp string
    """
    elapsed = get_elapsed()
    minutes = int(elapsed // 60)
    seconds = elapsed % 60
    return f"{minutes:02d}:{seconds:05.2f}"


def _print(message: str, style: Optional[str] = None) -> None:
    """
    Internal print function.

    Args:
        message: Message to print
        style: Optional rich style for the message
    """
    line = f"{format_timestamp()} {message}" if _show_timestamps else message
    _console.print(Text(line, style=style or ""))

    if _output_file is not None:
        _output_file.write(line + "\n")
        _output_file.flush()


def log(message: str, style: Optional[str] = None, verbose_only: bool = False) -> None:
    """
    Log a message.

    Args:
        message: Message to log
        style: Optional rich style (e.g. GREEN)
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(message, style)


def log_job_status(percent: int, ordinal: int, total: int, verb: str, command: list[str], style: Optional[str] = None) -> None:
    """
    Log the start of a build job.

    Format: [xx%] i/N <verb> <command>

    Args:
        percent: Share of jobs completed or in flight, including this one
        ordinal: 1-based number of the job
        total: Total number of jobs
        verb: Action being performed (e.g. "Compiling", "Linking")
        command: Command line of the job
        style: Optional rich style for the verb and command
    """
    line = Text(f"[{percent:3d}%] {ordinal}/{total} ")
    line.append(f"{verb} {' '.join(command)}", style=style or "")
    if _show_timestamps:
        line = Text(f"{format_timestamp()} ") + line
    _console.print(line)

    if _output_file is not None:
        _output_file.write(line.plain + "\n")
        _output_file.flush()


def log_error(message: str) -> None:
    """
    Log an error message.

    Args:
        message: Error message
    """
    _print(f"ERROR: {message}", RED)


def log_warning(message: str) -> None:
    """
    Log a warning message.

    Args:
        message: Warning message
    """
    _print(f"WARNING: {message}", YELLOW)


def log_success(message: str) -> None:
    """
    Log a success message.

    Args:
        message: Success message
    """
    _print(message, GREEN)

