"""
Command-line parameters of nobs build descriptions.

A build description calls Project.enable_command_line_params() (or
parse_command_line() directly) to let its users select clean mode and the
number of parallel jobs:

    ./build --clean       # remove the build directory instead of building
    ./build -m 8          # run at most 8 compiler processes at once
    ./build --help        # show usage

Unrecognized arguments are ignored.
"""

import argparse
import sys
from dataclasses import dataclass
from typing import NoReturn, Optional, Sequence

from .build.build_context import BuildSession
from .output import log_error


@dataclass
class CommandLineArgs:
    """Parsed command-line parameters."""

    clean: bool = False
    jobs: Optional[int] = None


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports errors as nobs errors and exits with code 1."""

    def error(self, message: str) -> NoReturn:
        log_error(message)
        sys.exit(1)


def _positive_int(value: str) -> int:
    try:
        num_jobs = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid number of jobs: {value}")
    if num_jobs <= 0:
        raise argparse.ArgumentTypeError(f"Invalid number of jobs: {value}")
    return num_jobs


def create_parser(prog: Optional[str], default_jobs: int) -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog=prog,
        description="Incremental build of the targets declared in this build description.",
    )
    parser.add_argument(
        "-c",
        "--clean",
        action="store_true",
        help="cleans build artifacts",
    )
    parser.add_argument(
        "-m",
        "--jobs",
        type=_positive_int,
        metavar="N",
        default=None,
        help=f"use N parallel jobs (default: {default_jobs})",
    )
    return parser


def parse_args(argv: Sequence[str], prog: Optional[str] = None, default_jobs: int = 1) -> CommandLineArgs:
    """Parse command-line arguments (without the program name).

    Exits with code 0 after printing usage for -h/--help, and with code 1
    on a missing, unparsable or non-positive job count.
    """
    parser = create_parser(prog, default_jobs)
    namespace, _unknown = parser.parse_known_args(list(argv))
    return CommandLineArgs(clean=namespace.clean, jobs=namespace.jobs)


def parse_command_line(session: BuildSession, argv: Optional[Sequence[str]] = None) -> CommandLineArgs:
    """Apply command-line parameters to a build session.

    Args:
        session: Session to configure
        argv: Full argument vector including the program name (defaults to sys.argv)

    Returns:
        The parsed arguments
    """
    if argv is None:
        argv = sys.argv
    if len(argv) <= 1:
        return CommandLineArgs()

    args = parse_args(argv[1:], prog=argv[0], default_jobs=session.parallel_jobs)
    if args.clean:
        session.clean_mode = True
    if args.jobs is not None:
        session.set_parallel_jobs(args.jobs)
    return args
