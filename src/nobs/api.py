"""Target definition API.

A build description creates a Project, declares its targets and builds them:

    from nobs import Project

    project = Project()
    project.enable_command_line_params()
    demo = project.add_executable("demo")
    project.add_target_sources(demo, ["main.cpp", "foo.cpp", "subdir/bar.cpp"])
    project.add_target_compile_flag(demo, "-std=c++23")
    project.build_target(demo)

Errors are fatal: they are reported on the console and the process exits
with the error's exit code (the failing tool's code for a failed job, 1 for
everything else).
"""

import logging
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Sequence, Union

from .build.build_context import BuildSession
from .build.errors import BuildError, JobFailedError, PlanningError
from .build.models import Target, TargetKind
from .build.planner import plan_target
from .build.scheduler import JobScheduler
from .build.self_rebuild import ensure_self_up_to_date
from .cli import CommandLineArgs, parse_command_line
from .output import log_error, log_warning

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@contextmanager
def fatal_on_error() -> Iterator[None]:
    """Turn build errors into process termination with their exit code."""
    try:
        yield
    except JobFailedError as e:
        # The scheduler already reported the failing command.
        raise SystemExit(e.exit_code) from e
    except BuildError as e:
        log_error(str(e))
        raise SystemExit(e.exit_code) from e


class Project:
    """Declares targets on a build session and builds them."""

    def __init__(self, session: Optional[BuildSession] = None):
        """
        Args:
            session: Build session to use (default: BuildSession.from_environment())
        """
        if session is None:
            with fatal_on_error():
                session = BuildSession.from_environment()
        self.session = session

    # Session configuration

    def enable_command_line_params(self, argv: Optional[Sequence[str]] = None) -> CommandLineArgs:
        return parse_command_line(self.session, argv)

    def set_compiler(self, compiler: str) -> None:
        self.session.toolchain.compiler = compiler

    def set_linker(self, linker: str) -> None:
        self.session.toolchain.linker = linker

    def set_archiver(self, archiver: str) -> None:
        self.session.toolchain.archiver = archiver

    def set_build_directory(self, build_dir: PathLike) -> None:
        self.session.build_directory = Path(build_dir)

    def set_project_directory(self, project_dir: PathLike) -> None:
        self.session.project_directory = Path(project_dir).resolve()

    def current_project_directory(self) -> str:
        return str(self.session.project_directory)

    def set_parallel_jobs(self, num_jobs: int) -> None:
        self.session.set_parallel_jobs(num_jobs)

    # Targets

    def _add_target(self, name: str, kind: TargetKind) -> Target:
        target = Target(name=name, kind=kind)
        self.session.targets.append(target)
        return target

    def add_executable(self, name: str) -> Target:
        return self._add_target(name, TargetKind.EXECUTABLE)

    def add_library(self, name: str) -> Target:
        return self._add_target(name, TargetKind.STATIC_LIBRARY)

    def add_target_sources(self, target: Target, sources: Sequence[PathLike]) -> None:
        """Append sources to target. A source that does not exist is fatal."""
        with fatal_on_error():
            for source in sources:
                path = Path(source)
                if not (self.session.project_directory / path).exists():
                    raise PlanningError(f"Source file {source} does not exist!")
                target.sources.append(path)

    def add_target_source(self, target: Target, source: PathLike) -> None:
        self.add_target_sources(target, [source])

    def add_target_compile_flags(self, target: Target, flags: Sequence[str]) -> None:
        target.compile_flags.extend(flags)

    def add_target_compile_flag(self, target: Target, flag: str) -> None:
        self.add_target_compile_flags(target, [flag])

    def add_target_include_directories(self, target: Target, include_dirs: Sequence[PathLike]) -> None:
        target.compile_flags.extend(f"-I{directory}" for directory in include_dirs)

    def target_link_libraries(self, target: Target, libraries: Sequence[Target]) -> None:
        """Not implemented: libraries are not linked into target."""
        names = ", ".join(library.name for library in libraries)
        log_warning(f"target_link_libraries is not supported yet; {names} will not be linked into {target.name}")

    # Building

    def build_target(self, target: Target) -> None:
        """Build target incrementally, or remove the build directory in clean mode."""
        with fatal_on_error():
            if self.session.clean_mode:
                build_dir = self.session.project_directory / self.session.build_directory
                logger.info(f"Removing build directory {build_dir}")
                shutil.rmtree(build_dir, ignore_errors=True)
                return

            state = plan_target(self.session, target)
            scheduler = JobScheduler(
                self.session.launcher,
                self.session.toolchain,
                self.session.parallel_jobs,
                self.session.project_directory,
            )
            scheduler.run(state)

    def enable_self_rebuild(self, script_source: PathLike) -> None:
        """Rebuild the compiled build description from script_source if it changed.

        Returns when the build description is up to date; otherwise the
        running process is replaced by the rebuilt binary.
        """
        with fatal_on_error():
            ensure_self_up_to_date(self.session, Path(script_source))
