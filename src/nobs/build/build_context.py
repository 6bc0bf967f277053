"""Build Session - explicit context for one invocation of the build engine.

This module defines:
- BuildSession: everything the engine needs that would otherwise be global
  (registered targets, the per-target build-state table, build and project
  directories, parallelism, clean mode, toolchain and process launcher)

Design:
    The caller creates one BuildSession, registers targets on it and hands it
    to the planner, scheduler and self-rebuild bootstrap. Several sessions can
    coexist (e.g. in tests) without sharing state. Build states are created
    lazily per target name and live only as long as the session; the sidecar
    build records are what survives between runs.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import psutil

from .errors import PlanningError
from .launcher import ProcessLauncher, SubprocessLauncher
from .models import Target, TargetBuildState
from .toolchain import Toolchain

logger = logging.getLogger(__name__)

DEFAULT_BUILD_DIRECTORY = Path("./build_dir")


def hardware_parallelism() -> int:
    """Number of logical CPUs, at least 1."""
    return psutil.cpu_count(logical=True) or 1


@dataclass
class BuildSession:
    """Context shared by all build engine entry points.

    Attributes:
        build_directory: Root of build artifacts (mirrors the source tree)
        project_directory: Directory source paths are relative to
        parallel_jobs: Maximum number of processes in flight
        clean_mode: If True, build_target removes the build directory instead of building
        toolchain: Compiler, linker and archiver commands
        launcher: Process launcher used to spawn tools and replace the process image
        targets: Targets registered in this session, in registration order
        target_build_states: Per-target build state, keyed by target name
    """

    build_directory: Path = DEFAULT_BUILD_DIRECTORY
    project_directory: Path = field(default_factory=Path.cwd)
    parallel_jobs: int = field(default_factory=hardware_parallelism)
    clean_mode: bool = False
    toolchain: Toolchain = field(default_factory=Toolchain)
    launcher: ProcessLauncher = field(default_factory=SubprocessLauncher)
    targets: list[Target] = field(default_factory=list)
    target_build_states: dict[str, TargetBuildState] = field(default_factory=dict)

    @classmethod
    def from_environment(cls, environ: Optional[dict[str, str]] = None) -> "BuildSession":
        """Create a session with overrides from NOBS_* environment variables.

        Recognized variables: NOBS_BUILD_DIR, NOBS_JOBS, NOBS_COMPILER,
        NOBS_LINKER, NOBS_ARCHIVER.

        Raises:
            PlanningError: If NOBS_JOBS is not an integer
        """
        env = os.environ if environ is None else environ
        session = cls()

        if "NOBS_BUILD_DIR" in env:
            session.build_directory = Path(env["NOBS_BUILD_DIR"])
        if "NOBS_JOBS" in env:
            try:
                session.set_parallel_jobs(int(env["NOBS_JOBS"]))
            except ValueError as e:
                raise PlanningError(f"Invalid NOBS_JOBS value: {env['NOBS_JOBS']}") from e
        if "NOBS_COMPILER" in env:
            session.toolchain.compiler = env["NOBS_COMPILER"]
        if "NOBS_LINKER" in env:
            session.toolchain.linker = env["NOBS_LINKER"]
        if "NOBS_ARCHIVER" in env:
            session.toolchain.archiver = env["NOBS_ARCHIVER"]

        logger.debug(f"Session from environment: {session.build_directory}, {session.parallel_jobs} jobs")
        return session

    def set_parallel_jobs(self, num_jobs: int) -> None:
        """Set the maximum number of parallel processes (at least 1)."""
        self.parallel_jobs = num_jobs if num_jobs > 0 else 1

    def get_target_build_state(self, target: Target) -> TargetBuildState:
        """Look up the build state of a target, creating it on first use."""
        state = self.target_build_states.get(target.name)
        if state is None:
            state = TargetBuildState(target=target)
            self.target_build_states[target.name] = state
            logger.debug(f"Created build state for target {target.name}")
        return state

    def canonical_build_directory(self) -> Path:
        """Create the build directory if missing and return its resolved path.

        Relative build directories are taken relative to the project directory.

        Raises:
            PlanningError: If the directory cannot be created
        """
        build_dir = self.project_directory / self.build_directory
        create_directory_if_missing(build_dir)
        return build_dir.resolve()

    def relative_source_path(self, source: Path) -> Path:
        """Normalize a source path to the project-relative form used as cache key."""
        if source.is_absolute():
            return Path(os.path.relpath(source, self.project_directory))
        return Path(os.path.normpath(source))


def create_directory_if_missing(directory: Path) -> None:
    """Create directory and its parents.

    Raises:
        PlanningError: If the directory cannot be created
    """
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PlanningError(f"Could not create directory {directory}: {e}") from e
