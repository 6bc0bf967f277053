"""Self-rebuild bootstrap.

The build description is itself a compiled program. Before building anything
else it checks its own source through the same build record cache; when the
source changed it recompiles and relinks itself in place, removes the
intermediate object, and replaces the running process with the new binary.
"""

import logging
from pathlib import Path

from ..output import GREEN, YELLOW, log
from .build_context import BuildSession
from .errors import SelfRebuildError
from .models import Target, TargetKind
from .planner import object_file_path, plan_target, target_file_path
from .scheduler import JobScheduler

logger = logging.getLogger(__name__)

DEFAULT_CPP_STANDARD = "--std=c++23"


def self_target(script_source: Path) -> Target:
    """One-source executable target named after the build script's stem."""
    return Target(
        name=script_source.stem,
        kind=TargetKind.EXECUTABLE,
        sources=[script_source],
        compile_flags=[DEFAULT_CPP_STANDARD],
    )


def clean_target_build_artifacts(session: BuildSession, target: Target, use_build_dir: bool) -> None:
    """Delete the object files of target.

    The binary and the build records stay: the records are what tells the next
    run that the script is already up to date.
    """
    for source in target.sources:
        object_file = object_file_path(session, session.relative_source_path(source), use_build_dir)
        object_file.unlink(missing_ok=True)
        logger.debug(f"Removed intermediate object {object_file}")


def ensure_self_up_to_date(session: BuildSession, script_source: Path) -> None:
    """Rebuild the build script and restart into it if its source changed.

    Returns normally when the script is up to date. Otherwise never returns:
    the process image is replaced by the rebuilt binary, started without
    arguments.

    Args:
        session: Build session (toolchain, launcher, project directory)
        script_source: Source file of the running build script

    Raises:
        PlanningError: If the record of the script is corrupt
        JobFailedError: If compiling or linking the script fails
        SelfRebuildError: If the process image cannot be replaced
    """
    log(f"Nobs self rebuild active. File {script_source.resolve()} will be checked for changes every time build process is run", YELLOW, verbose_only=True)

    target = self_target(script_source)
    session.targets.append(target)
    state = plan_target(session, target, use_build_dir=False)

    if not state.needs_linking:
        log("Nobs build script has not changed. No need to rebuild.", GREEN)
        return

    scheduler = JobScheduler(session.launcher, session.toolchain, session.parallel_jobs, session.project_directory)
    scheduler.run(state)
    clean_target_build_artifacts(session, target, use_build_dir=False)

    binary = str(target_file_path(session, target, use_build_dir=False))
    log(f"Restarting with new binary: {binary}", YELLOW)

    try:
        session.launcher.replace_image([binary])
    except OSError as e:
        raise SelfRebuildError(f"Failed to restart with {binary}: {e}") from e
