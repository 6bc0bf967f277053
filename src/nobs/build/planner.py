"""Job graph construction.

Expands a target into the jobs that must run this invocation: one compile job
per source whose build record is stale, and, if any was added, one link job
depending on all of them. When every source is up to date no job is produced
and the previously built artifact is reused as-is.
"""

import logging
from pathlib import Path

from . import build_record
from .build_context import BuildSession, create_directory_if_missing
from .models import BuildRecord, LinkJob, Target, TargetBuildState, TargetKind

logger = logging.getLogger(__name__)

OBJECT_FILE_EXTENSION = ".o"
STATIC_LIBRARY_PREFIX = "lib"
STATIC_LIBRARY_EXTENSION = ".a"


def _output_root(session: BuildSession, use_build_dir: bool) -> Path:
    if use_build_dir:
        return session.canonical_build_directory()
    return session.project_directory.resolve()


def object_file_path(session: BuildSession, relative_source: Path, use_build_dir: bool = True) -> Path:
    """Derive the object file of a source.

    In the build directory the object mirrors the source's project-relative
    path, so same-named files in different directories never collide. In
    place, the object sits next to the source.
    """
    mirrored = _output_root(session, use_build_dir) / relative_source
    return mirrored.with_name(mirrored.name + OBJECT_FILE_EXTENSION)


def target_file_path(session: BuildSession, target: Target, use_build_dir: bool = True) -> Path:
    """Derive the artifact path of a target at the output root."""
    root = _output_root(session, use_build_dir)
    if target.kind == TargetKind.STATIC_LIBRARY:
        return root / f"{STATIC_LIBRARY_PREFIX}{target.name}{STATIC_LIBRARY_EXTENSION}"
    return root / target.name


def prepare_file_compilation(session: BuildSession, target: Target, flags: str, source: Path, use_build_dir: bool = True) -> None:
    """Add a compile job for source if its build record is stale.

    Raises:
        PlanningError: If the object directory cannot be created
        MalformedRecordError: If the stored record is corrupt
    """
    relative_source = session.relative_source_path(source)
    object_file = object_file_path(session, relative_source, use_build_dir)

    # Sidecar records are resolved inside the mirrored directory.
    create_directory_if_missing(object_file.parent)

    record = BuildRecord(
        source_file=relative_source,
        object_file=object_file,
        compile_flags=flags,
        source_timestamp=build_record.source_timestamp(session.project_directory / relative_source),
    )

    if build_record.is_up_to_date(record):
        logger.debug(f"[{target.name}] {relative_source} is up to date")
        return

    state = session.get_target_build_state(target)
    state.add_compile_job(record)
    logger.info(f"[{target.name}] {relative_source} needs compilation")


def prepare_target_compilation(session: BuildSession, target: Target, use_build_dir: bool = True) -> TargetBuildState:
    """Add compile jobs for every stale source of target, replacing any earlier plan."""
    state = session.get_target_build_state(target)
    state.reset(target)
    flags = target.flattened_flags()

    for source in target.sources:
        prepare_file_compilation(session, target, flags, source, use_build_dir)

    return state


def prepare_target_linking(session: BuildSession, target: Target, use_build_dir: bool = True) -> TargetBuildState:
    """Append the link job if any source of target was scheduled for compilation.

    The link job takes the objects of all sources, not only the rebuilt ones,
    and depends on every compile job of the target.
    """
    state = session.get_target_build_state(target)

    if not state.needs_linking:
        logger.debug(f"[{target.name}] nothing to link")
        return state

    object_files = [object_file_path(session, session.relative_source_path(source), use_build_dir) for source in target.sources]

    state.link_job = LinkJob(
        object_files=object_files,
        target_file=target_file_path(session, target, use_build_dir),
        link_flags="",
        kind=target.kind,
        dependencies=list(range(len(state.compile_jobs))),
    )
    return state


def plan_target(session: BuildSession, target: Target, use_build_dir: bool = True) -> TargetBuildState:
    """Build the job graph of target for this invocation.

    Args:
        session: Build session the target belongs to
        target: Target to plan
        use_build_dir: Place objects in the build directory (False: next to the sources)

    Returns:
        The target's build state with compile jobs limited to stale sources and,
        if any exist, exactly one link job appended

    Raises:
        PlanningError: If the build directory is unusable or a record is corrupt
    """
    prepare_target_compilation(session, target, use_build_dir)
    state = prepare_target_linking(session, target, use_build_dir)
    logger.info(f"[{target.name}] planned {len(state.compile_jobs)} compile jobs, link={state.link_job is not None}")
    return state
