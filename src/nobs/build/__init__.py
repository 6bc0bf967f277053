"""Incremental build engine: change detection, job graph, scheduler, self-rebuild."""

from .build_context import BuildSession
from .errors import (
    BuildError,
    JobFailedError,
    MalformedRecordError,
    PlanningError,
    ProcessLaunchError,
    SelfRebuildError,
)
from .models import BuildRecord, CompileJob, JobStatus, LinkJob, Target, TargetBuildState, TargetKind
from .planner import plan_target
from .scheduler import JobScheduler
from .self_rebuild import ensure_self_up_to_date

__all__ = [
    "BuildError",
    "BuildRecord",
    "BuildSession",
    "CompileJob",
    "JobFailedError",
    "JobScheduler",
    "JobStatus",
    "LinkJob",
    "MalformedRecordError",
    "PlanningError",
    "ProcessLaunchError",
    "SelfRebuildError",
    "Target",
    "TargetBuildState",
    "TargetKind",
    "ensure_self_up_to_date",
    "plan_target",
]
