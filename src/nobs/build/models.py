"""Data models for the build engine.

Defines the core dataclasses used by the planner and the scheduler:
- Target: user-declared build unit (executable or static library)
- JobStatus: Enum tracking the lifecycle of a job
- CompileJob / LinkJob: the two job variants sharing the Job envelope
- TargetBuildState: per-target jobs derived for one invocation
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union


class TargetKind(Enum):
    """Kind of artifact a target produces."""

    EXECUTABLE = "executable"
    STATIC_LIBRARY = "static_library"


@dataclass
class Target:
    """A named build unit.

    Attributes:
        name: Unique target name, used as the artifact stem
        kind: Executable or static library
        sources: Ordered source file paths
        compile_flags: Ordered compile flag tokens
    """

    name: str
    kind: TargetKind = TargetKind.EXECUTABLE
    sources: list[Path] = field(default_factory=list)
    compile_flags: list[str] = field(default_factory=list)

    def flattened_flags(self) -> str:
        """Join the compile flags into the single string stored in build records."""
        return " ".join(self.compile_flags)


class JobStatus(Enum):
    """State of a build job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class BuildRecord:
    """Fingerprint of the last successful compile of one source file.

    Attributes:
        source_file: Source path relative to the project directory
        object_file: Absolute object file path
        compile_flags: Flattened compile flags string (order sensitive)
        source_timestamp: Source modification time in nanoseconds, 0 if absent
    """

    source_file: Path
    object_file: Path
    compile_flags: str
    source_timestamp: int


@dataclass
class Job:
    """Status envelope shared by compile and link jobs."""

    status: JobStatus = field(default=JobStatus.PENDING, init=False)
    exit_code: Optional[int] = field(default=None, init=False)
    start_time: Optional[float] = field(default=None, init=False)
    end_time: Optional[float] = field(default=None, init=False)

    def duration(self) -> Optional[float]:
        """Get job duration in seconds."""
        if self.start_time is not None and self.end_time is not None:
            return self.end_time - self.start_time
        return None


@dataclass
class CompileJob(Job):
    """Compile one stale source file into its object file."""

    record: BuildRecord

    @property
    def source_file(self) -> Path:
        return self.record.source_file

    @property
    def object_file(self) -> Path:
        return self.record.object_file

    @property
    def compile_flags(self) -> str:
        return self.record.compile_flags


@dataclass
class LinkJob(Job):
    """Link (or archive) all object files of a target into its artifact.

    Attributes:
        object_files: Object files of every source of the target, in source order
        target_file: Path of the produced binary or archive
        link_flags: Flattened link flags string (always empty in this revision)
        kind: Kind of the owning target, selects linker or archiver
        dependencies: Indices of the compile jobs this job waits for
    """

    object_files: list[Path] = field(default_factory=list)
    target_file: Path = field(default=Path())
    link_flags: str = ""
    kind: TargetKind = TargetKind.EXECUTABLE
    dependencies: list[int] = field(default_factory=list)


BuildJob = Union[CompileJob, LinkJob]


@dataclass
class TargetBuildState:
    """Jobs derived for one target during one invocation.

    Attributes:
        target: The target description this state belongs to
        compile_jobs: Compile jobs for stale sources only
        link_job: The link job, present only when needs_linking is set
        needs_linking: True once any compile job was added this run
        depends_on_targets: Build states of targets linked into this one
    """

    target: Target
    compile_jobs: list[CompileJob] = field(default_factory=list)
    link_job: Optional[LinkJob] = None
    needs_linking: bool = False
    depends_on_targets: list["TargetBuildState"] = field(default_factory=list)

    def reset(self, target: Target) -> None:
        """Drop the jobs of a previous plan so the next plan starts empty."""
        self.target = target
        self.compile_jobs = []
        self.link_job = None
        self.needs_linking = False

    def add_compile_job(self, record: BuildRecord) -> CompileJob:
        job = CompileJob(record=record)
        self.compile_jobs.append(job)
        self.needs_linking = True
        return job

    def jobs(self) -> list[BuildJob]:
        """All jobs in scheduling order: compile jobs first, then the link job."""
        jobs: list[BuildJob] = list(self.compile_jobs)
        if self.link_job is not None:
            jobs.append(self.link_job)
        return jobs

    def has_compilation_finished(self) -> bool:
        return all(job.status == JobStatus.COMPLETED for job in self.compile_jobs)

    def has_linking_finished(self) -> bool:
        return self.link_job is not None and self.link_job.status == JobStatus.COMPLETED

    def is_complete(self) -> bool:
        """True once every planned job is COMPLETED."""
        if self.link_job is None:
            return self.has_compilation_finished()
        return self.has_compilation_finished() and self.has_linking_finished()
