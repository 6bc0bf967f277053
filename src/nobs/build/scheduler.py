"""Bounded-parallelism process scheduler.

Executes the job graph of one target as external processes. A single
coordinating loop polls running processes without blocking, records finished
compile jobs in the build cache, and starts new jobs while capacity remains:

    1. Reap: poll every running process; a nonzero exit aborts the build
    2. Complete: mark the job COMPLETED and persist its build record
    3. Fill: start eligible PENDING jobs until max_parallel are in flight
    4. Back off: sleep briefly if nothing could be started

Jobs become eligible strictly in ascending index order. Compile jobs have no
dependencies; the link job (last index) is only eligible once every compile
job of the target is COMPLETED. On failure, processes already running are
left to finish on their own and no new job is started.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from ..output import GREEN, GREEN_FAINT, log, log_error, log_job_status, log_success
from . import build_record
from .errors import BuildError, JobFailedError
from .launcher import ProcessLauncher
from .models import BuildJob, CompileJob, JobStatus, LinkJob, TargetBuildState
from .toolchain import Toolchain

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.01


@dataclass
class RunningProcess:
    """A job whose process is in flight."""

    job_index: int
    handle: Any


class JobScheduler:
    """Runs the jobs of a target build state with at most max_parallel processes.

    Usage:
        scheduler = JobScheduler(launcher, toolchain, max_parallel=4, cwd=project_dir)
        scheduler.run(state)  # raises JobFailedError on the first failing job
    """

    def __init__(
        self,
        launcher: ProcessLauncher,
        toolchain: Toolchain,
        max_parallel: int,
        cwd: Path,
        poll_interval: float = POLL_INTERVAL,
    ) -> None:
        self.launcher = launcher
        self.toolchain = toolchain
        self.max_parallel = max(1, max_parallel)
        self.cwd = cwd
        self.poll_interval = poll_interval

    def run(self, state: TargetBuildState) -> None:
        """Execute all jobs of state until every one is COMPLETED.

        Args:
            state: Planned build state of a target

        Raises:
            JobFailedError: If a process exits nonzero (exit_code is the process's)
            ProcessLaunchError: If a process cannot be started
        """
        target_name = state.target.name

        if not state.compile_jobs:
            log(f"Nothing to build for target {target_name}.", GREEN)
            return

        jobs = state.jobs()
        total = len(jobs)
        log(f"Running build of {target_name} with {len(state.compile_jobs)} jobs (max {self.max_parallel} parallel)...", GREEN)

        running: list[RunningProcess] = []

        while not state.is_complete():
            self._reap(jobs, running)

            started = 0
            while len(running) < self.max_parallel:
                index = self._next_eligible(jobs)
                if index is None:
                    break
                self._start(jobs, index, running, total)
                started += 1

            if started:
                continue
            if running:
                time.sleep(self.poll_interval)
            elif not state.is_complete():
                raise BuildError(f"No runnable job left for target {target_name}")

        logger.info(f"[{target_name}] all {total} jobs completed")

    def _next_eligible(self, jobs: list[BuildJob]) -> Optional[int]:
        """Index of the lowest PENDING job if its dependencies are COMPLETED."""
        for index, job in enumerate(jobs):
            if job.status != JobStatus.PENDING:
                continue
            match job:
                case LinkJob(dependencies=dependencies):
                    if any(jobs[dep].status != JobStatus.COMPLETED for dep in dependencies):
                        return None
            return index
        return None

    def _command_for(self, job: BuildJob) -> tuple[str, str, list[str]]:
        """Return (verb, style, argv) for a job."""
        match job:
            case CompileJob():
                return "Compiling", GREEN_FAINT, self.toolchain.compile_command(job)
            case LinkJob():
                return self.toolchain.link_verb(job), GREEN, self.toolchain.link_command(job)
        raise TypeError(f"Unknown job type: {type(job).__name__}")

    def _start(self, jobs: list[BuildJob], index: int, running: list[RunningProcess], total: int) -> None:
        job = jobs[index]
        verb, style, command = self._command_for(job)

        completed = sum(1 for j in jobs if j.status == JobStatus.COMPLETED)
        percent = (completed + len(running) + 1) * 100 // total
        log_job_status(percent, index + 1, total, verb, command, style)

        handle = self.launcher.spawn(command, self.cwd)
        job.status = JobStatus.RUNNING
        job.start_time = time.monotonic()
        running.append(RunningProcess(job_index=index, handle=handle))
        logger.debug(f"Started job {index + 1}/{total}: {verb}")

    def _reap(self, jobs: list[BuildJob], running: list[RunningProcess]) -> None:
        for process in list(running):
            exit_code = self.launcher.poll(process.handle)
            if exit_code is None:
                continue

            running.remove(process)
            job = jobs[process.job_index]
            job.exit_code = exit_code
            job.end_time = time.monotonic()

            if exit_code != 0:
                job.status = JobStatus.FAILED
                log_error(f"Command failed with code {exit_code}. Stopping build.")
                raise JobFailedError(f"Job {process.job_index + 1} failed with exit code {exit_code}", exit_code, job)

            job.status = JobStatus.COMPLETED
            logger.debug(f"Job {process.job_index + 1} finished in {job.duration():.2f}s")
            match job:
                case CompileJob(record=record):
                    build_record.record_built(record)
                case LinkJob():
                    log_success("Linking completed successfully.")
