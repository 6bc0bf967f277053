"""Pytest configuration and fixtures for nobs tests.

Provides:
- FakeLauncher: an in-process ProcessLauncher whose "processes" finish after a
  fixed number of polls, recording start/end events for ordering checks
- project_dir: a temporary project with the three sources of the demo target
- session: a BuildSession rooted at project_dir using FakeLauncher
"""

import sys
from pathlib import Path
from typing import Optional

import pytest

from nobs.build.build_context import BuildSession
from nobs.build.toolchain import Toolchain


class FakeProcess:
    """Handle returned by FakeLauncher.spawn."""

    def __init__(self, pid: int, command: list[str], polls: int, exit_code: int):
        self.pid = pid
        self.command = command
        self.remaining_polls = polls
        self.exit_code = exit_code
        self.finished = False


class FakeLauncher:
    """ProcessLauncher that runs nothing.

    Each spawned command finishes after `polls_until_exit` polls with exit
    code 0, or with the code configured in `fail_sources` for the source
    file name it compiles. Successful commands create the file following
    "-o" so the build leaves the same artifacts as a real toolchain.
    """

    def __init__(self, polls_until_exit: int = 2, fail_sources: Optional[dict[str, int]] = None, create_outputs: bool = True):
        self.polls_until_exit = polls_until_exit
        self.fail_sources = fail_sources or {}
        self.create_outputs = create_outputs
        self.spawned: list[list[str]] = []
        self.events: list[tuple[str, int]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.replaced_with: Optional[list[str]] = None

    def spawn(self, command: list[str], cwd: Path) -> FakeProcess:
        exit_code = self.fail_sources.get(Path(command[-1]).name, 0)
        process = FakeProcess(len(self.spawned), command, self.polls_until_exit, exit_code)
        self.spawned.append(command)
        self.events.append(("start", process.pid))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        return process

    def poll(self, handle: FakeProcess) -> Optional[int]:
        if not handle.finished:
            handle.remaining_polls -= 1
            if handle.remaining_polls > 0:
                return None
            handle.finished = True
            self.in_flight -= 1
            self.events.append(("end", handle.pid))
            if handle.exit_code == 0 and self.create_outputs and "-o" in handle.command:
                output = Path(handle.command[handle.command.index("-o") + 1])
                output.parent.mkdir(parents=True, exist_ok=True)
                output.write_text("built")
        return handle.exit_code

    def replace_image(self, command: list[str]) -> None:
        self.replaced_with = command

    def start_index(self, pid: int) -> int:
        return self.events.index(("start", pid))

    def end_index(self, pid: int) -> int:
        return self.events.index(("end", pid))


DEMO_SOURCES = ("main.cpp", "foo.cpp", "subdir/bar.cpp")


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Temporary project containing the demo sources."""
    project = tmp_path / "project"
    for source in DEMO_SOURCES:
        path = project / source
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"// {source}\n")
    return project


@pytest.fixture
def fake_launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def make_launcher():
    """The FakeLauncher class, for tests that need a configured instance."""
    return FakeLauncher


@pytest.fixture
def make_session(project_dir: Path):
    """Factory for fresh sessions on the same project (one per simulated run)."""

    def _make(launcher=None, parallel_jobs: int = 2) -> BuildSession:
        return BuildSession(
            project_directory=project_dir,
            parallel_jobs=parallel_jobs,
            toolchain=Toolchain(),
            launcher=launcher if launcher is not None else FakeLauncher(),
        )

    return _make


@pytest.fixture
def session(make_session, fake_launcher: FakeLauncher) -> BuildSession:
    return make_session(fake_launcher)


@pytest.fixture
def fake_compiler(tmp_path: Path) -> Path:
    """Executable script standing in for g++/ar.

    Writes its argv into the file following "-o" (or the archive after "rcs"),
    and exits 3 when the source it compiles contains "#error".
    """
    script = tmp_path / "fake-cc"
    script.write_text(
        f"#!{sys.executable}\n"
        "import pathlib\n"
        "import sys\n"
        "args = sys.argv[1:]\n"
        "if '-c' in args and '#error' in pathlib.Path(args[-1]).read_text():\n"
        "    print('fake-cc: error in ' + args[-1], file=sys.stderr)\n"
        "    sys.exit(3)\n"
        "out = pathlib.Path(args[args.index('-o') + 1] if '-o' in args else args[1])\n"
        "out.parent.mkdir(parents=True, exist_ok=True)\n"
        "out.write_text(' '.join(args))\n"
    )
    script.chmod(0o755)
    return script


@pytest.fixture(autouse=True)
def _restore_stdio():  # noqa: PT004
    """Ensure stdout/stderr are always restored after each test."""
    yield

    if sys.stdout.closed:
        sys.stdout = sys.__stdout__
    if sys.stderr.closed:
        sys.stderr = sys.__stderr__
