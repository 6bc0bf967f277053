"""Tests for job graph construction and cache-driven job selection."""

import os
from pathlib import Path

import pytest

from nobs.build import build_record
from nobs.build.errors import MalformedRecordError
from nobs.build.models import Target, TargetBuildState, TargetKind
from nobs.build.planner import object_file_path, plan_target, target_file_path


def _demo_target(flags=("-std=c++23",)) -> Target:
    return Target(
        name="demo",
        sources=[Path("main.cpp"), Path("foo.cpp"), Path("subdir/bar.cpp")],
        compile_flags=list(flags),
    )


def _mark_built(state: TargetBuildState) -> None:
    """Persist records as the scheduler does after successful compiles."""
    for job in state.compile_jobs:
        build_record.record_built(job.record)


def _touch(path: Path) -> None:
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))


class TestObjectPaths:
    def test_objects_mirror_source_tree_under_build_dir(self, session, project_dir):
        build_dir = (project_dir / "build_dir").resolve()
        assert object_file_path(session, Path("subdir/bar.cpp")) == build_dir / "subdir" / "bar.cpp.o"
        assert object_file_path(session, Path("main.cpp")) == build_dir / "main.cpp.o"

    def test_in_place_objects_sit_next_to_source(self, session, project_dir):
        obj = object_file_path(session, Path("subdir/bar.cpp"), use_build_dir=False)
        assert obj == project_dir.resolve() / "subdir" / "bar.cpp.o"

    def test_target_files(self, session, project_dir):
        build_dir = (project_dir / "build_dir").resolve()
        assert target_file_path(session, Target(name="demo")) == build_dir / "demo"
        library = Target(name="util", kind=TargetKind.STATIC_LIBRARY)
        assert target_file_path(session, library) == build_dir / "libutil.a"
        assert target_file_path(session, Target(name="build"), use_build_dir=False) == project_dir.resolve() / "build"

    def test_same_name_in_different_directories_does_not_collide(self, session, project_dir):
        (project_dir / "subdir2").mkdir()
        (project_dir / "subdir2" / "bar.cpp").write_text("// other bar\n")
        target = Target(name="demo", sources=[Path("subdir/bar.cpp"), Path("subdir2/bar.cpp")])

        state = plan_target(session, target)

        objects = {job.object_file for job in state.compile_jobs}
        assert len(objects) == 2


class TestPlanTarget:
    def test_first_build_compiles_everything_and_links(self, session, project_dir):
        state = plan_target(session, _demo_target())

        assert [str(job.source_file) for job in state.compile_jobs] == ["main.cpp", "foo.cpp", "subdir/bar.cpp"]
        assert state.needs_linking
        assert state.link_job is not None
        assert state.link_job.dependencies == [0, 1, 2]
        assert state.link_job.target_file == (project_dir / "build_dir").resolve() / "demo"
        assert (project_dir / "build_dir" / "subdir").is_dir()

    def test_records_carry_flattened_flags_and_timestamp(self, session, project_dir):
        state = plan_target(session, _demo_target(flags=("-std=c++23", "-O2")))
        record = state.compile_jobs[0].record
        assert record.compile_flags == "-std=c++23 -O2"
        assert record.source_timestamp == (project_dir / "main.cpp").stat().st_mtime_ns
        assert record.source_file == Path("main.cpp")

    def test_second_plan_without_changes_is_empty(self, make_session):
        first = plan_target(make_session(), _demo_target())
        _mark_built(first)

        second = plan_target(make_session(), _demo_target())

        assert second.compile_jobs == []
        assert second.link_job is None
        assert not second.needs_linking

    def test_touching_one_source_recompiles_only_it(self, make_session, project_dir):
        _mark_built(plan_target(make_session(), _demo_target()))
        _touch(project_dir / "foo.cpp")

        state = plan_target(make_session(), _demo_target())

        assert [str(job.source_file) for job in state.compile_jobs] == ["foo.cpp"]
        assert state.link_job is not None
        assert state.link_job.dependencies == [0]
        # The link still takes every object of the target.
        assert len(state.link_job.object_files) == 3

    def test_flag_change_recompiles_sources_of_target(self, make_session):
        _mark_built(plan_target(make_session(), _demo_target()))

        state = plan_target(make_session(), _demo_target(flags=("-std=c++23", "-O2")))

        assert len(state.compile_jobs) == 3
        assert state.link_job is not None

    def test_absolute_and_relative_sources_share_cache_entry(self, make_session, project_dir):
        relative = Target(name="demo", sources=[Path("main.cpp")])
        _mark_built(plan_target(make_session(), relative))

        absolute = Target(name="demo", sources=[project_dir / "main.cpp"])
        state = plan_target(make_session(), absolute)

        assert state.compile_jobs == []

    def test_dotted_relative_path_is_normalized(self, make_session):
        _mark_built(plan_target(make_session(), Target(name="demo", sources=[Path("subdir/bar.cpp")])))
        state = plan_target(make_session(), Target(name="demo", sources=[Path("./subdir/../subdir/bar.cpp")]))
        assert state.compile_jobs == []

    def test_missing_source_plans_with_zero_timestamp(self, session):
        state = plan_target(session, Target(name="demo", sources=[Path("not_yet.cpp")]))
        assert state.compile_jobs[0].record.source_timestamp == 0

    def test_malformed_record_aborts_planning(self, make_session):
        first = plan_target(make_session(), _demo_target())
        _mark_built(first)
        build_record.record_path(first.compile_jobs[1].object_file).write_text("foo.cpp\n")

        with pytest.raises(MalformedRecordError):
            plan_target(make_session(), _demo_target())

    def test_in_place_plan(self, session, project_dir):
        target = Target(name="build", sources=[Path("main.cpp")])
        state = plan_target(session, target, use_build_dir=False)

        assert state.compile_jobs[0].object_file == project_dir.resolve() / "main.cpp.o"
        assert state.link_job is not None
        assert state.link_job.target_file == project_dir.resolve() / "build"

    def test_build_state_is_shared_per_target_name(self, session):
        target = _demo_target()
        state = plan_target(session, target)
        assert session.get_target_build_state(target) is state

    def test_replanning_in_same_session_starts_empty(self, session):
        target = _demo_target()
        first = plan_target(session, target)
        _mark_built(first)

        second = plan_target(session, target)

        assert second is first
        assert second.compile_jobs == []
        assert second.link_job is None
        assert not second.needs_linking
