"""Build description of the demo program.

Run from this directory:

    python build.py          # incremental build into ./build_dir
    python build.py -m 8     # at most 8 compiler processes
    python build.py --clean  # remove ./build_dir
"""

from pathlib import Path

from nobs import Project


def main() -> None:
    project = Project()
    project.set_project_directory(Path(__file__).parent)
    project.enable_command_line_params()

    demo = project.add_executable("demo")
    project.add_target_sources(demo, ["main.cpp", "foo.cpp", "subdir/bar.cpp"])
    project.add_target_compile_flag(demo, "-std=c++23")
    project.build_target(demo)


if __name__ == "__main__":
    main()
