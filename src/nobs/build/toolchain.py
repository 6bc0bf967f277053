"""Compiler, linker and archiver command construction.

Turns the fields of a job into the argv of the external tool that executes
it. Executables are linked with the linker; static libraries are archived.
"""

from dataclasses import dataclass

from .models import CompileJob, LinkJob, TargetKind

COMPILE_FLAG = "-c"
OUTPUT_FLAG = "-o"
ARCHIVE_FLAGS = "rcs"


@dataclass
class Toolchain:
    """External tools used to build targets.

    Attributes:
        compiler: Compiler executable (e.g. "g++")
        linker: Linker executable used for executables
        archiver: Archiver executable used for static libraries
    """

    compiler: str = "g++"
    linker: str = "g++"
    archiver: str = "ar"

    def compile_command(self, job: CompileJob) -> list[str]:
        """Build the compiler argv for a compile job."""
        return [
            self.compiler,
            *job.compile_flags.split(),
            COMPILE_FLAG,
            OUTPUT_FLAG,
            str(job.object_file),
            str(job.source_file),
        ]

    def link_command(self, job: LinkJob) -> list[str]:
        """Build the linker (or archiver) argv for a link job."""
        objects = [str(obj) for obj in job.object_files]
        if job.kind == TargetKind.STATIC_LIBRARY:
            return [self.archiver, ARCHIVE_FLAGS, str(job.target_file), *objects]
        return [self.linker, OUTPUT_FLAG, str(job.target_file), *objects, *job.link_flags.split()]

    @staticmethod
    def link_verb(job: LinkJob) -> str:
        return "Archiving" if job.kind == TargetKind.STATIC_LIBRARY else "Linking"
