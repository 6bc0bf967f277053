"""nobs - minimal incremental build orchestrator."""

from .api import Project
from .build.build_context import BuildSession
from .build.models import Target, TargetKind

__version__ = "0.1.0"

__all__ = ["BuildSession", "Project", "Target", "TargetKind", "__version__"]
