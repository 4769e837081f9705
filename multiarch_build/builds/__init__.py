"""Build orchestration module.

This module handles:
- Composing docker build/push/manifest commands
- Invoking the docker CLI
- Running per-architecture builds in parallel
- Collecting build errors and creating the manifest
"""

from multiarch_build.builds.orchestrator import Orchestrator, RunSummary
from multiarch_build.builds.sink import ErrorSink
from multiarch_build.builds.units import BuildUnit, ManifestUnit

__all__ = ["BuildUnit", "ErrorSink", "ManifestUnit", "Orchestrator", "RunSummary"]
