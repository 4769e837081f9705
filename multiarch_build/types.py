"""Shared type definitions for multiarch_build.

This module contains enums shared across subpackages to avoid circular
imports.
"""

from enum import Enum, IntEnum


class Architecture(str, Enum):
    """Supported target architectures (Dockerfile suffixes)."""

    ARM32V7 = "arm32v7"
    ARM64 = "arm64"
    AMD64 = "amd64"

    @property
    def platform(self) -> str:
        """Return the buildx platform string for this architecture."""
        return PLATFORMS[self]


PLATFORMS: dict[Architecture, str] = {
    Architecture.ARM32V7: "linux/arm/v7",
    Architecture.ARM64: "linux/arm64",
    Architecture.AMD64: "linux/amd64",
}


class UnitStatus(str, Enum):
    """Outcome of a single build unit or of the manifest step."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class ExitCode(IntEnum):
    """Process exit codes, one per error class."""

    OK = 0
    BUILD_FAILED = 1
    USAGE = 2
    MALFORMED_DEFINITION = 3
    UNSUPPORTED_ARCH = 4
    DISCOVERY = 5


__all__ = [
    "PLATFORMS",
    "Architecture",
    "ExitCode",
    "UnitStatus",
]
