"""Error definitions for multiarch_build.

Every error carries a stable ``code`` for programmatic handling and an
``exit_code`` the CLI uses as the process status.
"""

from __future__ import annotations

from multiarch_build.types import Architecture, ExitCode

# Error code constants
BUILD_ERROR = "build_failed"
COMMAND_TIMEOUT = "command_timeout"
EXECUTION_ERROR = "execution_error"
INTERNAL_ERROR = "internal_error"
USAGE_ERROR = "usage_error"
MALFORMED_DEFINITION = "malformed_definition"
UNSUPPORTED_ARCH = "unsupported_arch"
DISCOVERY_ERROR = "discovery_error"


class MultiarchBuildError(Exception):
    """Base error for all multiarch_build failures."""

    exit_code: ExitCode = ExitCode.BUILD_FAILED

    def __init__(self, message: str, code: str = "error") -> None:
        super().__init__(message)
        self.code = code


class BuildError(MultiarchBuildError):
    """Raised when a build, push or manifest command fails.

    Attributes:
        step: Human-readable step name (e.g. "Building", "Pushing manifest").
        target: The Dockerfile or image reference the step operated on.
        diagnostic: Output reported by the build tool.
        returncode: Process exit code, if the process ran.
    """

    exit_code = ExitCode.BUILD_FAILED

    def __init__(
        self,
        step: str,
        target: str,
        diagnostic: str,
        returncode: int | None = None,
        code: str = BUILD_ERROR,
    ) -> None:
        diagnostic = diagnostic.strip()
        message = f"{step} {target} failed"
        if returncode is not None:
            message += f" (exit status {returncode})"
        if diagnostic:
            message += f": {diagnostic}"
        super().__init__(message, code=code)
        self.step = step
        self.target = target
        self.diagnostic = diagnostic
        self.returncode = returncode


class UsageError(MultiarchBuildError):
    """Raised when required configuration is missing."""

    exit_code = ExitCode.USAGE

    def __init__(self, message: str, code: str = USAGE_ERROR) -> None:
        super().__init__(message, code=code)


class MalformedDefinitionName(MultiarchBuildError):
    """Raised when a Dockerfile name does not have exactly two components."""

    exit_code = ExitCode.MALFORMED_DEFINITION

    def __init__(self, path: str, code: str = MALFORMED_DEFINITION) -> None:
        super().__init__(
            f"Wrong format for '{path}': expected Dockerfile.<architecture>",
            code=code,
        )
        self.path = path


class UnsupportedArchitecture(MultiarchBuildError):
    """Raised when a Dockerfile suffix is not a supported architecture."""

    exit_code = ExitCode.UNSUPPORTED_ARCH

    def __init__(self, path: str, arch: str, code: str = UNSUPPORTED_ARCH) -> None:
        supported = ", ".join(a.value for a in Architecture)
        super().__init__(
            f"Unsupported arch '{arch}' in '{path}' (supported: {supported})",
            code=code,
        )
        self.path = path
        self.arch = arch


class DiscoveryError(MultiarchBuildError):
    """Raised when the definitions directory cannot be walked."""

    exit_code = ExitCode.DISCOVERY

    def __init__(self, message: str, code: str = DISCOVERY_ERROR) -> None:
        super().__init__(message, code=code)


__all__ = [
    "BUILD_ERROR",
    "COMMAND_TIMEOUT",
    "DISCOVERY_ERROR",
    "EXECUTION_ERROR",
    "INTERNAL_ERROR",
    "MALFORMED_DEFINITION",
    "UNSUPPORTED_ARCH",
    "USAGE_ERROR",
    "BuildError",
    "DiscoveryError",
    "MalformedDefinitionName",
    "MultiarchBuildError",
    "UnsupportedArchitecture",
    "UsageError",
]
