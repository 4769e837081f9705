"""Invocation of the external build tool.

This module handles:
- The narrow `Invoker` interface the build units depend on
- Running docker commands with subprocess and capturing output
- Enforcing optional per-command timeouts

Tests substitute a fake invoker returning scripted results, so the
orchestration logic never needs a real docker daemon.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from multiarch_build.errors import COMMAND_TIMEOUT, EXECUTION_ERROR

logger = logging.getLogger(__name__)


class InvocationError(Exception):
    """Raised when a command cannot be run to completion."""

    def __init__(self, message: str, code: str = EXECUTION_ERROR) -> None:
        super().__init__(message)
        self.code = code


@dataclass
class InvocationResult:
    """Result of a build tool invocation.

    Attributes:
        stdout: Captured standard output.
        stderr: Captured standard error.
        success: Whether the command succeeded.
        returncode: Process exit code, if known.
    """

    stdout: bytes
    stderr: bytes
    success: bool
    returncode: int | None = None

    @property
    def diagnostic(self) -> str:
        """Error text: stderr when present, stdout otherwise."""
        stream = self.stderr if self.stderr.strip() else self.stdout
        return stream.decode("utf-8", errors="replace")


class Invoker(Protocol):
    """Anything that can run a build tool command."""

    def invoke(self, args: Sequence[str]) -> InvocationResult: ...


class DockerInvoker:
    """Run commands through the docker CLI.

    Args:
        binary: Docker executable.
        cwd: Working directory (the build context).
        timeout: Per-command timeout in seconds (None = no timeout).
    """

    def __init__(
        self,
        binary: str = "docker",
        cwd: Path | None = None,
        timeout: int | None = None,
    ) -> None:
        self.binary = binary
        self.cwd = cwd
        self.timeout = timeout

    def invoke(self, args: Sequence[str]) -> InvocationResult:
        """Run ``docker <args>`` and capture its output.

        Raises:
            InvocationError: If the command cannot be started or times out.
        """
        cmd = [self.binary, *args]
        logger.debug("Executing: %s", shlex.join(cmd))

        try:
            result = subprocess.run(
                cmd,
                cwd=self.cwd,
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise InvocationError(
                f"{shlex.join(cmd)} timed out after {self.timeout} seconds",
                code=COMMAND_TIMEOUT,
            ) from e
        except OSError as e:
            raise InvocationError(
                f"Failed to execute {self.binary}: {e}",
                code=EXECUTION_ERROR,
            ) from e

        return InvocationResult(
            stdout=result.stdout or b"",
            stderr=result.stderr or b"",
            success=result.returncode == 0,
            returncode=result.returncode,
        )


__all__ = [
    "DockerInvoker",
    "InvocationError",
    "InvocationResult",
    "Invoker",
]
