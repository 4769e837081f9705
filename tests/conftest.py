"""Shared fixtures: a scripted stand-in for the docker CLI."""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence

import pytest

from multiarch_build.builds.invoker import InvocationResult


def command_kind(args: Sequence[str]) -> str:
    """Classify docker arguments as build, push, manifest-create or manifest-push."""
    if args[0] == "buildx":
        return "build"
    if args[0] == "push":
        return "push"
    return f"manifest-{args[1]}"


class FakeInvoker:
    """Records every invocation and fails those matching ``fail_on``.

    Args:
        fail_on: Argument values; a command containing any of them fails.
        stderr: Error output returned by failing commands.
        hook: Optional callable run on every invocation before returning.
        fail_if: Optional predicate; commands it accepts fail.
    """

    def __init__(
        self,
        fail_on: Sequence[str] = (),
        stderr: bytes = b"boom",
        hook: Callable[[list[str]], None] | None = None,
        fail_if: Callable[[list[str]], bool] | None = None,
    ) -> None:
        self.fail_on = set(fail_on)
        self.stderr = stderr
        self.hook = hook
        self.fail_if = fail_if
        self.calls: list[list[str]] = []
        self._lock = threading.Lock()

    def invoke(self, args: Sequence[str]) -> InvocationResult:
        args = list(args)
        with self._lock:
            self.calls.append(args)
        if self.hook is not None:
            self.hook(args)
        failed = bool(self.fail_on.intersection(args))
        if self.fail_if is not None and self.fail_if(args):
            failed = True
        if failed:
            return InvocationResult(
                stdout=b"", stderr=self.stderr, success=False, returncode=1
            )
        return InvocationResult(stdout=b"ok", stderr=b"", success=True, returncode=0)

    def calls_of(self, kind: str) -> list[list[str]]:
        with self._lock:
            return [c for c in self.calls if command_kind(c) == kind]


@pytest.fixture
def fake_invoker() -> FakeInvoker:
    """A fake invoker where every command succeeds."""
    return FakeInvoker()
