"""Build orchestration engine.

This module handles:
- Running every per-architecture build (+ push) in parallel
- Collecting failures into a shared ErrorSink without losing any
- Waiting for all builds before the manifest step
- Closing the sink once no further error can be written

The manifest is skipped when an architecture build failed, unless
``manifest_on_failure`` is set.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from enum import Enum

from pydantic import BaseModel, ConfigDict

from multiarch_build.builds.invoker import Invoker
from multiarch_build.builds.sink import ErrorSink
from multiarch_build.builds.units import Buildable, BuildUnit, ManifestUnit
from multiarch_build.errors import INTERNAL_ERROR, BuildError
from multiarch_build.types import UnitStatus

logger = logging.getLogger(__name__)

NO_DEFINITIONS_NOTICE = "No Dockerfile found"


class OrchestratorState(str, Enum):
    """Lifecycle of an orchestration run."""

    IDLE = "idle"
    BUILDING = "building"
    MANIFEST_PENDING = "manifest_pending"
    DONE = "done"
    CLOSED = "closed"


class UnitResult(BaseModel):
    """Outcome of a single build unit."""

    model_config = ConfigDict(extra="forbid")

    name: str
    image_ref: str
    status: UnitStatus


class RunSummary(BaseModel):
    """Result of an orchestration run.

    Attributes:
        total: Number of build units.
        succeeded: Units whose build (and push) succeeded.
        failed: Units that reported an error.
        results: Per-unit results in unit order.
        manifest_name: Manifest name, if a manifest was requested.
        manifest_status: Manifest outcome, or None if not requested.
    """

    model_config = ConfigDict(extra="forbid")

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    results: list[UnitResult] = []
    manifest_name: str | None = None
    manifest_status: UnitStatus | None = None


class Orchestrator:
    """Drive build units through a parallel-then-sequential plan.

    Args:
        units: Per-architecture build units.
        manifest: Optional manifest built after all units.
        push: Push images (and the manifest) after building them.
        sink: Error sink; a fresh one is created if not given.
        max_workers: Parallel task limit (None = one per unit).
        manifest_on_failure: Run the manifest step even if a unit failed.
    """

    def __init__(
        self,
        units: Sequence[BuildUnit],
        manifest: ManifestUnit | None = None,
        push: bool = False,
        sink: ErrorSink | None = None,
        max_workers: int | None = None,
        manifest_on_failure: bool = False,
    ) -> None:
        self.units = units
        self.manifest = manifest
        self.push = push
        self.sink = sink if sink is not None else ErrorSink()
        self.max_workers = max_workers
        self.manifest_on_failure = manifest_on_failure
        self.summary: RunSummary | None = None
        self._state = OrchestratorState.IDLE
        self._state_lock = threading.Lock()

    @classmethod
    def for_build(
        cls,
        units: Sequence[BuildUnit],
        image_name: str,
        tag: str,
        manifest: bool = False,
        push: bool = False,
        invoker: Invoker | None = None,
        max_workers: int | None = None,
        manifest_on_failure: bool = False,
    ) -> Orchestrator:
        """Create an orchestrator, adding a manifest over ``units`` if asked."""
        manifest_unit = None
        if manifest:
            manifest_unit = ManifestUnit.create(image_name, tag, units, invoker=invoker)
        return cls(
            units,
            manifest=manifest_unit,
            push=push,
            max_workers=max_workers,
            manifest_on_failure=manifest_on_failure,
        )

    @property
    def state(self) -> OrchestratorState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: OrchestratorState) -> None:
        with self._state_lock:
            logger.debug("State: %s -> %s", self._state.value, state.value)
            self._state = state

    def _run_single(self, buildable: Buildable) -> bool:
        """Build and optionally push one buildable, reporting failures to the sink.

        Push never runs after a failed build.

        Returns:
            True if every step succeeded.
        """
        try:
            buildable.build()
            if self.push:
                buildable.push()
        except BuildError as e:
            logger.debug("Task for %s failed: %s", buildable.name, e)
            self.sink.put(e)
            return False
        except Exception as e:
            logger.exception("Unexpected error while building %s", buildable.name)
            self.sink.put(
                BuildError("Building", buildable.name, str(e), code=INTERNAL_ERROR)
            )
            return False
        return True

    def run(self) -> RunSummary:
        """Run all builds, then the manifest, then close the sink.

        Returns:
            RunSummary with per-unit and manifest outcomes.

        Raises:
            RuntimeError: If the orchestrator was already run.
        """
        with self._state_lock:
            if self._state is not OrchestratorState.IDLE:
                raise RuntimeError(
                    f"Orchestrator already run (state: {self._state.value})"
                )
            self._state = OrchestratorState.BUILDING

        summary = RunSummary(
            total=len(self.units),
            manifest_name=self.manifest.name if self.manifest else None,
        )
        self.summary = summary

        try:
            if not self.units:
                logger.warning(NO_DEFINITIONS_NOTICE)
                self._set_state(OrchestratorState.DONE)
                return summary

            workers = self.max_workers or len(self.units)
            logger.info(
                "Building %d image(s) with %d worker(s)", len(self.units), workers
            )

            with ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="build"
            ) as executor:
                futures = [
                    executor.submit(self._run_single, unit) for unit in self.units
                ]

                # Barrier: every unit task terminates before the manifest step
                outcomes = [future.result() for future in futures]

                for unit, ok in zip(self.units, outcomes):
                    summary.results.append(
                        UnitResult(
                            name=unit.name,
                            image_ref=unit.image_ref,
                            status=UnitStatus.SUCCEEDED if ok else UnitStatus.FAILED,
                        )
                    )
                summary.succeeded = sum(outcomes)
                summary.failed = len(outcomes) - summary.succeeded

                if self.manifest is not None:
                    if summary.failed and not self.manifest_on_failure:
                        logger.warning(
                            "Skipping manifest %s: %d build(s) failed",
                            self.manifest.name,
                            summary.failed,
                        )
                        summary.manifest_status = UnitStatus.SKIPPED
                    else:
                        self._set_state(OrchestratorState.MANIFEST_PENDING)
                        ok = executor.submit(self._run_single, self.manifest).result()
                        summary.manifest_status = (
                            UnitStatus.SUCCEEDED if ok else UnitStatus.FAILED
                        )

            self._set_state(OrchestratorState.DONE)
            return summary
        finally:
            self.sink.close()
            self._set_state(OrchestratorState.CLOSED)

    def start(self) -> threading.Thread:
        """Run the orchestrator on a background thread.

        The caller consumes ``self.sink`` while builds are running; iteration
        ends once the run completes.
        """
        thread = threading.Thread(target=self.run, name="orchestrator", daemon=False)
        thread.start()
        return thread


__all__ = [
    "NO_DEFINITIONS_NOTICE",
    "Orchestrator",
    "OrchestratorState",
    "RunSummary",
    "UnitResult",
]
