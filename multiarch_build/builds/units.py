"""Buildable units: per-architecture images and the multi-arch manifest.

This module handles:
- Validating Dockerfile names and deriving platform and image references
- Composing the docker build/push/manifest commands
- Running them through an `Invoker` and turning failures into `BuildError`
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from multiarch_build.builds.invoker import DockerInvoker, InvocationError, Invoker
from multiarch_build.errors import (
    BuildError,
    MalformedDefinitionName,
    UnsupportedArchitecture,
)
from multiarch_build.types import Architecture

logger = logging.getLogger(__name__)

DEFINITION_COMPONENTS = 2
ARCH_INDEX = 1

# Commands are formatted as text then split on whitespace
BUILD_CMD = "buildx build --platform {platform} --rm -f {dockerfile} -t {image} ."
PUSH_IMAGE_CMD = "push {image}"
CREATE_MANIFEST_CMD = "manifest create {name}"
PUSH_MANIFEST_CMD = "manifest push {name} -p"


class Buildable(Protocol):
    """Anything that can be built and pushed."""

    @property
    def name(self) -> str: ...

    def build(self) -> None: ...

    def push(self) -> None: ...


def compose_build_command(platform: str, dockerfile: str, image: str) -> list[str]:
    """Compose the `docker buildx build` arguments for one architecture."""
    cmd = BUILD_CMD.format(platform=platform, dockerfile=dockerfile, image=image)
    return cmd.split()


def compose_push_command(image: str) -> list[str]:
    """Compose the `docker push` arguments for an image."""
    return PUSH_IMAGE_CMD.format(image=image).split()


def compose_manifest_create_command(name: str, images: Sequence[str]) -> list[str]:
    """Compose the `docker manifest create` arguments.

    Args:
        name: Manifest name (``image:tag``).
        images: Image references to amend, in order.

    Returns:
        Command arguments, one ``--amend <image>`` pair per image.
    """
    parts = [name]
    for image in images:
        parts.extend(["--amend", image])
    return CREATE_MANIFEST_CMD.format(name=" ".join(parts)).split()


def compose_manifest_push_command(name: str) -> list[str]:
    """Compose the `docker manifest push` arguments (purging the local list)."""
    return PUSH_MANIFEST_CMD.format(name=name).split()


def _execute(invoker: Invoker, args: list[str], step: str, target: str) -> None:
    """Run a command, raising BuildError with the tool's diagnostic on failure."""
    logger.info("%s %s", step, target)
    try:
        result = invoker.invoke(args)
    except InvocationError as e:
        raise BuildError(step, target, str(e), code=e.code) from e

    if not result.success:
        raise BuildError(step, target, result.diagnostic, returncode=result.returncode)
    logger.info("%s %s: done", step, target)


def parse_architecture(definition_path: str) -> Architecture:
    """Extract the architecture from a ``Dockerfile.<arch>`` path.

    Raises:
        MalformedDefinitionName: If the path does not have exactly two
            dot-separated components.
        UnsupportedArchitecture: If the suffix is not a supported architecture.
    """
    components = definition_path.split(".")
    if len(components) != DEFINITION_COMPONENTS:
        raise MalformedDefinitionName(definition_path)

    suffix = components[ARCH_INDEX]
    try:
        return Architecture(suffix)
    except ValueError:
        raise UnsupportedArchitecture(definition_path, suffix) from None


@dataclass(frozen=True)
class BuildUnit:
    """A docker image build for one architecture.

    Attributes:
        definition_path: Dockerfile path, relative to the build context.
        architecture: Target architecture.
        platform: buildx platform string for the architecture.
        image_ref: Complete image reference (``name:arch-tag``).
    """

    definition_path: str
    architecture: Architecture
    platform: str
    image_ref: str
    invoker: Invoker = field(
        default_factory=DockerInvoker, repr=False, compare=False
    )

    @classmethod
    def create(
        cls,
        definition_path: str,
        image_name: str,
        tag: str,
        invoker: Invoker | None = None,
    ) -> BuildUnit:
        """Create a build unit, validating the Dockerfile name.

        Raises:
            MalformedDefinitionName: If the name is not ``prefix.arch``.
            UnsupportedArchitecture: If the architecture is not supported.
        """
        arch = parse_architecture(definition_path)
        return cls(
            definition_path=definition_path,
            architecture=arch,
            platform=arch.platform,
            image_ref=f"{image_name}:{arch.value}-{tag}",
            invoker=invoker if invoker is not None else DockerInvoker(),
        )

    @property
    def name(self) -> str:
        return self.definition_path

    def build_command(self) -> list[str]:
        return compose_build_command(
            self.platform, self.definition_path, self.image_ref
        )

    def push_command(self) -> list[str]:
        return compose_push_command(self.image_ref)

    def build(self) -> None:
        _execute(self.invoker, self.build_command(), "Building", self.definition_path)

    def push(self) -> None:
        _execute(self.invoker, self.push_command(), "Pushing", self.image_ref)


@dataclass
class ManifestUnit:
    """A multi-arch manifest referencing a set of build units.

    ``builds`` is kept by reference, so the manifest always sees the final
    list of units it was created for.
    """

    name: str
    builds: Sequence[BuildUnit]
    invoker: Invoker = field(default_factory=DockerInvoker, repr=False)

    @classmethod
    def create(
        cls,
        image_name: str,
        tag: str,
        builds: Sequence[BuildUnit],
        invoker: Invoker | None = None,
    ) -> ManifestUnit:
        return cls(
            name=f"{image_name}:{tag}",
            builds=builds,
            invoker=invoker if invoker is not None else DockerInvoker(),
        )

    def create_command(self) -> list[str]:
        return compose_manifest_create_command(
            self.name, [b.image_ref for b in self.builds]
        )

    def push_command(self) -> list[str]:
        return compose_manifest_push_command(self.name)

    def build(self) -> None:
        _execute(self.invoker, self.create_command(), "Building manifest", self.name)

    def push(self) -> None:
        _execute(self.invoker, self.push_command(), "Pushing manifest", self.name)


__all__ = [
    "BUILD_CMD",
    "CREATE_MANIFEST_CMD",
    "PUSH_IMAGE_CMD",
    "PUSH_MANIFEST_CMD",
    "BuildUnit",
    "Buildable",
    "ManifestUnit",
    "compose_build_command",
    "compose_manifest_create_command",
    "compose_manifest_push_command",
    "compose_push_command",
    "parse_architecture",
]
