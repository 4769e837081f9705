"""Discovery of per-architecture Dockerfiles.

Walks a build context directory and collects files whose path, relative to
the context, starts with the definition prefix (``Dockerfile.`` by default).
Files that do not match are ignored rather than reported.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from multiarch_build.builds.invoker import Invoker
from multiarch_build.builds.units import BuildUnit
from multiarch_build.errors import DiscoveryError

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "Dockerfile."


def discover_definitions(root: Path, prefix: str = DEFAULT_PREFIX) -> list[str]:
    """Find Dockerfiles under a directory.

    Args:
        root: Build context directory to walk.
        prefix: Prefix the root-relative path must start with.

    Returns:
        Sorted root-relative POSIX paths of matching files.

    Raises:
        DiscoveryError: If the root is missing or cannot be read.
    """
    if not root.is_dir():
        raise DiscoveryError(f"Directory not found: {root}")

    def _raise(err: OSError) -> None:
        raise DiscoveryError(f"Failed to walk {root}: {err}") from err

    found: list[str] = []
    for dirpath, _dirnames, filenames in os.walk(root, onerror=_raise):
        for filename in filenames:
            relative = (Path(dirpath) / filename).relative_to(root).as_posix()
            if relative.startswith(prefix):
                found.append(relative)

    found.sort()
    logger.debug("Discovered %d definition(s) in %s: %s", len(found), root, found)
    return found


def load_build_units(
    root: Path,
    image_name: str,
    tag: str,
    prefix: str = DEFAULT_PREFIX,
    invoker: Invoker | None = None,
) -> list[BuildUnit]:
    """Discover Dockerfiles and create a build unit for each.

    Raises:
        DiscoveryError: If the root cannot be walked.
        MalformedDefinitionName: On the first badly named Dockerfile.
        UnsupportedArchitecture: On the first unsupported architecture.
    """
    return [
        BuildUnit.create(path, image_name, tag, invoker=invoker)
        for path in discover_definitions(root, prefix)
    ]


__all__ = ["DEFAULT_PREFIX", "discover_definitions", "load_build_units"]
