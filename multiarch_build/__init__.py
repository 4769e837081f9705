"""Multi-arch image builder - Parallel per-architecture Docker builds.

This package discovers per-architecture Dockerfiles, builds and pushes the
images concurrently, and assembles a multi-architecture manifest from them.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
