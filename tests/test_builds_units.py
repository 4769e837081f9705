"""Tests for builds/units.py module.

Tests Dockerfile name validation, command composition and error
propagation using a fake invoker.
"""

import pytest
from conftest import FakeInvoker

from multiarch_build.builds.invoker import InvocationError, InvocationResult
from multiarch_build.builds.units import (
    BuildUnit,
    ManifestUnit,
    compose_build_command,
    compose_manifest_create_command,
    compose_manifest_push_command,
    compose_push_command,
    parse_architecture,
)
from multiarch_build.errors import (
    BuildError,
    MalformedDefinitionName,
    UnsupportedArchitecture,
)
from multiarch_build.types import Architecture


class TestParseArchitecture:
    """Tests for parse_architecture function."""

    @pytest.mark.parametrize(
        ("path", "arch"),
        [
            ("Dockerfile.arm32v7", Architecture.ARM32V7),
            ("Dockerfile.arm64", Architecture.ARM64),
            ("Dockerfile.amd64", Architecture.AMD64),
        ],
    )
    def test_supported(self, path, arch):
        """Should return the architecture for supported suffixes."""
        assert parse_architecture(path) == arch

    @pytest.mark.parametrize(
        "path",
        ["Dockerfile", "Dockerfile.amd64.bak", "sub.dir/Dockerfile.amd64", "a.b.c"],
    )
    def test_wrong_component_count(self, path):
        """Should reject paths without exactly two components."""
        with pytest.raises(MalformedDefinitionName) as exc_info:
            parse_architecture(path)
        assert exc_info.value.path == path

    @pytest.mark.parametrize("path", ["Dockerfile.mips", "Dockerfile.", "x.AMD64"])
    def test_unsupported(self, path):
        """Should reject suffixes outside the supported set."""
        with pytest.raises(UnsupportedArchitecture) as exc_info:
            parse_architecture(path)
        assert exc_info.value.arch == path.split(".")[1]


class TestBuildUnitCreate:
    """Tests for BuildUnit.create."""

    @pytest.mark.parametrize(
        ("suffix", "platform"),
        [
            ("arm32v7", "linux/arm/v7"),
            ("arm64", "linux/arm64"),
            ("amd64", "linux/amd64"),
        ],
    )
    def test_platform_mapping(self, suffix, platform, fake_invoker):
        """Should derive the buildx platform from the suffix."""
        unit = BuildUnit.create(f"Dockerfile.{suffix}", "myapp", "v1", fake_invoker)
        assert unit.platform == platform
        assert unit.architecture.value == suffix

    def test_image_ref(self, fake_invoker):
        """Should compose name:arch-tag."""
        unit = BuildUnit.create("Dockerfile.arm64", "repo/myapp", "v1", fake_invoker)
        assert unit.image_ref == "repo/myapp:arm64-v1"
        assert unit.name == "Dockerfile.arm64"

    def test_unit_is_immutable(self, fake_invoker):
        """Build units should not be modifiable after creation."""
        unit = BuildUnit.create("Dockerfile.amd64", "myapp", "v1", fake_invoker)
        with pytest.raises(AttributeError):
            unit.image_ref = "other:tag"  # type: ignore[misc]

    def test_unsupported_arch(self):
        """Should fail before anything is invoked."""
        with pytest.raises(UnsupportedArchitecture):
            BuildUnit.create("Dockerfile.mips", "myapp", "v1")

    def test_default_invoker(self):
        """Should default to the docker invoker."""
        from multiarch_build.builds.invoker import DockerInvoker

        unit = BuildUnit.create("Dockerfile.amd64", "myapp", "latest")
        assert isinstance(unit.invoker, DockerInvoker)


class TestComposeCommands:
    """Tests for command composition functions."""

    def test_build_command(self):
        """Should keep the exact buildx flag order."""
        cmd = compose_build_command("linux/arm64", "Dockerfile.arm64", "myapp:arm64-v1")
        assert cmd == [
            "buildx",
            "build",
            "--platform",
            "linux/arm64",
            "--rm",
            "-f",
            "Dockerfile.arm64",
            "-t",
            "myapp:arm64-v1",
            ".",
        ]

    def test_push_command(self):
        """Should push the image reference."""
        assert compose_push_command("myapp:amd64-v1") == ["push", "myapp:amd64-v1"]

    def test_manifest_create_command(self):
        """Should amend every image in order."""
        cmd = compose_manifest_create_command(
            "myapp:v1", ["myapp:amd64-v1", "myapp:arm64-v1"]
        )
        assert cmd == [
            "manifest",
            "create",
            "myapp:v1",
            "--amend",
            "myapp:amd64-v1",
            "--amend",
            "myapp:arm64-v1",
        ]

    def test_manifest_create_without_images(self):
        """An empty image list should produce no --amend entries."""
        assert compose_manifest_create_command("myapp:v1", []) == [
            "manifest",
            "create",
            "myapp:v1",
        ]

    def test_manifest_push_command(self):
        """Should purge the local manifest list on push."""
        assert compose_manifest_push_command("myapp:v1") == [
            "manifest",
            "push",
            "myapp:v1",
            "-p",
        ]


class TestBuildUnitExecution:
    """Tests for BuildUnit.build and BuildUnit.push."""

    def test_build_invokes_buildx(self, fake_invoker):
        """Should run the composed build command."""
        unit = BuildUnit.create("Dockerfile.amd64", "myapp", "v1", fake_invoker)
        unit.build()
        assert fake_invoker.calls == [unit.build_command()]

    def test_push_invokes_push(self, fake_invoker):
        """Should run the composed push command."""
        unit = BuildUnit.create("Dockerfile.amd64", "myapp", "v1", fake_invoker)
        unit.push()
        assert fake_invoker.calls == [["push", "myapp:amd64-v1"]]

    def test_build_failure_uses_stderr(self):
        """Should raise BuildError carrying the stderr text."""
        invoker = FakeInvoker(fail_on=["Dockerfile.amd64"], stderr=b"no space left\n")
        unit = BuildUnit.create("Dockerfile.amd64", "myapp", "v1", invoker)

        with pytest.raises(BuildError) as exc_info:
            unit.build()

        err = exc_info.value
        assert err.step == "Building"
        assert err.target == "Dockerfile.amd64"
        assert err.diagnostic == "no space left"
        assert err.returncode == 1
        assert err.code == "build_failed"
        assert "Dockerfile.amd64" in str(err)

    def test_failure_falls_back_to_stdout(self):
        """Should use stdout when stderr is empty."""

        class StdoutOnly:
            def invoke(self, args):
                return InvocationResult(
                    stdout=b"denied", stderr=b"", success=False, returncode=1
                )

        unit = BuildUnit.create("Dockerfile.arm64", "myapp", "v1", StdoutOnly())
        with pytest.raises(BuildError) as exc_info:
            unit.push()
        assert exc_info.value.diagnostic == "denied"
        assert exc_info.value.step == "Pushing"
        assert exc_info.value.target == "myapp:arm64-v1"

    def test_invocation_error_wrapped(self):
        """Launch failures should surface as BuildError with their code."""

        class Broken:
            def invoke(self, args):
                raise InvocationError("docker not found", code="execution_error")

        unit = BuildUnit.create("Dockerfile.arm64", "myapp", "v1", Broken())
        with pytest.raises(BuildError) as exc_info:
            unit.build()
        assert exc_info.value.code == "execution_error"
        assert "docker not found" in str(exc_info.value)


class TestManifestUnit:
    """Tests for ManifestUnit."""

    def test_create_name(self, fake_invoker):
        """Manifest name should be name:tag."""
        manifest = ManifestUnit.create("myapp", "v1", [], fake_invoker)
        assert manifest.name == "myapp:v1"

    def test_builds_kept_by_reference(self, fake_invoker):
        """Units added after creation should appear in the manifest."""
        builds: list[BuildUnit] = []
        manifest = ManifestUnit.create("myapp", "v1", builds, fake_invoker)
        builds.append(BuildUnit.create("Dockerfile.amd64", "myapp", "v1", fake_invoker))
        assert "myapp:amd64-v1" in manifest.create_command()

    def test_build_and_push(self, fake_invoker):
        """Should create then push the manifest."""
        builds = [
            BuildUnit.create("Dockerfile.amd64", "myapp", "v1", fake_invoker),
            BuildUnit.create("Dockerfile.arm64", "myapp", "v1", fake_invoker),
        ]
        manifest = ManifestUnit.create("myapp", "v1", builds, fake_invoker)
        manifest.build()
        manifest.push()

        assert fake_invoker.calls == [
            [
                "manifest",
                "create",
                "myapp:v1",
                "--amend",
                "myapp:amd64-v1",
                "--amend",
                "myapp:arm64-v1",
            ],
            ["manifest", "push", "myapp:v1", "-p"],
        ]

    def test_push_failure(self):
        """Manifest push failures should name the manifest step."""
        invoker = FakeInvoker(fail_if=lambda args: args[:2] == ["manifest", "push"])
        manifest = ManifestUnit.create("myapp", "v1", [], invoker)
        with pytest.raises(BuildError) as exc_info:
            manifest.push()
        assert exc_info.value.step == "Pushing manifest"
        assert exc_info.value.target == "myapp:v1"
