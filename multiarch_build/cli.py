"""Thin CLI wrapper for multiarch_build.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from multiarch_build import __version__
from multiarch_build.builds.invoker import DockerInvoker
from multiarch_build.builds.orchestrator import NO_DEFINITIONS_NOTICE, Orchestrator
from multiarch_build.builds.units import BuildUnit, ManifestUnit
from multiarch_build.config import Settings, get_settings, print_settings_json
from multiarch_build.discovery import load_build_units
from multiarch_build.errors import BuildError, MultiarchBuildError, UsageError
from multiarch_build.types import Architecture

USAGE = (
    "Build an image for each Dockerfile present in the folder.\n\n"
    "Dockerfiles are in the Dockerfile.architecture format, where architecture "
    "is one of: " + ", ".join(a.value for a in Architecture)
)

app = typer.Typer(
    name="multiarch-build",
    help="Multi-arch image builder - parallel per-architecture Docker builds",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()
err_console = Console(stderr=True)


def configure_logging(level: str) -> None:
    """Route library logging through Rich on stderr."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"multiarch-build version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Multi-arch image builder - parallel per-architecture Docker builds."""


DirectoryArg = Annotated[
    Path,
    typer.Argument(help="Build context containing the Dockerfile.<arch> files"),
]
NameOpt = Annotated[
    str | None,
    typer.Option(
        "--name",
        "-n",
        help="Base image name; images are generated as name:arch-tag",
    ),
]
TagOpt = Annotated[
    str | None,
    typer.Option(
        "--tag",
        "-t",
        help="Tag appended to the image names (default: latest)",
    ),
]
ManifestOpt = Annotated[
    bool,
    typer.Option(
        "--manifest",
        "-m",
        help="Create a manifest including all the built images",
    ),
]
JsonOpt = Annotated[bool, typer.Option("--json", help="Output as JSON")]


def _fail(error: MultiarchBuildError) -> typer.Exit:
    err_console.print(f"[red]{escape(str(error))}[/red]")
    return typer.Exit(code=int(error.exit_code))


def _load_units(
    directory: Path,
    name: str | None,
    tag: str | None,
    settings: Settings,
    invoker: DockerInvoker | None = None,
) -> tuple[list[BuildUnit], str]:
    """Validate naming options and discover build units, exiting on error."""
    try:
        if not name:
            raise UsageError("You have to pass an image name with --name")
        effective_tag = tag or settings.default_tag
        units = load_build_units(
            directory,
            name,
            effective_tag,
            prefix=settings.definition_prefix,
            invoker=invoker,
        )
    except UsageError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        err_console.print(USAGE)
        raise typer.Exit(code=int(e.exit_code)) from None
    except MultiarchBuildError as e:
        raise _fail(e) from None
    return units, effective_tag


def _error_to_dict(error: BuildError) -> dict[str, Any]:
    return {
        "code": error.code,
        "step": error.step,
        "target": error.target,
        "message": str(error),
    }


@app.command()
def build(
    directory: DirectoryArg = Path("."),
    name: NameOpt = None,
    tag: TagOpt = None,
    manifest: ManifestOpt = False,
    push: Annotated[
        bool,
        typer.Option(
            "--push",
            "-p",
            help="Push the images after building them (and the manifest, if any)",
        ),
    ] = False,
    workers: Annotated[
        int | None,
        typer.Option("--workers", "-w", min=1, help="Maximum parallel builds"),
    ] = None,
    timeout: Annotated[
        int | None,
        typer.Option("--timeout", min=1, help="Timeout per docker command (s)"),
    ] = None,
    manifest_on_failure: Annotated[
        bool | None,
        typer.Option(
            "--manifest-on-failure/--no-manifest-on-failure",
            help="Create the manifest even if some builds failed",
        ),
    ] = None,
    json_output: JsonOpt = False,
) -> None:
    """Build (and optionally push) an image per Dockerfile, in parallel.

    All architecture builds run concurrently. The manifest, if requested,
    is created only after every build has finished.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    invoker = DockerInvoker(
        binary=settings.docker_binary,
        cwd=directory,
        timeout=timeout if timeout is not None else settings.command_timeout,
    )
    units, effective_tag = _load_units(directory, name, tag, settings, invoker)

    if not units and not json_output:
        console.print(f"[yellow]{NO_DEFINITIONS_NOTICE}[/yellow]")
        return

    orchestrator = Orchestrator.for_build(
        units,
        image_name=name or "",
        tag=effective_tag,
        manifest=manifest,
        push=push,
        invoker=invoker,
        max_workers=workers if workers is not None else settings.max_workers,
        manifest_on_failure=(
            manifest_on_failure
            if manifest_on_failure is not None
            else settings.manifest_on_failure
        ),
    )
    thread = orchestrator.start()

    # Errors stream in while builds are still running
    errors: list[BuildError] = []
    for error in orchestrator.sink:
        errors.append(error)
        if not json_output:
            err_console.print(f"[red]{escape(str(error))}[/red]")
    thread.join()

    if json_output:
        summary = orchestrator.summary
        output = summary.model_dump(mode="json") if summary else {}
        output["errors"] = [_error_to_dict(e) for e in errors]
        console.print(json.dumps(output, indent=2), soft_wrap=True)
    elif not errors:
        console.print("[green]Done[/green]")

    if errors:
        raise typer.Exit(code=int(errors[0].exit_code))


@app.command()
def plan(
    directory: DirectoryArg = Path("."),
    name: NameOpt = None,
    tag: TagOpt = None,
    manifest: ManifestOpt = False,
    json_output: JsonOpt = False,
) -> None:
    """Show the images and docker commands a build would run."""
    settings = get_settings()
    units, effective_tag = _load_units(directory, name, tag, settings)

    manifest_unit = (
        ManifestUnit.create(name or "", effective_tag, units) if manifest else None
    )

    if json_output:
        output: dict[str, Any] = {
            "images": [
                {
                    "dockerfile": u.definition_path,
                    "architecture": u.architecture.value,
                    "platform": u.platform,
                    "image": u.image_ref,
                    "build_command": u.build_command(),
                    "push_command": u.push_command(),
                }
                for u in units
            ],
            "manifest": None,
        }
        if manifest_unit is not None:
            output["manifest"] = {
                "name": manifest_unit.name,
                "create_command": manifest_unit.create_command(),
                "push_command": manifest_unit.push_command(),
            }
        console.print(json.dumps(output, indent=2), soft_wrap=True)
        return

    if not units:
        console.print(f"[yellow]{NO_DEFINITIONS_NOTICE}[/yellow]")
        return

    binary = settings.docker_binary
    console.print(f"[bold]Found {len(units)} Dockerfile(s):[/bold]")
    console.print()
    for u in units:
        console.print(f"  [green]{u.image_ref}[/green]")
        console.print(f"    Dockerfile: {u.definition_path}")
        console.print(f"    Platform: {u.platform}")
        console.print(f"    Build: {binary} {' '.join(u.build_command())}")
        console.print(f"    Push:  {binary} {' '.join(u.push_command())}")
        console.print()
    if manifest_unit is not None:
        console.print(f"[bold]Manifest:[/bold] {manifest_unit.name}")
        create_cmd = " ".join(manifest_unit.create_command())
        push_cmd = " ".join(manifest_unit.push_command())
        console.print(f"    Create: {binary} {create_cmd}")
        console.print(f"    Push:   {binary} {push_cmd}")


@app.command()
def config(
    json_output: JsonOpt = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings))
    else:
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Build tool:[/bold]")
        console.print(f"  Docker binary:       {settings.docker_binary}")
        console.print(f"  Definition prefix:   {settings.definition_prefix}")
        console.print(f"  Default tag:         {settings.default_tag}")
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Log level:           {settings.log_level}")
        console.print(f"  Manifest on failure: {settings.manifest_on_failure}")
        console.print()
        console.print("[bold]Concurrency:[/bold]")
        workers = settings.max_workers or "(one per Dockerfile)"
        console.print(f"  Max workers:         {workers}")
        console.print()
        console.print("[bold]Timeouts (seconds):[/bold]")
        timeout = settings.command_timeout or "(none)"
        console.print(f"  Command timeout:     {timeout}")
