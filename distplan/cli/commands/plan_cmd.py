from __future__ import annotations

import json
from pathlib import Path

import typer

from distplan.cli.commands._helpers import build_request, exit_with_code
from distplan.cli.context import build_context
from distplan.core.errors import ErrorCode
from distplan.core.result import Err
from distplan.output.console import ConsoleProtocol, Style
from distplan.output.errors import plan_error_exit_code, print_diagnostics, print_plan_error
from distplan.plan.announce import select_tag
from distplan.plan.diagnostics import Diagnostics
from distplan.plan.gather import gather_work
from distplan.plan.manifest import build_manifest, write_manifest
from distplan.plan.model import (
    Artifact,
    BuildStep,
    CargoBuildStep,
    ChecksumStep,
    CopyDirStep,
    CopyFileStep,
    DistGraph,
    GenerateInstallerStep,
    Installer,
    MsiInstaller,
    RustupStep,
    ZipDirStep,
    installer_info,
)

_MANIFEST_OPTION = typer.Option(
    None, "--manifest", help="Path to dist-workspace.toml (default: search upward from CWD)"
)
_TAG_OPTION = typer.Option(None, "--tag", help="Announcement tag (e.g. v1.2.3, my-app-v1.2.3)")
_TARGET_OPTION = typer.Option(None, "--target", help="Target triple to build (repeatable)")
_INSTALLER_OPTION = typer.Option(None, "--installer", help="Installer to generate (repeatable)")
_CI_OPTION = typer.Option(None, "--ci", help="CI style to plan for (repeatable)")
_ARTIFACTS_OPTION = typer.Option("all", "--artifacts", help="Artifacts: local|global|host|all")
_INCOHERENT_OPTION = typer.Option(
    False, "--allow-incoherent", help="Plan every package even if versions disagree"
)
_VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Show planning details")


def describe_step(step: BuildStep) -> str:
    match step:
        case CargoBuildStep():
            scope = f"-p {step.package}" if step.package else "--workspace"
            return f"cargo build --profile {step.profile} --target {step.target_triple} {scope}"
        case RustupStep():
            return f"{step.rustup.cmd} target add {step.target}"
        case CopyFileStep():
            return f"copy {step.src_path} -> {step.dest_path}"
        case CopyDirStep():
            return f"copy dir {step.src_path} -> {step.dest_path}"
        case ZipDirStep():
            return f"archive {step.src_path} -> {step.dest_path.name}"
        case GenerateInstallerStep():
            match step.installer:
                case MsiInstaller(file_path=file_path):
                    name = file_path.name
                case installer:
                    name = installer.info.dest_path.name
            return f"generate installer {name}"
        case ChecksumStep():
            return f"checksum {step.checksum.src_path.name} ({step.checksum.checksum})"


def _artifact_line(artifact: Artifact) -> str:
    if isinstance(artifact.kind, Installer):
        info = installer_info(artifact.kind.installer)
        if info is not None:
            return f"{artifact.id}  ({info.hint})"
    return artifact.id


def print_plan(graph: DistGraph, console: ConsoleProtocol) -> None:
    if graph.announcement_tag is not None:
        suffix = " (prerelease)" if graph.announcement_is_prerelease else ""
        console.header(f"announcing {graph.announcement_tag}{suffix}")

    for release in graph.releases:
        console.header(f"release {release.id}")
        for variant_idx in release.variants:
            variant = graph.variant(variant_idx)
            console.print(f"  {variant.target}", Style.BOLD)
            for artifact_idx in variant.local_artifacts:
                console.print(f"    {_artifact_line(graph.artifact(artifact_idx))}")
        if release.global_artifacts:
            console.print("  global", Style.BOLD)
            for artifact_idx in release.global_artifacts:
                console.print(f"    {_artifact_line(graph.artifact(artifact_idx))}")

    console.header("build steps")
    for i, step in enumerate(graph.build_steps, start=1):
        console.print(f"  {i}. {describe_step(step)}")


def _gather(
    *,
    manifest: Path | None,
    tag: str | None,
    target: list[str] | None,
    installer: list[str] | None,
    ci: list[str] | None,
    artifacts: str,
    allow_incoherent: bool,
    verbose: bool,
    stderr: bool = False,
) -> tuple[DistGraph, ConsoleProtocol]:
    ctx = build_context(manifest, stderr=stderr)
    request = build_request(
        ctx.console,
        tag=tag,
        targets=target,
        installers=installer,
        ci=ci,
        artifacts=artifacts,
        allow_incoherent=allow_incoherent,
    )
    diagnostics = Diagnostics()
    result = gather_work(ctx.workspace, ctx.tools, request, diagnostics)
    print_diagnostics(diagnostics, ctx.console, verbose=verbose)
    if isinstance(result, Err):
        print_plan_error(result.error, ctx.console)
        exit_with_code(plan_error_exit_code(result.error))
    return result.value, ctx.console


def plan_cmd(
    manifest: Path | None = _MANIFEST_OPTION,
    tag: str | None = _TAG_OPTION,
    target: list[str] | None = _TARGET_OPTION,
    installer: list[str] | None = _INSTALLER_OPTION,
    ci: list[str] | None = _CI_OPTION,
    artifacts: str = _ARTIFACTS_OPTION,
    allow_incoherent: bool = _INCOHERENT_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Show the releases, artifacts and build steps a run would produce."""
    graph, console = _gather(
        manifest=manifest,
        tag=tag,
        target=target,
        installer=installer,
        ci=ci,
        artifacts=artifacts,
        allow_incoherent=allow_incoherent,
        verbose=verbose,
    )
    print_plan(graph, console)


def manifest_cmd(
    manifest: Path | None = _MANIFEST_OPTION,
    tag: str | None = _TAG_OPTION,
    target: list[str] | None = _TARGET_OPTION,
    installer: list[str] | None = _INSTALLER_OPTION,
    ci: list[str] | None = _CI_OPTION,
    artifacts: str = _ARTIFACTS_OPTION,
    allow_incoherent: bool = _INCOHERENT_OPTION,
    verbose: bool = _VERBOSE_OPTION,
    out: Path | None = typer.Option(None, "--out", help="Write JSON here instead of stdout"),
) -> None:
    """Emit the plan as JSON for executors and CI."""
    # Keep stdout clean for the JSON when no --out is given
    graph, console = _gather(
        manifest=manifest,
        tag=tag,
        target=target,
        installer=installer,
        ci=ci,
        artifacts=artifacts,
        allow_incoherent=allow_incoherent,
        verbose=verbose,
        stderr=out is None,
    )
    if out is None:
        typer.echo(json.dumps(build_manifest(graph), indent=2))
        return

    written = write_manifest(out, graph)
    if isinstance(written, Err):
        console.error(written.error.message)
        exit_with_code(int(ErrorCode.IO_ERROR))
    console.success(str(out))


def tag_cmd(
    manifest: Path | None = _MANIFEST_OPTION,
    tag: str | None = _TAG_OPTION,
    allow_incoherent: bool = _INCOHERENT_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Resolve which packages and version a tag announces."""
    ctx = build_context(manifest)
    diagnostics = Diagnostics()
    result = select_tag(
        ctx.workspace,
        tag,
        needs_coherent_announcement_tag=not allow_incoherent,
        diagnostics=diagnostics,
    )
    print_diagnostics(diagnostics, ctx.console, verbose=verbose)
    if isinstance(result, Err):
        print_plan_error(result.error, ctx.console)
        exit_with_code(plan_error_exit_code(result.error))

    announcing = result.value
    ctx.console.header(f"tag: {announcing.tag}")
    if announcing.version is not None:
        ctx.console.print(f"version: {announcing.version}")
    if announcing.package is not None:
        ctx.console.print(f"package: {ctx.workspace.package(announcing.package).name}")
    ctx.console.print(f"prerelease: {str(announcing.prerelease).lower()}")
    for pkg_idx, binaries in announcing.releases:
        name = ctx.workspace.package(pkg_idx).name
        ctx.console.print(f"  {name}: {', '.join(binaries)}")
