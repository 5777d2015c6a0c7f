"""Plan everything a run would do, from a loaded workspace and a request."""

from __future__ import annotations

from dataclasses import dataclass

from distplan.core.config import ArtifactMode, CiStyle, InstallerStyle
from distplan.core.result import Err, Ok, Result
from distplan.core.workspace import WorkspaceInfo
from distplan.platform.targets import TargetTriple
from distplan.platform.toolchain import Tools

from .announce import select_tag
from .builder import DistGraphBuilder, SymbolPolicy, target_symbol_kind
from .compiler import compute_build_steps
from .diagnostics import Diagnostics
from .errors import PlanError
from .model import DistGraph
from .notes import compute_announcement_info

__all__ = ["PlanRequest", "gather_work", "select_targets"]


@dataclass(frozen=True, slots=True)
class PlanRequest:
    """What the caller asked for. Empty tuples mean "use the config"."""

    artifact_mode: ArtifactMode = ArtifactMode.ALL
    targets: tuple[TargetTriple, ...] = ()
    installers: tuple[InstallerStyle, ...] = ()
    ci: tuple[CiStyle, ...] = ()
    announcement_tag: str | None = None
    needs_coherent_announcement_tag: bool = True
    # Ambient RUSTFLAGS, read by the caller
    rustflags: str = ""


def select_targets(
    workspace: WorkspaceInfo,
    tools: Tools,
    request: PlanRequest,
    diagnostics: Diagnostics,
) -> Result[tuple[list[TargetTriple], bool], PlanError]:
    """Pick the target triples to build.

    Returns the triples and whether package target lists should be ignored
    (host mode builds the host regardless of what packages claim).
    """
    if request.targets:
        diagnostics.info("using explicit target-triples")
        return Ok((list(request.targets), False))

    if request.artifact_mode == ArtifactMode.HOST:
        diagnostics.info("using host target-triple")
        return Ok(([tools.cargo.host_target], True))

    all_targets = sorted(
        {t for idx in workspace.package_indices() for t in workspace.config(idx).targets or ()}
    )
    if not all_targets:
        return Err(
            PlanError(
                kind="no_targets",
                message="You specified --artifacts, disabling host mode, "
                "but specified no targets to build!",
                hint="Set targets in [dist] or pass --target.",
            )
        )
    diagnostics.info("using all target-triples")
    return Ok((all_targets, False))


def gather_work(
    workspace: WorkspaceInfo,
    tools: Tools,
    request: PlanRequest,
    diagnostics: Diagnostics,
    *,
    symbol_policy: SymbolPolicy = target_symbol_kind,
) -> Result[DistGraph, PlanError]:
    """Compute the whole plan. Nothing is returned but the error on failure."""
    diagnostics.info("analyzing workspace:")
    created = DistGraphBuilder.new(
        tools=tools,
        workspace=workspace,
        artifact_mode=request.artifact_mode,
        diagnostics=diagnostics,
        symbol_policy=symbol_policy,
    )
    if isinstance(created, Err):
        return created
    builder = created.value

    # Explicit CI styles can only narrow what the workspace enables
    workspace_ci = list(workspace.metadata.ci or ())
    if request.ci:
        shared = set(request.ci) & set(workspace_ci)
        builder.set_ci_style(sorted(shared, key=lambda s: s.value))
    else:
        builder.set_ci_style(workspace_ci)

    selected = select_targets(workspace, tools, request, diagnostics)
    if isinstance(selected, Err):
        return selected
    triples, bypass_package_targets = selected.value
    diagnostics.info(f"selected triples: {', '.join(triples)}")

    announced = select_tag(
        workspace,
        request.announcement_tag,
        needs_coherent_announcement_tag=request.needs_coherent_announcement_tag,
        diagnostics=diagnostics,
    )
    if isinstance(announced, Err):
        return announced
    announcing = announced.value

    web_url = workspace.web_url()
    if isinstance(web_url, Err):
        # Same outcome as no repository at all: installers get skipped
        diagnostics.warn(f"can't compute artifact download URL: {web_url.error.message}")
        repo_url = None
    else:
        repo_url = web_url.value
    if repo_url is not None:
        builder.graph.artifact_download_url = f"{repo_url}/releases/download/{announcing.tag}"

    for pkg_idx, binaries in announcing.releases:
        config = workspace.config(pkg_idx)
        release = builder.add_release(pkg_idx)
        for binary in binaries:
            builder.add_binary(release, pkg_idx, binary)

        package_targets = config.targets or ()
        for target in triples:
            if bypass_package_targets or target in package_targets:
                builder.add_variant(release, target)

        builder.add_executable_zip(release)

        package_installers = config.installers or ()
        wanted = request.installers or package_installers
        for installer in wanted:
            # Only installers the package itself opted into
            if installer not in package_installers:
                continue
            added = builder.add_installer(release, installer)
            if isinstance(added, Err):
                return added

    graph = builder.graph
    compute_announcement_info(graph, announcing, diagnostics)
    graph.build_steps = compute_build_steps(
        graph, rustflags=request.rustflags, diagnostics=diagnostics
    )
    return Ok(graph)
