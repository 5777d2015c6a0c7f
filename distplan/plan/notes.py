from __future__ import annotations

from distplan.core.config import CiStyle
from distplan.platform.targets import triple_to_display_name

from .announce import AnnouncementTag
from .diagnostics import Diagnostics
from .model import (
    Artifact,
    Checksum,
    DistGraph,
    ExecutableZip,
    Installer,
    Release,
    Symbols,
    installer_info,
)

__all__ = ["compute_announcement_info", "render_github_body"]


def compute_announcement_info(
    graph: DistGraph, announcing: AnnouncementTag, diagnostics: Diagnostics
) -> None:
    """Record the announcement on the graph (the tag doubles as the title)."""
    graph.announcement_tag = announcing.tag
    graph.announcement_title = announcing.tag
    graph.announcement_is_prerelease = announcing.prerelease

    if CiStyle.GITHUB not in graph.ci_style:
        diagnostics.info("not publishing to Github, skipping Github Release Notes")
        return
    graph.announcement_github_body = render_github_body(graph)
    diagnostics.info("successfully generated github release body!")


def _platforms(artifact: Artifact) -> str:
    names = [n for t in artifact.target_triples if (n := triple_to_display_name(t)) is not None]
    return ", ".join(names) or "Unknown"


def _render_release(graph: DistGraph, release: Release, lines: list[str]) -> None:
    heading = f"{release.app_name} {release.version}"
    if len(graph.releases) > 1:
        lines += [f"# {heading}", ""]

    global_installers: list[Artifact] = []
    local_installers: list[Artifact] = []
    bundles: list[Artifact] = []
    symbols: list[Artifact] = []

    def _sort(artifact: Artifact, installers: list[Artifact]) -> None:
        match artifact.kind:
            case ExecutableZip():
                bundles.append(artifact)
            case Symbols():
                symbols.append(artifact)
            case Installer():
                installers.append(artifact)
            case Checksum():
                pass

    for idx in release.global_artifacts:
        _sort(graph.artifact(idx), global_installers)
    for variant_idx in release.variants:
        for idx in graph.variant(variant_idx).local_artifacts:
            _sort(graph.artifact(idx), local_installers)

    if global_installers:
        lines += [f"## Install {heading}", ""]
        for artifact in global_installers:
            assert isinstance(artifact.kind, Installer)
            info = installer_info(artifact.kind.installer)
            if info is None:
                continue
            lines += [f"### {info.desc}", "", "```sh", info.hint, "```", ""]

    others = [*bundles, *local_installers, *symbols]
    download_url = graph.artifact_download_url
    if not others or download_url is None:
        return

    lines += [
        f"## Download {heading}",
        "",
        "|  File  | Platform | Checksum |",
        "|--------|----------|----------|",
    ]
    for artifact in others:
        download = f"[{artifact.id}]({download_url}/{artifact.id})"
        checksum = ""
        if artifact.checksum is not None:
            checksum_name = graph.artifact(artifact.checksum).id
            checksum = f"[checksum]({download_url}/{checksum_name})"
        lines.append(f"| {download} | {_platforms(artifact)} | {checksum} |")
    lines.append("")


def render_github_body(graph: DistGraph) -> str:
    """Markdown body for a GitHub Release: install snippets plus a download table."""
    lines: list[str] = []
    if graph.announcement_changelog:
        lines += ["## Release Notes", "", graph.announcement_changelog, ""]
    for release in graph.releases:
        _render_release(graph, release, lines)
    return "\n".join(lines) + "\n" if lines else ""
