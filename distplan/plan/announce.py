"""Decide what a run announces.

An announcement is driven by a tag. Accepted shapes:

- `v1.2.3`: every distable package at version 1.2.3 (unified release)
- `my-app-v1.2.3` / `my-app-1.2.3`: just `my-app` (which must be 1.2.3)
- `releases/my-app/v1.2.3`: same, with a slash-delimited prefix
- no tag: inferred, if every distable package shares one version
"""

from __future__ import annotations

from dataclasses import dataclass

from distplan.core.result import Err, Ok, Result
from distplan.core.semver import SemVer, parse_version
from distplan.core.workspace import PackageIdx, PackageInfo, WorkspaceInfo

from .diagnostics import Diagnostics
from .errors import PlanError

__all__ = [
    "AnnouncementTag",
    "PartialAnnouncementTag",
    "check_dist_package",
    "parse_tag",
    "possible_tags",
    "select_packages",
    "select_tag",
    "strip_prefix_package",
    "tag_help",
]

# Used when planning-only commands ask for everything despite mixed versions
FAKE_VERSION = SemVer(1, 0, 0, pre=("FAKEVER",))

_NO_PACKAGES_HELP = """\
It appears that you have no packages in your workspace with distable binaries. \
You can rerun with --verbose to see what distplan thinks is in your workspace. \
Here are some typical issues:

    If you're trying to announce libraries, you need to explicitly select the \
library with e.g. "--tag=my-library-v1.0.0", as this mode is experimental.

    If you have binaries in your workspace, `publish = false` could be hiding \
them and adding "dist = true" to the package's [package.dist] table may help."""


@dataclass(frozen=True, slots=True)
class PartialAnnouncementTag:
    """What the raw tag told us, before package selection."""

    tag: str | None = None
    # Set for unified announcements
    version: SemVer | None = None
    # Set for single-package announcements
    package: PackageIdx | None = None
    prerelease: bool = False


@dataclass(frozen=True, slots=True)
class AnnouncementTag:
    tag: str
    version: SemVer | None
    package: PackageIdx | None
    prerelease: bool
    # Selected packages and the binaries each one releases
    releases: tuple[tuple[PackageIdx, tuple[str, ...]], ...]


def strip_prefix_package(
    text: str, workspace: WorkspaceInfo
) -> tuple[PackageIdx, str] | None:
    """Strip the longest package name `text` starts with.

    Longest wins so `my-app-helper-v1.0.0` isn't claimed by `my-app`.
    """
    best: tuple[PackageIdx, str] | None = None
    for idx in workspace.package_indices():
        name = workspace.package(idx).name
        if not text.startswith(name):
            continue
        rest = text[len(name) :]
        if best is not None and len(best[1]) <= len(rest):
            continue
        best = (idx, rest)
    return best


def parse_tag(
    workspace: WorkspaceInfo, tag: str | None
) -> Result[PartialAnnouncementTag, PlanError]:
    """Parse `tag` into a package and/or version.

    None means "infer later" and yields an empty partial announcement.
    """
    if tag is None:
        return Ok(PartialAnnouncementTag())

    package: PackageIdx | None = None
    suffix = tag

    if "/" in tag:
        prefix, suffix = tag.rsplit("/", 1)
        maybe_package = prefix.rsplit("/", 1)[-1]
        # Only an exact name match counts here
        matched = strip_prefix_package(maybe_package, workspace)
        if matched is not None and matched[1] == "":
            package = matched[0]

    if package is None:
        matched = strip_prefix_package(suffix, workspace)
        if matched is not None and matched[1].startswith("-"):
            package = matched[0]
            suffix = matched[1][1:]

    suffix = suffix.removeprefix("v")
    version = parse_version(suffix)
    if version is None:
        return Err(
            PlanError(
                kind="tag_version_parse",
                message=f"failed to parse the version from tag {tag!r}",
                hint=f"{suffix!r} is not a valid semantic version (expected MAJOR.MINOR.PATCH)",
            )
        )

    if package is not None:
        info = workspace.package(package)
        if info.version != version:
            return Err(
                PlanError(
                    kind="contradictory_tag_version",
                    message=(
                        f"tag {tag!r} implies {info.name} should be version {version}, "
                        f"but it's actually {info.version}"
                    ),
                    hint="Change the tag or the package's version so they agree.",
                )
            )
        return Ok(PartialAnnouncementTag(tag=tag, package=package, prerelease=version.is_prerelease))

    return Ok(PartialAnnouncementTag(tag=tag, version=version, prerelease=version.is_prerelease))


def check_dist_package(
    workspace: WorkspaceInfo, idx: PackageIdx, announcing: PartialAnnouncementTag
) -> str | None:
    """Return why a package is excluded from the announcement, or None to include it."""
    package = workspace.package(idx)
    if not package.binaries:
        return "no binaries"

    # An explicit `dist` setting overrides `publish`
    do_dist = workspace.config(idx).dist
    if do_dist is False:
        return "dist = false"
    if not package.publish and do_dist is None:
        return "publish = false"

    if announcing.package is not None and announcing.package != idx:
        return f"didn't match tag {announcing.tag}"
    if announcing.version is not None and package.version != announcing.version:
        return f"didn't match tag {announcing.tag}"
    return None


def select_packages(
    workspace: WorkspaceInfo,
    announcing: PartialAnnouncementTag,
    diagnostics: Diagnostics,
) -> list[tuple[PackageIdx, tuple[str, ...]]]:
    diagnostics.info("selecting packages from workspace:")
    selected: list[tuple[PackageIdx, tuple[str, ...]]] = []
    for idx in workspace.package_indices():
        package = workspace.package(idx)
        reason = check_dist_package(workspace, idx, announcing)
        if reason is not None:
            diagnostics.info(f"  {package.name} ({reason})")
        else:
            diagnostics.info(f"  {package.name}")
        for binary in package.binaries:
            diagnostics.info(f"    [bin] {binary}")
        if reason is None and package.binaries:
            selected.append((idx, package.binaries))
    return selected


def possible_tags(
    workspace: WorkspaceInfo, packages: list[PackageIdx]
) -> dict[SemVer, list[PackageIdx]]:
    """Group packages by version, lowest version first."""
    versions: dict[SemVer, list[PackageIdx]] = {}
    for idx in packages:
        versions.setdefault(workspace.package(idx).version, []).append(idx)
    return dict(sorted(versions.items()))


def tag_help(
    workspace: WorkspaceInfo,
    versions: dict[SemVer, list[PackageIdx]],
    base_suggestion: str,
) -> str:
    """Explain which --tag values would have worked."""
    if not versions:
        return _NO_PACKAGES_HELP

    lines = [base_suggestion, "", "Here are some options:", ""]
    for version, packages in versions.items():
        names = ", ".join(workspace.package(idx).name for idx in packages)
        lines.append(f"--tag=v{version} will Announce: {names}")
    lines.append("")

    some_pkg: PackageInfo = workspace.package(next(iter(versions.values()))[0])
    lines.append(
        f"you can also request any single package with --tag={some_pkg.name}-v{some_pkg.version}"
    )
    return "\n".join(lines) + "\n"


def select_tag(
    workspace: WorkspaceInfo,
    tag: str | None,
    *,
    needs_coherent_announcement_tag: bool,
    diagnostics: Diagnostics,
) -> Result[AnnouncementTag, PlanError]:
    """Resolve the announcement for this run.

    With `needs_coherent_announcement_tag=False`, mixed versions don't fail:
    a placeholder `v1.0.0-FAKEVER` tag is used and every distable package is
    selected.
    """
    parsed = parse_tag(workspace, tag)
    if isinstance(parsed, Err):
        return parsed
    announcing = parsed.value
    releases = select_packages(workspace, announcing, diagnostics)

    if not releases:
        if announcing.package is not None:
            diagnostics.warn(
                "You're trying to explicitly Release a library, "
                "only minimal functionality will work"
            )
        else:
            # Build the help from what an untagged run would have selected
            untagged = select_packages(workspace, PartialAnnouncementTag(), Diagnostics())
            versions = possible_tags(workspace, [idx for idx, _ in untagged])
            return Err(
                PlanError(
                    kind="nothing_to_release",
                    message="There aren't any packages to release",
                    hint=tag_help(
                        workspace,
                        versions,
                        "You may need to pass the current version as --tag, "
                        "or need to give all your packages the same version",
                    ),
                )
            )

    if announcing.tag is not None:
        return Ok(
            AnnouncementTag(
                tag=announcing.tag,
                version=announcing.version,
                package=announcing.package,
                prerelease=announcing.prerelease,
                releases=tuple(releases),
            )
        )

    versions = possible_tags(workspace, [idx for idx, _ in releases])
    if len(versions) == 1:
        version = next(iter(versions))
        inferred = version.to_tag()
        diagnostics.info(f"inferred Announcement tag: {inferred}")
        return Ok(
            AnnouncementTag(
                tag=inferred,
                version=version,
                package=None,
                prerelease=version.is_prerelease,
                releases=tuple(releases),
            )
        )

    if needs_coherent_announcement_tag:
        return Err(
            PlanError(
                kind="too_many_unrelated_apps",
                message="This workspace has multiple apps with different versions "
                "and no --tag was given",
                hint=tag_help(
                    workspace,
                    versions,
                    "Please either specify --tag, or give them all the same version",
                ),
            )
        )

    return Ok(
        AnnouncementTag(
            tag=FAKE_VERSION.to_tag(),
            version=FAKE_VERSION,
            package=None,
            prerelease=True,
            releases=tuple(releases),
        )
    )
