"""Release planning: tag resolution, the release graph and its build steps."""

from .announce import AnnouncementTag, select_tag
from .builder import DistGraphBuilder, target_symbol_kind
from .compiler import compute_build_steps
from .diagnostics import Diagnostic, Diagnostics
from .errors import PlanError
from .gather import PlanRequest, gather_work
from .manifest import build_manifest, write_manifest
from .model import DistGraph

__all__ = [
    # announce
    "AnnouncementTag",
    "select_tag",
    # builder
    "DistGraphBuilder",
    "target_symbol_kind",
    # compiler
    "compute_build_steps",
    # diagnostics
    "Diagnostic",
    "Diagnostics",
    # errors
    "PlanError",
    # gather
    "PlanRequest",
    "gather_work",
    # manifest
    "build_manifest",
    "write_manifest",
    # model
    "DistGraph",
]
