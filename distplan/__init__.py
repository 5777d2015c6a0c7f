"""distplan: plan cross-platform release artifacts for a workspace of packages."""

__version__ = "0.4.0"
