"""Exit codes for the CLI.

CI scripts branch on these, so a value never changes meaning once released.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    OK = 0
    # Bad flags, an unparseable tag, or a tag/selection the workspace can't satisfy
    USER_ERROR = 1
    # No dist-workspace.toml, or one that can't be loaded
    ENV_ERROR = 2
    # The config contradicts itself (features vs precise-builds, MSI ownership)
    PLAN_ERROR = 3
    # The manifest couldn't be written
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")
