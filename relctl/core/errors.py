"""Exit codes for relctl commands.

The numeric values are part of the CLI contract with the release workflow and
must remain stable:
- 0: Success
- 1: User error (bad version input, no prior version)
- 2: Environment error (bad config, not a git repository)
- 3: Ref conflict (tag moved, non fast-forward branch)
- 4: Manifest error (image reference missing or ambiguous)
- 5: I/O error (git or filesystem failure, timeout)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit codes."""

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    CONFLICT_ERROR = 3
    MANIFEST_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
