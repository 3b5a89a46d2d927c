"""Error presentation utilities.

Centralized release error formatting and exit code mapping.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from relctl.core.errors import ErrorCode
from relctl.output.console import Style
from relctl.release.errors import ReleaseError

if TYPE_CHECKING:
    from relctl.output.console import ConsoleProtocol

__all__ = ["print_release_error", "release_error_exit_code"]


def print_release_error(error: ReleaseError, console: ConsoleProtocol) -> None:
    """Print a release error with its hint and details."""
    console.error(f"{error.message} [{error.kind}]")
    for line in error.details:
        console.print(f"  {line}", Style.DIM)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def release_error_exit_code(error: ReleaseError) -> int:
    """Get exit code for a release error."""
    match error.kind:
        case "invalid_version" | "no_prior_version":
            return int(ErrorCode.USER_ERROR)
        case "tag_conflict" | "non_linear_history":
            return int(ErrorCode.CONFLICT_ERROR)
        case "image_ref_not_found" | "ambiguous_image_ref":
            return int(ErrorCode.MANIFEST_ERROR)
        case "io_failure":
            return int(ErrorCode.IO_ERROR)
    # Fallback for exhaustiveness
    return int(ErrorCode.USER_ERROR)
