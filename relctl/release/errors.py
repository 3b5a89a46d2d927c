"""Error types for the release bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "invalid_version",
    "no_prior_version",
    "tag_conflict",
    "non_linear_history",
    "image_ref_not_found",
    "ambiguous_image_ref",
    "io_failure",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical release error payload.

    Every error is terminal for the current release attempt. ``details`` holds
    the context a human needs to resolve it: expected vs actual commits,
    matching manifest lines, the output of a failed git command.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None
    details: tuple[str, ...] = ()

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind,
            "message": self.message,
            "hint": self.hint,
            "details": list(self.details),
        }
