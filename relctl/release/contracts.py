"""Cross-layer contracts for the release bounded context.

``ReleaseRequest`` is what the CLI (or any other caller) hands to the
orchestrator; ``ReleaseResult`` is the only artifact that comes back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Literal

from relctl.release.errors import ReleaseError
from relctl.services.release.model import BranchOp, ManifestPatch, TagOp
from relctl.services.release.semver import DEFAULT_VERSION, SemVer

ReleaseStatus = Literal["done", "failed"]


class ReleaseState(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    PLANNING = "planning"
    DRY_RUN_REPORT = "dry_run_report"
    APPLYING = "applying"
    DONE = "done"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class BranchOptions:
    create_major_branch: bool = True
    create_minor_branch: bool = True


@dataclass(frozen=True, slots=True)
class ReleaseRequest:
    """Normalized release request.

    ``version_input`` may be empty, in which case the version is derived from
    the latest tag. ``target`` is any commit-ish the ref store can resolve.
    """

    version_input: str
    manifest_path: Path
    image_name: str
    dry_run: bool = False
    branch_options: BranchOptions = field(default_factory=BranchOptions)
    target: str = "HEAD"
    allow_default_version: bool = True
    default_version: SemVer = DEFAULT_VERSION


@dataclass(frozen=True, slots=True)
class ManifestOutcome:
    """Manifest patch summary without the rewritten file body."""

    path: str
    found: bool
    old_tag: str | None
    new_tag: str
    line_number: int | None
    applied: bool = False

    @staticmethod
    def from_patch(patch: ManifestPatch, *, applied: bool = False) -> ManifestOutcome:
        return ManifestOutcome(
            path=patch.path,
            found=patch.found,
            old_tag=patch.old_tag,
            new_tag=patch.new_tag,
            line_number=patch.line_number,
            applied=applied,
        )


@dataclass(frozen=True, slots=True)
class ReleaseResult:
    """Outcome of one orchestrator run.

    A failed result still carries everything computed before the failure and
    lists, in ``completed_steps``, every mutation that was actually applied.
    """

    status: ReleaseStatus
    dry_run: bool
    version: str | None = None
    tag: str | None = None
    commit: str | None = None
    tag_op: TagOp | None = None
    branch_ops: tuple[BranchOp, ...] = ()
    manifest_patch: ManifestOutcome | None = None
    completed_steps: tuple[str, ...] = ()
    states: tuple[ReleaseState, ...] = ()
    error: ReleaseError | None = None

    @property
    def success(self) -> bool:
        return self.status == "done"

    def to_dict(self) -> dict[str, object]:
        manifest: dict[str, object] | None = None
        if self.manifest_patch is not None:
            m = self.manifest_patch
            manifest = {
                "path": m.path,
                "found": m.found,
                "oldTag": m.old_tag,
                "newTag": m.new_tag,
                "line": m.line_number,
                "applied": m.applied,
            }

        tag_op: dict[str, object] | None = None
        if self.tag_op is not None:
            tag_op = {
                "name": self.tag_op.name,
                "commit": self.tag_op.commit,
                "alreadyExists": self.tag_op.already_exists,
                "applied": self.tag_op.applied,
            }

        return {
            "status": self.status,
            "dryRun": self.dry_run,
            "version": self.version,
            "tag": self.tag,
            "commit": self.commit,
            "tagOp": tag_op,
            "branchOps": [
                {
                    "branch": op.branch,
                    "fromCommit": op.from_commit,
                    "toCommit": op.to_commit,
                    "alreadyAtTarget": op.already_at_target,
                    "applied": op.applied,
                }
                for op in self.branch_ops
            ],
            "manifestPatch": manifest,
            "completedSteps": list(self.completed_steps),
            "states": [str(s) for s in self.states],
            "error": None if self.error is None else self.error.to_dict(),
        }
