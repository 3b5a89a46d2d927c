from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field

from relctl.services.release.semver import SemVer

TAG_PREFIX = "refs/tags/"
BRANCH_PREFIX = "refs/heads/"


@dataclass(frozen=True, slots=True)
class RefSnapshot:
    """Tags and branches of a repository at one point in time.

    Keys are full ref names (``refs/tags/v1.2.3``, ``refs/heads/v1``), values
    are commit ids (annotated tags already peeled).
    """

    refs: Mapping[str, str] = field(default_factory=dict)

    def tag(self, name: str) -> str | None:
        return self.refs.get(TAG_PREFIX + name)

    def branch(self, name: str) -> str | None:
        return self.refs.get(BRANCH_PREFIX + name)

    def tag_names(self) -> Iterator[str]:
        for ref in sorted(self.refs):
            if ref.startswith(TAG_PREFIX):
                yield ref[len(TAG_PREFIX) :]


@dataclass(frozen=True, slots=True)
class TagOp:
    name: str
    commit: str
    # Tag already points at the release commit; nothing to create.
    already_exists: bool
    applied: bool = False


@dataclass(frozen=True, slots=True)
class BranchOp:
    branch: str
    from_commit: str | None  # None: branch does not exist yet
    to_commit: str
    already_at_target: bool
    applied: bool = False

    @property
    def is_create(self) -> bool:
        return self.from_commit is None


@dataclass(frozen=True, slots=True)
class RefPlan:
    """Refs that must exist after the release, in application order."""

    version: SemVer
    commit: str
    tag: TagOp
    branches: tuple[BranchOp, ...] = ()


@dataclass(frozen=True, slots=True)
class ManifestPatch:
    path: str
    image: str
    old_tag: str | None
    new_tag: str
    found: bool
    line_number: int | None
    new_text: str

    @property
    def changed(self) -> bool:
        return self.found and self.old_tag != self.new_tag
