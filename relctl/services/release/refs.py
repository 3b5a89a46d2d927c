"""Repository ref store used by the release orchestrator.

The orchestrator only sees this narrow interface. ``GitRefStore`` talks to a
real repository through git plumbing; ``InMemoryRefStore`` keeps refs and a
commit graph in dicts for tests and previews.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from relctl.core.result import Err, Ok, Result
from relctl.git.repository import GitError, Repository
from relctl.release.errors import ReleaseError, ReleaseErrorKind
from relctl.services.release.model import BRANCH_PREFIX, TAG_PREFIX, RefSnapshot

__all__ = ["GitRefStore", "InMemoryRefStore", "RefStore"]


class RefStore(Protocol):
    def resolve_commit(self, rev: str) -> Result[str, ReleaseError]: ...

    def list_refs(self) -> Result[RefSnapshot, ReleaseError]: ...

    def is_ancestor(self, ancestor: str, descendant: str) -> Result[bool, ReleaseError]: ...

    def create_tag(self, name: str, commit: str) -> Result[None, ReleaseError]:
        """Create ``refs/tags/<name>``; fails if it already exists."""
        ...

    def update_branch(self, name: str, new: str, old: str | None) -> Result[None, ReleaseError]:
        """Move ``refs/heads/<name>`` from ``old`` (None: absent) to ``new``."""
        ...


def _io_error(e: GitError, message: str) -> ReleaseError:
    hint = "git timed out; retry once the repository is reachable." if e.timed_out else None
    return ReleaseError(
        kind="io_failure",
        message=message,
        hint=hint,
        details=(f"git {e.command}: {e.message}",),
    )


class GitRefStore:
    """RefStore backed by a local git repository."""

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def resolve_commit(self, rev: str) -> Result[str, ReleaseError]:
        return self._repo.rev_parse_commit(rev).map_err(
            lambda e: _io_error(e, f"cannot resolve release target: {rev}")
        )

    def list_refs(self) -> Result[RefSnapshot, ReleaseError]:
        result = self._repo.list_refs(TAG_PREFIX.rstrip("/"), BRANCH_PREFIX.rstrip("/"))
        if isinstance(result, Err):
            return Err(_io_error(result.error, "cannot list repository refs"))
        return Ok(RefSnapshot(refs=result.value))

    def is_ancestor(self, ancestor: str, descendant: str) -> Result[bool, ReleaseError]:
        return self._repo.is_ancestor(ancestor, descendant).map_err(
            lambda e: _io_error(e, "cannot check commit ancestry")
        )

    def create_tag(self, name: str, commit: str) -> Result[None, ReleaseError]:
        return self._update(TAG_PREFIX + name, commit, None, race_kind="tag_conflict")

    def update_branch(self, name: str, new: str, old: str | None) -> Result[None, ReleaseError]:
        return self._update(BRANCH_PREFIX + name, new, old, race_kind="non_linear_history")

    def _update(
        self,
        ref: str,
        new: str,
        old: str | None,
        *,
        race_kind: ReleaseErrorKind,
    ) -> Result[None, ReleaseError]:
        result = self._repo.update_ref(ref, new, old)
        if isinstance(result, Ok):
            return result

        e = result.error
        if e.is_ref_race:
            return Err(
                ReleaseError(
                    kind=race_kind,
                    message=f"{ref} changed while the release was running",
                    hint="Another release may be in progress; re-run once it finishes.",
                    details=(f"expected: {old or '(absent)'}", f"git: {e.message}"),
                )
            )
        return Err(_io_error(e, f"cannot update {ref}"))


def _empty_refs() -> dict[str, str]:
    return {}


def _empty_graph() -> dict[str, tuple[str, ...]]:
    return {}


def _empty_failures() -> dict[str, ReleaseError]:
    return {}


@dataclass
class InMemoryRefStore:
    """RefStore over plain dicts.

    ``parents`` maps a commit to its parent commits. ``failures`` maps a full
    ref name to the error its next write should return.
    """

    head: str
    refs: dict[str, str] = field(default_factory=_empty_refs)
    parents: dict[str, tuple[str, ...]] = field(default_factory=_empty_graph)
    failures: dict[str, ReleaseError] = field(default_factory=_empty_failures)
    writes: list[tuple[str, str]] = field(default_factory=list)

    @classmethod
    def linear(cls, *commits: str, refs: Mapping[str, str] | None = None) -> InMemoryRefStore:
        """Build a store whose history is ``commits`` in order, HEAD at the last one."""
        parents: dict[str, tuple[str, ...]] = {}
        prev: str | None = None
        for c in commits:
            parents[c] = (prev,) if prev is not None else ()
            prev = c
        if prev is None:
            raise ValueError("at least one commit is required")
        return cls(head=prev, refs=dict(refs or {}), parents=parents)

    def resolve_commit(self, rev: str) -> Result[str, ReleaseError]:
        if rev == "HEAD":
            return Ok(self.head)
        if rev in self.parents:
            return Ok(rev)
        for prefix in (TAG_PREFIX, BRANCH_PREFIX, ""):
            sha = self.refs.get(prefix + rev)
            if sha is not None:
                return Ok(sha)
        return Err(
            ReleaseError(
                kind="io_failure",
                message=f"cannot resolve release target: {rev}",
                details=(f"unknown revision: {rev}",),
            )
        )

    def list_refs(self) -> Result[RefSnapshot, ReleaseError]:
        return Ok(RefSnapshot(refs=dict(self.refs)))

    def is_ancestor(self, ancestor: str, descendant: str) -> Result[bool, ReleaseError]:
        seen: set[str] = set()
        stack = [descendant]
        while stack:
            c = stack.pop()
            if c == ancestor:
                return Ok(True)
            if c in seen:
                continue
            seen.add(c)
            stack.extend(self.parents.get(c, ()))
        return Ok(False)

    def create_tag(self, name: str, commit: str) -> Result[None, ReleaseError]:
        ref = TAG_PREFIX + name
        if ref in self.refs:
            return Err(
                ReleaseError(
                    kind="tag_conflict",
                    message=f"{ref} changed while the release was running",
                    details=("expected: (absent)", f"actual: {self.refs[ref]}"),
                )
            )
        return self._write(ref, commit)

    def update_branch(self, name: str, new: str, old: str | None) -> Result[None, ReleaseError]:
        ref = BRANCH_PREFIX + name
        current = self.refs.get(ref)
        if current != old:
            return Err(
                ReleaseError(
                    kind="non_linear_history",
                    message=f"{ref} changed while the release was running",
                    details=(f"expected: {old or '(absent)'}", f"actual: {current or '(absent)'}"),
                )
            )
        return self._write(ref, new)

    def _write(self, ref: str, commit: str) -> Result[None, ReleaseError]:
        failure = self.failures.pop(ref, None)
        if failure is not None:
            return Err(failure)
        self.refs[ref] = commit
        self.writes.append((ref, commit))
        return Ok(None)
