from __future__ import annotations

from collections.abc import Callable

from relctl.core.result import Err, Ok, Result
from relctl.release.contracts import BranchOptions
from relctl.release.errors import ReleaseError
from relctl.services.release.model import BranchOp, RefPlan, RefSnapshot, TagOp
from relctl.services.release.semver import SemVer

AncestryCheck = Callable[[str, str], Result[bool, ReleaseError]]


def _plan_tag(version: SemVer, commit: str, refs: RefSnapshot) -> Result[TagOp, ReleaseError]:
    name = version.to_tag()
    current = refs.tag(name)
    if current is None:
        return Ok(TagOp(name=name, commit=commit, already_exists=False))

    if current == commit:
        return Ok(TagOp(name=name, commit=commit, already_exists=True))

    # Tags are append-only: never move one.
    return Err(
        ReleaseError(
            kind="tag_conflict",
            message=f"tag {name} already exists at a different commit",
            hint="Release a new version instead of reusing this tag.",
            details=(f"expected: {commit}", f"actual: {current}"),
        )
    )


def _plan_branch(
    branch: str,
    commit: str,
    refs: RefSnapshot,
    is_ancestor: AncestryCheck,
) -> Result[BranchOp, ReleaseError]:
    current = refs.branch(branch)
    if current is None:
        return Ok(
            BranchOp(
                branch=branch,
                from_commit=None,
                to_commit=commit,
                already_at_target=False,
            )
        )

    if current == commit:
        return Ok(
            BranchOp(
                branch=branch,
                from_commit=current,
                to_commit=commit,
                already_at_target=True,
            )
        )

    ff = is_ancestor(current, commit)
    if isinstance(ff, Err):
        return ff
    if ff.value:
        return Ok(
            BranchOp(
                branch=branch,
                from_commit=current,
                to_commit=commit,
                already_at_target=False,
            )
        )

    # Covers both diverged history and a branch already ahead of the release
    # commit (an older patch released late).
    return Err(
        ReleaseError(
            kind="non_linear_history",
            message=f"branch {branch} cannot be fast-forwarded to the release commit",
            hint=f"Inspect {branch} manually; relctl never force-moves tracking branches.",
            details=(f"branch tip: {current}", f"release commit: {commit}"),
        )
    )


def plan_refs(
    version: SemVer,
    commit: str,
    refs: RefSnapshot,
    options: BranchOptions,
    *,
    is_ancestor: AncestryCheck,
) -> Result[RefPlan, ReleaseError]:
    """Compute the tag and tracking branches a release of ``version`` needs.

    The tag is always planned first so a moving branch is never observed ahead
    of its immutable tag. Identical inputs always yield an equal plan.
    """
    tag = _plan_tag(version, commit, refs)
    if isinstance(tag, Err):
        return tag

    wanted: list[str] = []
    if options.create_major_branch:
        wanted.append(version.major_branch())
    if options.create_minor_branch:
        wanted.append(version.minor_branch())

    branches: list[BranchOp] = []
    for branch in wanted:
        op = _plan_branch(branch, commit, refs, is_ancestor)
        if isinstance(op, Err):
            return op
        branches.append(op.value)

    return Ok(RefPlan(version=version, commit=commit, tag=tag.value, branches=tuple(branches)))
