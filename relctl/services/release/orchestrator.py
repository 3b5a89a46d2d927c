"""Release orchestration.

Sequences version parsing, ref planning and manifest patching, then either
reports the plan (dry run) or applies it: manifest first, then the tag, then
the tracking branches. A failure stops further mutation; nothing already
applied is rolled back, and the result lists exactly what was applied.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path

from relctl.core.result import Err, Ok, Result
from relctl.output.console import ConsoleProtocol, Style
from relctl.platform.files import atomic_write_text, read_text_exact
from relctl.release.contracts import (
    ManifestOutcome,
    ReleaseRequest,
    ReleaseResult,
    ReleaseState,
    ReleaseStatus,
)
from relctl.release.errors import ReleaseError
from relctl.services.release.manifest import patch_manifest
from relctl.services.release.model import BranchOp, ManifestPatch, RefPlan, RefSnapshot, TagOp
from relctl.services.release.planner import plan_refs
from relctl.services.release.refs import RefStore
from relctl.services.release.semver import SemVer, latest_version, parse_version

ReadText = Callable[[Path], str]
WriteText = Callable[[Path, str], None]

Mutation = Callable[[], Result[None, ReleaseError]]


@dataclass(frozen=True, slots=True)
class _Step:
    name: str
    echo: str
    mutation: Mutation | None  # None: already in place


def _short(sha: str) -> str:
    return sha[:12]


def _write_text(path: Path, content: str) -> None:
    atomic_write_text(path, content)


class ReleaseOrchestrator:
    """Runs one release request to a terminal state.

    An instance is single-use: it records its state trail while running and
    refuses a second ``run``.
    """

    def __init__(
        self,
        store: RefStore,
        console: ConsoleProtocol,
        *,
        read_text: ReadText = read_text_exact,
        write_text: WriteText = _write_text,
    ) -> None:
        self._store = store
        self._console = console
        self._read_text = read_text
        self._write_text = write_text

        self._used = False
        self._states: list[ReleaseState] = []
        self._dry_run = False
        self._version: SemVer | None = None
        self._commit: str | None = None
        self._refs = RefSnapshot()
        self._tag_op: TagOp | None = None
        self._branch_ops: list[BranchOp] = []
        self._manifest: ManifestOutcome | None = None
        self._completed: list[str] = []

    @property
    def state(self) -> ReleaseState:
        return self._states[-1] if self._states else ReleaseState.IDLE

    def run(self, request: ReleaseRequest) -> ReleaseResult:
        if self._used:
            raise RuntimeError("ReleaseOrchestrator instances are single-use")
        self._used = True
        self._dry_run = request.dry_run
        self._enter(ReleaseState.IDLE)

        self._enter(ReleaseState.VALIDATING)
        validated = self._validate(request)
        if isinstance(validated, Err):
            return self._fail(validated.error)

        self._enter(ReleaseState.PLANNING)
        planned = self._plan(request, validated.value)
        if isinstance(planned, Err):
            return self._fail(planned.error)
        plan, patch = planned.value

        steps = self._steps(request, plan, patch)

        if request.dry_run:
            self._enter(ReleaseState.DRY_RUN_REPORT)
            self._console.header(f"Release {plan.tag.name} (dry run)")
            for step in steps:
                self._console.print(step.echo, Style.DIM)
            self._console.warning("dry run: no changes made")
            return self._done()

        self._enter(ReleaseState.APPLYING)
        self._console.header(f"Release {plan.tag.name}")
        for step in steps:
            self._console.print(step.echo, Style.DIM)
            if step.mutation is None:
                continue
            applied = step.mutation()
            if isinstance(applied, Err):
                return self._fail(applied.error)
            self._completed.append(step.name)

        self._console.success(f"released {plan.tag.name} at {_short(plan.commit)}")
        return self._done()

    # -- phases ---------------------------------------------------------------

    def _validate(self, request: ReleaseRequest) -> Result[SemVer, ReleaseError]:
        commit = self._store.resolve_commit(request.target)
        if isinstance(commit, Err):
            return commit
        self._commit = commit.value

        refs = self._store.list_refs()
        if isinstance(refs, Err):
            return refs
        self._refs = refs.value

        latest = latest_version(list(refs.value.tag_names()))
        version = parse_version(
            request.version_input,
            latest,
            allow_default=request.allow_default_version,
            default=request.default_version,
        )
        if isinstance(version, Ok):
            self._version = version.value
            if not request.version_input.strip():
                prior = latest.to_tag() if latest is not None else "none"
                self._console.info(f"derived version {version.value} (latest tag: {prior})")
        return version

    def _plan(
        self, request: ReleaseRequest, version: SemVer
    ) -> Result[tuple[RefPlan, ManifestPatch], ReleaseError]:
        assert self._commit is not None
        plan = plan_refs(
            version,
            self._commit,
            self._refs,
            request.branch_options,
            is_ancestor=self._store.is_ancestor,
        )
        if isinstance(plan, Err):
            return plan
        self._tag_op = plan.value.tag
        self._branch_ops = list(plan.value.branches)

        path = request.manifest_path
        try:
            text = self._read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            return Err(
                ReleaseError(
                    kind="io_failure",
                    message=f"cannot read manifest: {path}",
                    details=(str(e),),
                )
            )

        patch = patch_manifest(text, request.image_name, plan.value.tag.name, path=str(path))
        if isinstance(patch, Err):
            if patch.error.kind == "image_ref_not_found":
                self._manifest = ManifestOutcome(
                    path=str(path),
                    found=False,
                    old_tag=None,
                    new_tag=plan.value.tag.name,
                    line_number=None,
                )
            return patch
        self._manifest = ManifestOutcome.from_patch(patch.value)

        return Ok((plan.value, patch.value))

    def _steps(self, request: ReleaseRequest, plan: RefPlan, patch: ManifestPatch) -> list[_Step]:
        steps: list[_Step] = []
        path = request.manifest_path

        if patch.changed:
            steps.append(
                _Step(
                    name=f"manifest {path}",
                    echo=(
                        f"{path}:{patch.line_number}: "
                        f"{patch.image}:{patch.old_tag} -> {patch.new_tag}"
                    ),
                    mutation=lambda: self._apply_manifest(path, patch),
                )
            )
        else:
            steps.append(
                _Step(
                    name=f"manifest {path}",
                    echo=f"{path}: {patch.image}:{patch.new_tag} already set",
                    mutation=None,
                )
            )

        tag = plan.tag
        if tag.already_exists:
            steps.append(
                _Step(
                    name=f"tag {tag.name}",
                    echo=f"tag {tag.name} already at {_short(tag.commit)}",
                    mutation=None,
                )
            )
        else:
            steps.append(
                _Step(
                    name=f"tag {tag.name}",
                    echo=f"git update-ref refs/tags/{tag.name} {tag.commit}",
                    mutation=lambda: self._apply_tag(tag),
                )
            )

        for index, op in enumerate(plan.branches):
            if op.already_at_target:
                steps.append(
                    _Step(
                        name=f"branch {op.branch}",
                        echo=f"branch {op.branch} already at {_short(op.to_commit)}",
                        mutation=None,
                    )
                )
                continue
            old = op.from_commit or ""
            steps.append(
                _Step(
                    name=f"branch {op.branch}",
                    echo=f"git update-ref refs/heads/{op.branch} {op.to_commit} {old}".rstrip(),
                    mutation=self._branch_mutation(index, op),
                )
            )

        return steps

    # -- mutations ------------------------------------------------------------

    def _apply_manifest(self, path: Path, patch: ManifestPatch) -> Result[None, ReleaseError]:
        try:
            self._write_text(path, patch.new_text)
        except OSError as e:
            return Err(
                ReleaseError(
                    kind="io_failure",
                    message=f"cannot write manifest: {path}",
                    details=(str(e),),
                )
            )
        if self._manifest is not None:
            self._manifest = replace(self._manifest, applied=True)
        return Ok(None)

    def _apply_tag(self, tag: TagOp) -> Result[None, ReleaseError]:
        created = self._store.create_tag(tag.name, tag.commit)
        if isinstance(created, Ok):
            self._tag_op = replace(tag, applied=True)
        return created

    def _branch_mutation(self, index: int, op: BranchOp) -> Mutation:
        def mutate() -> Result[None, ReleaseError]:
            moved = self._store.update_branch(op.branch, op.to_commit, op.from_commit)
            if isinstance(moved, Ok):
                self._branch_ops[index] = replace(op, applied=True)
            return moved

        return mutate

    # -- terminal states --------------------------------------------------------

    def _enter(self, state: ReleaseState) -> None:
        self._states.append(state)

    def _result(self, status: ReleaseStatus, error: ReleaseError | None) -> ReleaseResult:
        return ReleaseResult(
            status=status,
            dry_run=self._dry_run,
            version=None if self._version is None else str(self._version),
            tag=None if self._version is None else self._version.to_tag(),
            commit=self._commit,
            tag_op=self._tag_op,
            branch_ops=tuple(self._branch_ops),
            manifest_patch=self._manifest,
            completed_steps=tuple(self._completed),
            states=tuple(self._states),
            error=error,
        )

    def _done(self) -> ReleaseResult:
        self._enter(ReleaseState.DONE)
        return self._result("done", None)

    def _fail(self, error: ReleaseError) -> ReleaseResult:
        self._enter(ReleaseState.FAILED)
        if self._completed:
            self._console.warning(
                "release stopped after: " + ", ".join(self._completed) + " (not rolled back)"
            )
        return self._result("failed", error)


def run_release(
    request: ReleaseRequest,
    *,
    store: RefStore,
    console: ConsoleProtocol,
) -> ReleaseResult:
    """Run ``request`` with a fresh orchestrator."""
    return ReleaseOrchestrator(store, console).run(request)
