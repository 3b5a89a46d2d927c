"""Git repository abstraction.

Thin wrapper over the git plumbing commands a release needs. All operations
return Result types; nothing here knows about versions or manifests.

Usage:
    repo = Repository(Path("/path/to/repo"))

    match repo.rev_parse_commit("HEAD"):
        case Ok(sha):
            print(f"HEAD is {sha}")
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from relctl.core.result import Err, Ok, Result
from relctl.platform.process import ProcessError
from relctl.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_REFLOG_MESSAGE = "relctl: release"

__all__ = [
    "GitError",
    "Repository",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
        timed_out: True if git was killed after the timeout
    """

    command: str
    message: str
    returncode: int = 1
    timed_out: bool = False

    @property
    def is_ref_race(self) -> bool:
        """True if update-ref refused because the ref was not at the expected value."""
        text = self.message.lower()
        return "cannot lock ref" in text or "but expected" in text or "already exists" in text


class Repository:
    """Git repository abstraction.

    Attributes:
        path: Path to the repository root (or any directory inside it)
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        """Check if this is a valid git repository."""
        return isinstance(self._run(["rev-parse", "--git-dir"]), Ok)

    def rev_parse_commit(self, rev: str) -> Result[str, GitError]:
        """Resolve a commit-ish to a full commit id."""
        result = self._run(["rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}"])
        match result:
            case Err(e):
                return Err(self._error("rev-parse", e, fallback=f"unknown revision: {rev}"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def list_refs(self, *patterns: str) -> Result[dict[str, str], GitError]:
        """Map ref names to commit ids; annotated tags are peeled."""
        result = self._run(
            [
                "for-each-ref",
                "--format=%(objectname)%09%(*objectname)%09%(refname)",
                *patterns,
            ]
        )
        match result:
            case Err(e):
                return Err(self._error("for-each-ref", e, fallback="listing refs failed"))
            case Ok(stdout):
                return Ok(self._parse_refs(stdout))

    def is_ancestor(self, ancestor: str, descendant: str) -> Result[bool, GitError]:
        """Check whether ``ancestor`` is reachable from ``descendant``."""
        result = self._run(["merge-base", "--is-ancestor", ancestor, descendant])
        match result:
            case Ok(_):
                return Ok(True)
            case Err(e) if e.returncode == 1 and not e.timed_out:
                return Ok(False)
            case Err(e):
                return Err(self._error("merge-base", e, fallback="ancestry check failed"))

    def update_ref(self, ref: str, new: str, old: str | None) -> Result[None, GitError]:
        """Compare-and-swap a ref.

        ``old=None`` requires the ref not to exist yet; otherwise the ref must
        currently point at ``old``.
        """
        result = self._run(["update-ref", "-m", _REFLOG_MESSAGE, ref, new, old or ""])
        match result:
            case Err(e):
                return Err(self._error("update-ref", e, fallback=f"update of {ref} failed"))
            case Ok(_):
                return Ok(None)

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        return run_process(
            ["git", "-C", str(self.path), *args],
            cwd=self.path,
            timeout=_GIT_TIMEOUT_SECONDS,
        )

    def _error(self, command: str, e: ProcessError, *, fallback: str) -> GitError:
        return GitError(
            command=command,
            message=e.stderr.strip() or e.stdout.strip() or fallback,
            returncode=e.returncode,
            timed_out=e.timed_out,
        )

    def _parse_refs(self, output: str) -> dict[str, str]:
        refs: dict[str, str] = {}
        for line in output.splitlines():
            parts = line.split("\t")
            if len(parts) != 3:
                continue
            objectname, peeled, refname = parts
            refs[refname] = peeled or objectname
        return refs
