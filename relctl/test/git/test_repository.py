"""Tests for git/repository.py."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from relctl.core.result import Err, Ok
from relctl.git.repository import GitError, Repository

SHA_A = "a" * 40
SHA_B = "b" * 40
SHA_T = "c" * 40


def make_completed_process(
    stdout: str = "",
    stderr: str = "",
    returncode: int = 0,
) -> subprocess.CompletedProcess[str]:
    """Create a mock CompletedProcess."""
    return subprocess.CompletedProcess(
        args=["git"],
        returncode=returncode,
        stdout=stdout,
        stderr=stderr,
    )


# =============================================================================
# GitError Tests
# =============================================================================


class TestGitError:
    def test_cas_failures_are_ref_races(self) -> None:
        assert GitError(
            command="update-ref",
            message="fatal: cannot lock ref 'refs/heads/v1': is at aaa but expected bbb",
        ).is_ref_race
        assert GitError(
            command="update-ref",
            message="fatal: update_ref failed for ref 'refs/tags/v1.0.0': reference already exists",
        ).is_ref_race

    def test_other_failures_are_not(self) -> None:
        assert not GitError(command="update-ref", message="fatal: not a git repository").is_ref_race


# =============================================================================
# Repository Tests - Mocked subprocess
# =============================================================================


class TestRepository:
    @patch("subprocess.run")
    def test_rev_parse_commit(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout=f"{SHA_A}\n")

        result = Repository(tmp_path).rev_parse_commit("HEAD")

        assert result == Ok(SHA_A)
        args = mock_run.call_args[0][0]
        assert args[-1] == "HEAD^{commit}"

    @patch("subprocess.run")
    def test_rev_parse_unknown_revision(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(returncode=1)

        result = Repository(tmp_path).rev_parse_commit("nope")

        assert isinstance(result, Err)
        assert result.error.message == "unknown revision: nope"

    @patch("subprocess.run")
    def test_list_refs_peels_annotated_tags(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(
            stdout=(
                f"{SHA_A}\t\trefs/heads/v1\n"
                f"{SHA_T}\t{SHA_B}\trefs/tags/v1.0.0\n"
                f"{SHA_A}\t\trefs/tags/v1.0.1\n"
            )
        )

        result = Repository(tmp_path).list_refs("refs/tags", "refs/heads")

        assert result == Ok(
            {
                "refs/heads/v1": SHA_A,
                "refs/tags/v1.0.0": SHA_B,
                "refs/tags/v1.0.1": SHA_A,
            }
        )

    @patch("subprocess.run")
    def test_is_ancestor_true(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()
        assert Repository(tmp_path).is_ancestor(SHA_A, SHA_B) == Ok(True)

    @patch("subprocess.run")
    def test_is_ancestor_false(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(returncode=1)
        assert Repository(tmp_path).is_ancestor(SHA_A, SHA_B) == Ok(False)

    @patch("subprocess.run")
    def test_is_ancestor_error(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(
            returncode=128, stderr="fatal: Not a valid commit name"
        )

        result = Repository(tmp_path).is_ancestor(SHA_A, SHA_B)

        assert isinstance(result, Err)
        assert result.error.returncode == 128

    @patch("subprocess.run")
    def test_update_ref_create_uses_empty_old_value(
        self, mock_run: MagicMock, tmp_path: Path
    ) -> None:
        mock_run.return_value = make_completed_process()

        result = Repository(tmp_path).update_ref("refs/tags/v1.0.0", SHA_A, None)

        assert result == Ok(None)
        args = mock_run.call_args[0][0]
        assert args[-3:] == ["refs/tags/v1.0.0", SHA_A, ""]

    @patch("subprocess.run")
    def test_update_ref_failure(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(
            returncode=128, stderr="fatal: cannot lock ref 'refs/heads/v1'\n"
        )

        result = Repository(tmp_path).update_ref("refs/heads/v1", SHA_B, SHA_A)

        assert isinstance(result, Err)
        assert result.error.command == "update-ref"
        assert result.error.is_ref_race


# =============================================================================
# Repository Tests - real git
# =============================================================================


def _git(cwd: Path, *args: str) -> str:
    proc = subprocess.run(
        ["git", *args], cwd=cwd, check=True, capture_output=True, text=True
    )
    return proc.stdout.strip()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    if shutil.which("git") is None:
        pytest.skip("git not installed")
    _git(tmp_path, "init", "-q")
    _git(tmp_path, "config", "user.email", "dev@example.com")
    _git(tmp_path, "config", "user.name", "Dev")
    _git(tmp_path, "config", "commit.gpgsign", "false")
    _git(tmp_path, "commit", "-q", "--allow-empty", "-m", "first")
    _git(tmp_path, "commit", "-q", "--allow-empty", "-m", "second")
    return tmp_path


class TestRepositoryRealGit:
    def test_exists(self, git_repo: Path, tmp_path_factory: pytest.TempPathFactory) -> None:
        assert Repository(git_repo).exists()
        assert not Repository(tmp_path_factory.mktemp("plain")).exists()

    def test_ancestry_and_compare_and_swap(self, git_repo: Path) -> None:
        repo = Repository(git_repo)
        head = repo.rev_parse_commit("HEAD").unwrap()
        parent = repo.rev_parse_commit("HEAD~1").unwrap()

        assert repo.is_ancestor(parent, head) == Ok(True)
        assert repo.is_ancestor(head, parent) == Ok(False)

        assert repo.update_ref("refs/heads/v1", parent, None) == Ok(None)
        assert repo.update_ref("refs/heads/v1", head, parent) == Ok(None)

        # Stale expected value must be refused.
        stale = repo.update_ref("refs/heads/v1", head, parent)
        assert isinstance(stale, Err)
        assert stale.error.is_ref_race

    def test_list_refs_sees_annotated_tag_commit(self, git_repo: Path) -> None:
        _git(git_repo, "tag", "-a", "v1.0.0", "-m", "release")
        repo = Repository(git_repo)
        head = repo.rev_parse_commit("HEAD").unwrap()

        refs = repo.list_refs("refs/tags", "refs/heads").unwrap()

        assert refs["refs/tags/v1.0.0"] == head
