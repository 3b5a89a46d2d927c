from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from relctl.core.result import Err, Ok
from relctl.git.repository import GitError, Repository
from relctl.services.release.model import RefSnapshot
from relctl.services.release.refs import GitRefStore, InMemoryRefStore


def _repo() -> MagicMock:
    return MagicMock(spec=Repository)


class TestGitRefStore:
    def test_list_refs_reads_tags_and_heads(self) -> None:
        repo = _repo()
        repo.list_refs.return_value = Ok({"refs/tags/v1.0.0": "abc"})

        result = GitRefStore(repo).list_refs()

        assert result == Ok(RefSnapshot(refs={"refs/tags/v1.0.0": "abc"}))
        repo.list_refs.assert_called_once_with("refs/tags", "refs/heads")

    def test_resolve_failure_is_io_failure(self) -> None:
        repo = _repo()
        repo.rev_parse_commit.return_value = Err(
            GitError(command="rev-parse", message="unknown revision: main")
        )

        result = GitRefStore(repo).resolve_commit("main")

        assert isinstance(result, Err)
        assert result.error.kind == "io_failure"
        assert result.error.details == ("git rev-parse: unknown revision: main",)

    def test_timeout_gets_a_hint(self) -> None:
        repo = _repo()
        repo.is_ancestor.return_value = Err(
            GitError(command="merge-base", message="timed out", returncode=-1, timed_out=True)
        )

        result = GitRefStore(repo).is_ancestor("a", "b")

        assert isinstance(result, Err)
        assert result.error.kind == "io_failure"
        assert result.error.hint is not None and "timed out" in result.error.hint

    def test_create_tag_is_compare_and_swap(self) -> None:
        repo = _repo()
        repo.update_ref.return_value = Ok(None)

        assert GitRefStore(repo).create_tag("v1.0.0", "abc") == Ok(None)
        repo.update_ref.assert_called_once_with("refs/tags/v1.0.0", "abc", None)

    def test_tag_race_is_tag_conflict(self) -> None:
        repo = _repo()
        repo.update_ref.return_value = Err(
            GitError(
                command="update-ref", message="fatal: reference already exists", returncode=128
            )
        )

        result = GitRefStore(repo).create_tag("v1.0.0", "abc")

        assert isinstance(result, Err)
        assert result.error.kind == "tag_conflict"

    def test_branch_race_is_non_linear_history(self) -> None:
        repo = _repo()
        repo.update_ref.return_value = Err(
            GitError(
                command="update-ref",
                message="fatal: cannot lock ref 'refs/heads/v1': is at ccc but expected aaa",
                returncode=128,
            )
        )

        result = GitRefStore(repo).update_branch("v1", "bbb", "aaa")

        assert isinstance(result, Err)
        assert result.error.kind == "non_linear_history"
        repo.update_ref.assert_called_once_with("refs/heads/v1", "bbb", "aaa")

    def test_other_write_failure_is_io_failure(self) -> None:
        repo = _repo()
        repo.update_ref.return_value = Err(
            GitError(command="update-ref", message="fatal: unable to write", returncode=128)
        )

        result = GitRefStore(repo).update_branch("v1", "bbb", None)

        assert isinstance(result, Err)
        assert result.error.kind == "io_failure"


class TestInMemoryRefStore:
    def test_linear_history(self) -> None:
        store = InMemoryRefStore.linear("c1", "c2", "c3")
        assert store.head == "c3"
        assert store.is_ancestor("c1", "c3") == Ok(True)
        assert store.is_ancestor("c3", "c1") == Ok(False)
        assert store.is_ancestor("c2", "c2") == Ok(True)

    def test_linear_requires_a_commit(self) -> None:
        with pytest.raises(ValueError):
            InMemoryRefStore.linear()

    def test_resolve_commit(self) -> None:
        store = InMemoryRefStore.linear(
            "c1", "c2", refs={"refs/heads/main": "c2", "refs/tags/v1.0.0": "c1"}
        )
        assert store.resolve_commit("HEAD") == Ok("c2")
        assert store.resolve_commit("c1") == Ok("c1")
        assert store.resolve_commit("main") == Ok("c2")
        assert store.resolve_commit("v1.0.0") == Ok("c1")
        assert isinstance(store.resolve_commit("missing"), Err)

    def test_create_tag_refuses_existing(self) -> None:
        store = InMemoryRefStore.linear("c1", refs={"refs/tags/v1.0.0": "c1"})
        result = store.create_tag("v1.0.0", "c1")
        assert isinstance(result, Err)
        assert result.error.kind == "tag_conflict"

    def test_update_branch_checks_expected_value(self) -> None:
        store = InMemoryRefStore.linear("c1", "c2", refs={"refs/heads/v1": "c2"})

        stale = store.update_branch("v1", "c2", "c1")

        assert isinstance(stale, Err)
        assert stale.error.kind == "non_linear_history"
        assert store.writes == []

    def test_list_refs_is_a_snapshot(self) -> None:
        store = InMemoryRefStore.linear("c1")
        snapshot = store.list_refs().unwrap()
        store.create_tag("v0.1.0", "c1")
        assert snapshot is not None
        assert snapshot.tag("v0.1.0") is None
