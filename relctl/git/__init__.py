"""Git operations module.

Usage:
    from relctl.git import Repository

    repo = Repository(Path("/path/to/repo"))
    refs = repo.list_refs("refs/tags", "refs/heads")
"""

from relctl.git.repository import GitError, Repository

__all__ = [
    "GitError",
    "Repository",
]
