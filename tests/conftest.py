"""Shared fixtures: throwaway git repositories built with dulwich."""

import pytest
from dulwich import porcelain
from dulwich.repo import Repo

AUTHOR = b"Test User <test@example.com>"


class RepoBuilder:
    """Small helper for building repositories in a temp directory."""

    def __init__(self, path):
        self.path = path
        repo = Repo.init(str(path))
        repo.refs.set_symbolic_ref(b"HEAD", b"refs/heads/main")
        repo.close()
        self._count = 0

    def commit(self, message: str = "commit") -> str:
        self._count += 1
        readme = self.path / "README.md"
        readme.write_text(f"revision {self._count}\n")
        porcelain.add(str(self.path), paths=[str(readme)])
        sha = porcelain.commit(
            str(self.path),
            message=message.encode(),
            author=AUTHOR,
            committer=AUTHOR,
        )
        return sha.decode("ascii")

    def tag(self, name: str, annotated: bool = False) -> None:
        if annotated:
            porcelain.tag_create(
                str(self.path), name.encode(), author=AUTHOR, message=b"release", annotated=True
            )
        else:
            porcelain.tag_create(str(self.path), name.encode())

    def checkout_branch(self, name: str) -> None:
        """Point HEAD at a new branch created from the current commit."""
        with Repo(str(self.path)) as repo:
            repo.refs[b"refs/heads/" + name.encode()] = repo.head()
            repo.refs.set_symbolic_ref(b"HEAD", b"refs/heads/" + name.encode())

    def detach(self, sha: str) -> None:
        (self.path / ".git" / "HEAD").write_text(sha + "\n")


@pytest.fixture
def git_repo(tmp_path):
    path = tmp_path / "project"
    path.mkdir()
    return RepoBuilder(path)


@pytest.fixture
def plain_dir(tmp_path):
    path = tmp_path / "not-a-repo"
    path.mkdir()
    return path
