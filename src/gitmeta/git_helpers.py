"""Read-only git access: branch, tags at HEAD, head commit.

Two readers implement the same contract. ConsoleGitReader runs the git
executable; LibraryGitReader reads the repository in-process with dulwich.
Outside a repository every query returns its absent value (None or []).
"""

import os
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from dulwich.objects import Tag
from dulwich.repo import Repo

from gitmeta.config import BuildSettings, GitBackend
from gitmeta.utils import log, resolve_directory, run_cmd

T = TypeVar("T")

_SYMREF_PREFIX = b"ref: "
_BRANCH_PREFIX = "refs/heads/"
_TAGS_PREFIX = b"refs/tags"


class GitInvocationError(RuntimeError):
    """Git was reachable in principle but a query against it failed."""

    def __init__(self, args: list[str], returncode: int | None, detail: str = ""):
        self.git_args = list(args)
        self.returncode = returncode
        self.detail = detail
        command = " ".join(self.git_args)
        if returncode is None:
            message = f"git {command}: {detail}"
        else:
            message = f"git {command} exited with status {returncode}"
            if detail:
                message += f": {detail}"
        super().__init__(message)


@dataclass(frozen=True)
class GitSnapshot:
    branch: str | None = None
    tags: tuple[str, ...] = ()
    head_commit: str | None = None

    @property
    def current_branch(self) -> str:
        """The branch name, or an empty string when there is none."""
        return self.branch or ""


def is_git_repo(path: str) -> bool:
    """Check whether path is inside a git working copy.

    Walks up from path looking for a .git entry (a directory, or a file for
    worktrees and submodules).
    """
    current = resolve_directory(path)
    if not os.path.isdir(current):
        return False
    while True:
        if os.path.exists(os.path.join(current, ".git")):
            return True
        parent = os.path.dirname(current)
        if parent == current:
            return False
        current = parent


def branch_from_ref(ref: str) -> str:
    """Strip the refs/heads/ prefix from a full branch ref.

    Pure function: 'refs/heads/feature/x' becomes 'feature/x'.
    """
    if ref.startswith(_BRANCH_PREFIX):
        return ref[len(_BRANCH_PREFIX):]
    return ref


def parse_tag_output(output: str) -> list[str]:
    """Parse one-tag-per-line git output into a sorted list of tag names."""
    return sorted({line.strip() for line in output.splitlines() if line.strip()})


class ReadableGit(ABC):
    """Read-only view of the git working copy at `directory`.

    Failures inside a repository raise GitInvocationError from the backend
    hooks. Public queries log them and return the absent value, or re-raise
    when `strict` is set.
    """

    source = "git"

    def __init__(self, directory: str, strict: bool = False):
        self.directory = resolve_directory(directory)
        self.strict = strict

    def is_repo(self) -> bool:
        return is_git_repo(self.directory)

    def head_commit_sha(self) -> str | None:
        return self._query("head commit", self._head_commit_sha, None)

    def branch(self) -> str | None:
        return self._query("branch", lambda: self._branch(self._head_commit_sha()), None)

    def current_tags(self) -> list[str]:
        return self._query("current tags", lambda: self._current_tags(self._head_commit_sha()), [])

    def read_snapshot(self) -> GitSnapshot:
        """Read branch, tags and head commit in one pass against the same HEAD."""
        if not self.is_repo():
            return GitSnapshot()
        head = self.head_commit_sha()
        branch = self._query("branch", lambda: self._branch(head), None)
        tags = self._query("current tags", lambda: self._current_tags(head), [])
        return GitSnapshot(branch=branch, tags=tuple(tags), head_commit=head)

    def _query(self, what: str, fetch: Callable[[], T], absent: T) -> T:
        if not self.is_repo():
            return absent
        try:
            return fetch()
        except GitInvocationError as exc:
            if self.strict:
                raise
            log(self.source, f"Could not read {what} in {self.directory}: {exc}", style="yellow")
            return absent

    @abstractmethod
    def _head_commit_sha(self) -> str | None: ...

    @abstractmethod
    def _branch(self, head: str | None) -> str | None: ...

    @abstractmethod
    def _current_tags(self, head: str | None) -> list[str]: ...


class ConsoleGitReader(ReadableGit):
    """Reads git state by running the git executable in a subprocess."""

    source = "git-console"

    def __init__(
        self,
        directory: str,
        strict: bool = False,
        git_executable: str = "git",
        timeout: float | None = None,
    ):
        super().__init__(directory, strict)
        self.git_executable = git_executable
        self.timeout = timeout

    def _git(self, *args: str, ok_codes: tuple[int, ...] = (0,)) -> subprocess.CompletedProcess:
        """Run git against the working copy. Raises GitInvocationError on failure."""
        cmd = [self.git_executable, "-C", self.directory, *args]
        try:
            result = run_cmd(cmd, capture=True, timeout=self.timeout)
        except FileNotFoundError:
            raise GitInvocationError(list(args), None, f"executable '{self.git_executable}' not found") from None
        except subprocess.TimeoutExpired:
            raise GitInvocationError(list(args), None, f"timed out after {self.timeout}s") from None
        if result.returncode not in ok_codes:
            raise GitInvocationError(list(args), result.returncode, (result.stderr or "").strip())
        return result

    def _head_commit_sha(self) -> str | None:
        # Exit status 1 with -q means HEAD does not resolve yet (unborn branch).
        result = self._git("rev-parse", "--verify", "-q", "HEAD", ok_codes=(0, 1))
        sha = result.stdout.strip() if result.returncode == 0 else ""
        return sha or None

    def _branch(self, head: str | None) -> str | None:
        # Exit status 1 with -q means HEAD is detached.
        result = self._git("symbolic-ref", "-q", "HEAD", ok_codes=(0, 1))
        ref = result.stdout.strip() if result.returncode == 0 else ""
        if ref:
            return branch_from_ref(ref)
        return head

    def _current_tags(self, head: str | None) -> list[str]:
        if head is None:
            return []
        result = self._git("tag", "--points-at", head)
        return parse_tag_output(result.stdout)


class LibraryGitReader(ReadableGit):
    """Reads git state in-process through dulwich."""

    source = "git-library"

    def _open(self) -> Repo:
        try:
            return Repo.discover(self.directory)
        except Exception as exc:
            raise GitInvocationError(["open", self.directory], None, str(exc)) from exc

    def _read(self, what: str, read: Callable[[Repo], T]) -> T:
        repo = self._open()
        try:
            return read(repo)
        except GitInvocationError:
            raise
        except Exception as exc:
            raise GitInvocationError([what], None, f"{type(exc).__name__}: {exc}") from exc
        finally:
            repo.close()

    def _head_commit_sha(self) -> str | None:
        def read(repo: Repo) -> str | None:
            try:
                return repo.head().decode("ascii")
            except KeyError:
                return None

        return self._read("head", read)

    def _branch(self, head: str | None) -> str | None:
        def read(repo: Repo) -> str | None:
            raw = repo.refs.read_ref(b"HEAD")
            if raw and raw.startswith(_SYMREF_PREFIX):
                return branch_from_ref(raw[len(_SYMREF_PREFIX):].strip().decode("utf-8"))
            return head

        return self._read("branch", read)

    def _current_tags(self, head: str | None) -> list[str]:
        if head is None:
            return []
        target = head.encode("ascii")

        def read(repo: Repo) -> list[str]:
            tags = []
            for name, sha in repo.refs.as_dict(_TAGS_PREFIX).items():
                if _peel(repo, sha) == target:
                    tags.append(name.decode("utf-8"))
            return sorted(tags)

        return self._read("tags", read)


def _peel(repo: Repo, sha: bytes) -> bytes:
    """Follow annotated tag objects down to the object they point at."""
    obj = repo[sha]
    while isinstance(obj, Tag):
        sha = obj.object[1]
        obj = repo[sha]
    return sha


def make_reader(settings: BuildSettings) -> ReadableGit:
    """Build the reader named by settings.backend."""
    if settings.backend is GitBackend.LIBRARY:
        return LibraryGitReader(settings.directory, strict=settings.strict)
    return ConsoleGitReader(settings.directory, strict=settings.strict, timeout=settings.git_timeout)
