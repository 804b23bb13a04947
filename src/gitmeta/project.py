"""Build-wide git state: one snapshot per build, shared by every consumer."""

import os
from datetime import datetime
from functools import cached_property

from gitmeta.config import BuildSettings
from gitmeta.git_helpers import GitSnapshot, ReadableGit, make_reader
from gitmeta.versioning import make_version


class GitProject:
    """Git metadata and the derived version for one working copy.

    The snapshot is read on first use and then reused, so the branch, tags,
    head commit and version all describe the same HEAD.
    """

    def __init__(self, settings: BuildSettings, reader: ReadableGit | None = None):
        self.settings = settings
        self.reader = reader if reader is not None else make_reader(settings)

    @cached_property
    def snapshot(self) -> GitSnapshot:
        return self.reader.read_snapshot()

    @property
    def branch(self) -> str | None:
        return self.snapshot.branch

    @property
    def current_branch(self) -> str:
        return self.snapshot.current_branch

    @property
    def current_tags(self) -> tuple[str, ...]:
        return self.snapshot.tags

    @property
    def head_commit(self) -> str | None:
        return self.snapshot.head_commit

    def version(self, now: datetime | None = None) -> str:
        return make_version(
            self.settings.version_property,
            self.settings.base_version,
            self.head_commit,
            self.current_tags,
            self.settings.tag_to_version,
            properties=self.settings.properties,
            now=now,
        )

    def prompt(self, name: str | None = None) -> str:
        """Shell prompt showing the project name and, in a repository, the branch."""
        return format_prompt(name or os.path.basename(self.settings.directory), self.reader)


def format_prompt(name: str, reader: ReadableGit) -> str:
    """Return 'name(branch)> ' inside a git repository, 'name> ' otherwise."""
    if reader.is_repo():
        return f"{name}({reader.branch() or ''})> "
    return f"{name}> "


def version_from_settings(settings: BuildSettings, now: datetime | None = None) -> str:
    """Read one snapshot with the configured backend and resolve the version."""
    return GitProject(settings).version(now=now)
