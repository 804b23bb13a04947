"""Build-wide settings for git metadata and versioning.

Defaults come from GITMETA_* environment variables. Settings are resolved
once into a frozen BuildSettings and passed to whatever needs them.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from gitmeta.utils import parse_bool, resolve_directory
from gitmeta.versioning import TagToVersion, default_tag_to_version


class GitBackend(str, Enum):
    """How git is reached: the external executable or the dulwich library."""

    CONSOLE = "console"
    LIBRARY = "library"


DEFAULT_BASE_VERSION = os.environ.get("GITMETA_BASE_VERSION", "1.0")
DEFAULT_VERSION_PROPERTY = os.environ.get("GITMETA_VERSION_PROPERTY", "project.version")
DEFAULT_BACKEND = os.environ.get("GITMETA_BACKEND", GitBackend.CONSOLE.value)
DEFAULT_STRICT = parse_bool(os.environ.get("GITMETA_STRICT"))
DEFAULT_REMOTE_REPO = os.environ.get("GITMETA_REMOTE_REPO") or None
DEFAULT_TARGET_BRANCH = os.environ.get("GITMETA_TARGET_BRANCH") or None
DEFAULT_GIT_TIMEOUT = os.environ.get("GITMETA_GIT_TIMEOUT")


def _parse_timeout(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


DEFAULT_GIT_TIMEOUT_VALUE = _parse_timeout(DEFAULT_GIT_TIMEOUT)


def parse_backend(value: str | GitBackend) -> GitBackend:
    """Return the GitBackend named by value. Raises ValueError if unknown."""
    if isinstance(value, GitBackend):
        return value
    try:
        return GitBackend(value.strip().lower())
    except ValueError:
        allowed = ", ".join(b.value for b in GitBackend)
        raise ValueError(f"Unknown git backend '{value}'. Allowed backends: {allowed}") from None


def parse_property_definitions(definitions: list[str]) -> dict[str, str]:
    """Parse 'name=value' pairs into a dict. Later pairs win.

    Raises ValueError for an entry without '=' or with an empty name.
    """
    result: dict[str, str] = {}
    for entry in definitions:
        name, sep, value = entry.partition("=")
        name = name.strip()
        if not sep or not name:
            raise ValueError(f"Invalid property definition '{entry}', expected name=value")
        result[name] = value
    return result


@dataclass(frozen=True)
class BuildSettings:
    directory: str
    base_version: str = DEFAULT_BASE_VERSION
    version_property: str = DEFAULT_VERSION_PROPERTY
    tag_to_version: TagToVersion = default_tag_to_version
    backend: GitBackend = GitBackend.CONSOLE
    strict: bool = DEFAULT_STRICT
    git_timeout: float | None = DEFAULT_GIT_TIMEOUT_VALUE
    remote_repo: str | None = DEFAULT_REMOTE_REPO
    target_branch: str | None = DEFAULT_TARGET_BRANCH
    properties: Mapping[str, str] = field(default_factory=dict)


def load_settings(
    directory: str = ".",
    properties: Mapping[str, str] | None = None,
    **overrides,
) -> BuildSettings:
    """Resolve BuildSettings for a working copy.

    `properties` is where the version override is read from; it defaults to
    a snapshot of os.environ. Keyword overrides replace individual fields;
    an override of None keeps the default.
    """
    if properties is None:
        properties = dict(os.environ)
    values = {k: v for k, v in overrides.items() if v is not None}
    values["backend"] = parse_backend(values.get("backend", DEFAULT_BACKEND))
    return BuildSettings(
        directory=resolve_directory(directory),
        properties=dict(properties),
        **values,
    )
