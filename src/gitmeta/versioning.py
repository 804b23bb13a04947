"""Version resolution from git metadata.

The version comes from the first stage that yields a value:

1. the override property, when set to a non-empty string
2. the first current tag the tag mapping accepts
3. "<base>-<head sha>-SNAPSHOT" when there is a head commit
4. "<base>-<UTC timestamp>-SNAPSHOT", which always succeeds
"""

import os
import re
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone

from gitmeta.utils import env_style_name

TagToVersion = Callable[[str], str | None]

_DEFAULT_TAG_RE = re.compile(r"v[0-9].*", re.DOTALL)
TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S"


def default_tag_to_version(tag: str) -> str | None:
    """Map 'v1.2.3' to '1.2.3'. Tags not shaped like v<digit>... map to None."""
    if _DEFAULT_TAG_RE.fullmatch(tag):
        return tag[1:]
    return None


def tag_pattern_strategy(pattern: str) -> TagToVersion:
    """Build a tag mapping from a regular expression.

    The whole tag must match. The version is the named group 'version' if
    the pattern has one, else group 1 if it has any groups, else the tag.
    Raises re.error for an invalid pattern.
    """
    regex = re.compile(pattern)

    def tag_to_version(tag: str) -> str | None:
        match = regex.fullmatch(tag)
        if match is None:
            return None
        if "version" in regex.groupindex:
            version = match.group("version")
        elif regex.groups:
            version = match.group(1)
        else:
            version = match.group(0)
        return version or None

    return tag_to_version


def override_version(version_property: str, properties: Mapping[str, str] | None = None) -> str | None:
    """Look up the override under its own name, then its env-style name."""
    if properties is None:
        properties = os.environ
    for key in (version_property, env_style_name(version_property)):
        value = properties.get(key)
        if value:
            return value
    return None


def release_version(current_tags: Iterable[str], tag_to_version: TagToVersion) -> str | None:
    """Return the version of the first tag, in input order, the mapping accepts."""
    for tag in current_tags:
        version = tag_to_version(tag)
        if version:
            return version
    return None


def commit_version(base_version: str, head_commit: str | None) -> str | None:
    if head_commit:
        return f"{base_version}-{head_commit}-SNAPSHOT"
    return None


def dated_version(base_version: str, now: datetime | None = None) -> str:
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return f"{base_version}-{now.strftime(TIMESTAMP_FORMAT)}-SNAPSHOT"


def make_version(
    version_property: str,
    base_version: str,
    head_commit: str | None,
    current_tags: Iterable[str],
    tag_to_version: TagToVersion = default_tag_to_version,
    properties: Mapping[str, str] | None = None,
    now: datetime | None = None,
) -> str:
    """Resolve the project version by ordered fallback.

    `properties` defaults to os.environ. `now` pins the clock used by the
    dated fallback; naive datetimes are taken as UTC.
    """
    return (
        override_version(version_property, properties)
        or release_version(current_tags, tag_to_version)
        or commit_version(base_version, head_commit)
        or dated_version(base_version, now)
    )
