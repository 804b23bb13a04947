"""Version of gitmeta itself.

Reports the package version plus the source commit when running from a
git checkout, so editable installs still say exactly what code is running.
Git is queried against this file's repo, not the caller's cwd.
"""

import os

from gitmeta.git_helpers import ConsoleGitReader

PACKAGE_VERSION = "0.1.0"

_REPO_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def get_version() -> str:
    """Return a version string like '0.1.0' or '0.1.0 (g3a7f2c1)'."""
    if not os.path.exists(os.path.join(_REPO_DIR, "pyproject.toml")):
        return PACKAGE_VERSION
    reader = ConsoleGitReader(_REPO_DIR, timeout=5)
    if not reader.is_repo():
        return PACKAGE_VERSION
    commit = reader.head_commit_sha()
    if not commit:
        return PACKAGE_VERSION
    return f"{PACKAGE_VERSION} (g{commit[:7]})"
