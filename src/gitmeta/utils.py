"""Core utility functions: logging, command execution, path helpers."""

import os
import subprocess

from rich.console import Console

# Command results go to `output`; diagnostics go to `console`.
output = Console()
console = Console(stderr=True)


def log(source: str, message: str, style: str = "") -> None:
    """Write a diagnostic message to stderr, prefixed with its source."""
    text = f"[{source}] {message}" if source else message
    if style:
        console.print(text, style=style, markup=False, highlight=False)
    else:
        console.print(text, markup=False, highlight=False)


def run_cmd(
    args: list[str],
    capture: bool = False,
    timeout: float | None = None,
) -> subprocess.CompletedProcess:
    """Run a command, optionally capturing output.

    FileNotFoundError and subprocess.TimeoutExpired propagate to the caller.
    """
    kwargs = {}
    if capture:
        kwargs["stdout"] = subprocess.PIPE
        kwargs["stderr"] = subprocess.PIPE
        kwargs["text"] = True
    if timeout is not None:
        kwargs["timeout"] = timeout
    return subprocess.run(args, **kwargs)


def resolve_directory(path: str) -> str:
    """Expand ~ and return an absolute, normalized path."""
    return os.path.normpath(os.path.abspath(os.path.expanduser(path)))


def env_style_name(name: str) -> str:
    """Map a dotted property name to its environment-variable form.

    Pure function: 'project.version' becomes 'PROJECT_VERSION'.
    """
    return "".join(c if c.isalnum() else "_" for c in name).upper()


def parse_bool(value: str | None, default: bool = False) -> bool:
    """Interpret common truthy/falsy strings; None or blank returns default."""
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}
