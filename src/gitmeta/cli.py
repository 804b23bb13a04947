"""CLI app definition: version, info and prompt commands."""

import os
import re
from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from gitmeta.config import load_settings, parse_property_definitions
from gitmeta.git_helpers import GitInvocationError
from gitmeta.project import GitProject
from gitmeta.utils import console, output
from gitmeta.version import get_version
from gitmeta.versioning import tag_pattern_strategy

DirectoryOption = Annotated[str, typer.Option("--dir", "-C", help="Git working copy to read (defaults to cwd)")]
BaseVersionOption = Annotated[str, typer.Option(help="Base version the commit or timestamp is appended to")]
VersionPropertyOption = Annotated[str, typer.Option(help="Property that overrides the version when set")]
BackendOption = Annotated[str, typer.Option(help="How to reach git: 'console' or 'library'")]
TagPatternOption = Annotated[str, typer.Option(help="Regex a release tag must fully match; group 'version' or 1 is the version")]
DefineOption = Annotated[list[str], typer.Option("--define", "-D", help="Set a property, e.g. -D project.version=2.0")]
StrictOption = Annotated[bool, typer.Option("--strict", help="Fail instead of degrading when git invocation fails")]
TimeoutOption = Annotated[float, typer.Option(help="Seconds to wait for each git invocation")]


def _version_callback(value: bool):
    if value:
        output.print(get_version())
        raise typer.Exit()


app = typer.Typer(
    help="Expose git branch, tags and head commit, and derive a project version from them.",
    no_args_is_help=True,
)


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", help="Show version and exit.", callback=_version_callback, is_eager=True),
    ] = False,
) -> None:
    """Git metadata and versioning for builds."""


def _load_project(
    directory: str,
    base_version: str | None,
    version_property: str | None,
    backend: str | None,
    tag_pattern: str | None,
    define: list[str] | None,
    strict: bool,
    timeout: float | None,
    **extra: str | None,
) -> GitProject:
    """Resolve settings from options and the environment. Exits with status 2 on bad input."""
    try:
        properties = {**os.environ, **parse_property_definitions(define or [])}
        settings = load_settings(
            directory,
            properties=properties,
            base_version=base_version,
            version_property=version_property,
            backend=backend,
            tag_to_version=tag_pattern_strategy(tag_pattern) if tag_pattern else None,
            strict=True if strict else None,
            git_timeout=timeout,
            **extra,
        )
    except re.error as exc:
        console.print(f"Invalid --tag-pattern: {exc}", style="red")
        raise typer.Exit(2)
    except ValueError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(2)
    return GitProject(settings)


def _git_failure(exc: GitInvocationError) -> typer.Exit:
    console.print(f"Git invocation failed: {exc}", style="red")
    return typer.Exit(1)


# ============================================
# Commands
# ============================================


@app.command()
def version(
    directory: DirectoryOption = ".",
    base_version: BaseVersionOption = None,
    version_property: VersionPropertyOption = None,
    backend: BackendOption = None,
    tag_pattern: TagPatternOption = None,
    define: DefineOption = None,
    strict: StrictOption = False,
    timeout: TimeoutOption = None,
) -> None:
    """Print the resolved project version."""
    project = _load_project(directory, base_version, version_property, backend, tag_pattern, define, strict, timeout)
    try:
        result = project.version()
    except GitInvocationError as exc:
        raise _git_failure(exc)
    output.print(result, markup=False, highlight=False, soft_wrap=True)


@app.command()
def info(
    directory: DirectoryOption = ".",
    base_version: BaseVersionOption = None,
    version_property: VersionPropertyOption = None,
    backend: BackendOption = None,
    tag_pattern: TagPatternOption = None,
    define: DefineOption = None,
    strict: StrictOption = False,
    timeout: TimeoutOption = None,
    remote_repo: Annotated[str, typer.Option(help="Remote repository associated with the project")] = None,
    target_branch: Annotated[str, typer.Option(help="Branch that git operations for this project target")] = None,
) -> None:
    """Show branch, tags, head commit and the version derived from them."""
    project = _load_project(
        directory, base_version, version_property, backend, tag_pattern, define, strict, timeout,
        remote_repo=remote_repo, target_branch=target_branch,
    )
    try:
        snapshot = project.snapshot
        resolved = project.version()
    except GitInvocationError as exc:
        raise _git_failure(exc)

    settings = project.settings
    table = Table(show_header=False, box=None)
    table.add_column(style="bold cyan")
    table.add_column()
    table.add_row("directory", escape(settings.directory))
    table.add_row("backend", settings.backend.value)
    table.add_row("branch", escape(snapshot.current_branch) or "-")
    table.add_row("tags", escape(", ".join(snapshot.tags)) or "-")
    table.add_row("head commit", snapshot.head_commit or "-")
    if settings.remote_repo:
        table.add_row("remote repo", escape(settings.remote_repo))
    if settings.target_branch:
        table.add_row("target branch", escape(settings.target_branch))
    table.add_row("version", escape(resolved))
    output.print(table)


@app.command()
def prompt(
    directory: DirectoryOption = ".",
    name: Annotated[str, typer.Option(help="Project name to show (defaults to the directory name)")] = None,
    backend: BackendOption = None,
    strict: StrictOption = False,
    timeout: TimeoutOption = None,
) -> None:
    """Print a shell prompt: 'name(branch)> ' inside a repository, 'name> ' outside."""
    project = _load_project(directory, None, None, backend, None, None, strict, timeout)
    try:
        text = project.prompt(name)
    except GitInvocationError as exc:
        raise _git_failure(exc)
    output.print(text, end="", markup=False, highlight=False, soft_wrap=True)
