"""Main CLI entry point for Gitlet."""

import shutil
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from gitlet.constants import DEFAULT_BRANCH, EXIT_SYSTEM_ERROR, EXIT_USER_ERROR, GITLET_DIR
from gitlet.core import MergeStatus, Repository
from gitlet.errors import GitletError, NotARepository
from gitlet.logging_config import configure_logging
from gitlet.storage import Commit

console = Console()
app = typer.Typer(
    name="gitlet",
    help="A small content-addressed version control system",
    add_completion=False,
)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log debug output to stderr",
    ),
) -> None:
    configure_logging(verbose)


def _error(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(message)}", style="red")


def _open_repo() -> Repository:
    """Open the repository in the current directory or exit with an error."""
    try:
        return Repository(Path.cwd())
    except NotARepository as e:
        _error(str(e))
        console.print(
            "\nRun [bold]gitlet init[/bold] to initialize a repository",
            style="yellow",
        )
        raise typer.Exit(EXIT_USER_ERROR)


def _fail(e: Exception) -> None:
    """Report an exception and exit with the matching status."""
    _error(str(e))
    if isinstance(e, GitletError):
        raise typer.Exit(EXIT_USER_ERROR)
    raise typer.Exit(EXIT_SYSTEM_ERROR)


def _format_date(commit: Commit) -> str:
    when = datetime.fromisoformat(commit.timestamp).astimezone()
    return when.strftime("%a %b %d %H:%M:%S %Y %z")


def _print_commit(commit_id: str, commit: Commit) -> None:
    console.print("===")
    console.print(f"[bold yellow]commit {commit_id}[/bold yellow]")
    if commit.is_merge:
        console.print(f"Merge: {commit.parent[:7]} {commit.second_parent[:7]}")
    console.print(f"Date: {_format_date(commit)}")
    console.print(escape(commit.message))
    console.print()


@app.command()
def version() -> None:
    """Show Gitlet version."""
    from gitlet import __version__
    typer.echo(f"Gitlet version {__version__}")


@app.command()
def init(
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress output except errors",
    ),
) -> None:
    """Initialize a Gitlet repository in the current directory."""
    workspace_root = Path.cwd()
    gitlet_dir = workspace_root / GITLET_DIR
    existed = gitlet_dir.exists()

    try:
        repo = Repository.init(workspace_root)
    except GitletError as e:
        _fail(e)
    except Exception as e:
        # Clean up partial initialization
        if not existed and gitlet_dir.exists():
            shutil.rmtree(gitlet_dir)
        _fail(e)

    try:
        if not quiet:
            success_message = f"""[bold green]✓[/bold green] Initialized Gitlet repository

[dim]Repository root:[/dim] {workspace_root}
[dim]Storage location:[/dim] {gitlet_dir}
[dim]Current branch:[/dim] {DEFAULT_BRANCH}
[dim]Root commit:[/dim] {repo.head_id[:7]}

[bold]Next steps:[/bold]
  1. Stage files: [cyan]gitlet add <file>[/cyan]
  2. Commit them: [cyan]gitlet commit -m "First commit"[/cyan]
"""
            console.print(Panel(success_message, border_style="green", title="Gitlet Initialized"))
    finally:
        repo.close()


@app.command()
def add(
    paths: List[str] = typer.Argument(..., help="Files to stage"),
) -> None:
    """Stage files for the next commit."""
    repo = _open_repo()
    try:
        for path in paths:
            blob_hash = repo.stage_add(path)
            if blob_hash is None:
                console.print(f"  [dim]=[/dim] {escape(path)}  [dim](unchanged)[/dim]")
            else:
                console.print(f"  [green]+[/green] {escape(path)}  [dim]({blob_hash[:8]})[/dim]")
    except Exception as e:
        _fail(e)
    finally:
        repo.close()


@app.command()
def rm(
    paths: List[str] = typer.Argument(..., help="Files to unstage or remove"),
) -> None:
    """Unstage files, and stage tracked files for removal."""
    repo = _open_repo()
    try:
        for path in paths:
            repo.stage_remove(path)
            console.print(f"  [red]-[/red] {escape(path)}")
    except Exception as e:
        _fail(e)
    finally:
        repo.close()


@app.command()
def commit(
    message: Optional[str] = typer.Option(
        None,
        "--message",
        "-m",
        help="Commit message (required)",
    ),
) -> None:
    """Commit the staged changes."""
    repo = _open_repo()
    try:
        commit_id = repo.commit(message or "")
        head = repo.graph.read_commit(commit_id)
        console.print(
            f"[bold green]>[/bold green] Committed [bold cyan]{commit_id[:7]}[/bold cyan] "
            f"on [bold]{escape(repo.current_branch)}[/bold]"
        )
        console.print(f"  [dim]Parent:[/dim]  {head.parent[:7]}")
        console.print(f"\n  {escape(head.message)}")
    except Exception as e:
        _fail(e)
    finally:
        repo.close()


@app.command()
def log(
    max_count: Optional[int] = typer.Option(
        None,
        "--max-count",
        "-n",
        help="Limit number of commits to show",
    ),
) -> None:
    """Show the history of the current branch."""
    repo = _open_repo()
    try:
        for commit_id, entry in repo.log(limit=max_count):
            _print_commit(commit_id, entry)
    except Exception as e:
        _fail(e)
    finally:
        repo.close()


@app.command("global-log")
def global_log() -> None:
    """Show every commit ever made."""
    repo = _open_repo()
    try:
        for commit_id, entry in repo.global_log():
            _print_commit(commit_id, entry)
    except Exception as e:
        _fail(e)
    finally:
        repo.close()


@app.command()
def find(
    message: str = typer.Argument(..., help="Exact commit message to search for"),
) -> None:
    """Print the ids of all commits with the given message."""
    repo = _open_repo()
    try:
        for commit_id in repo.find(message):
            console.print(commit_id)
    except Exception as e:
        _fail(e)
    finally:
        repo.close()


@app.command()
def status() -> None:
    """Show branches, staged changes and working-tree changes."""
    repo = _open_repo()
    try:
        report = repo.status()

        console.print("[bold]=== Branches ===[/bold]")
        for name in report.branches:
            if name == report.current_branch:
                console.print(f"[green]*{escape(name)}[/green]")
            else:
                console.print(escape(name))

        console.print("\n[bold]=== Staged Files ===[/bold]")
        for path in report.staged:
            console.print(f"[green]{escape(path)}[/green]")

        console.print("\n[bold]=== Removed Files ===[/bold]")
        for path in report.removed:
            console.print(f"[red]{escape(path)}[/red]")

        console.print("\n[bold]=== Modifications Not Staged For Commit ===[/bold]")
        for path, kind in report.unstaged.items():
            console.print(f"[yellow]{escape(path)} ({kind})[/yellow]")

        console.print("\n[bold]=== Untracked Files ===[/bold]")
        for path in report.untracked:
            console.print(f"[dim]{escape(path)}[/dim]")
        console.print()
    except Exception as e:
        _fail(e)
    finally:
        repo.close()


@app.command()
def checkout(
    target: Optional[str] = typer.Argument(
        None,
        help="Branch to switch to, or the commit to restore from with --file",
    ),
    file: Optional[str] = typer.Option(
        None,
        "--file",
        "-f",
        help="Restore a single file (from HEAD unless a commit is given)",
    ),
) -> None:
    """Switch branches, or restore one file from a commit."""
    if file is None and target is None:
        _error("Provide a branch name, or --file <path> [commit]")
        raise typer.Exit(EXIT_USER_ERROR)

    repo = _open_repo()
    try:
        if file is not None:
            repo.checkout_path_from_commit(target, file)
            console.print(f"Restored [cyan]{escape(file)}[/cyan]")
        else:
            repo.checkout_branch(target)
            console.print(f"Switched to branch [bold]{escape(target)}[/bold]")
    except Exception as e:
        _fail(e)
    finally:
        repo.close()


@app.command()
def branch(
    name: str = typer.Argument(..., help="Name of the new branch"),
) -> None:
    """Create a branch at the current commit."""
    repo = _open_repo()
    try:
        repo.create_branch(name)
        console.print(f"Created branch [bold]{escape(name)}[/bold] at {repo.head_id[:7]}")
    except Exception as e:
        _fail(e)
    finally:
        repo.close()


@app.command("rm-branch")
def rm_branch(
    name: str = typer.Argument(..., help="Branch to delete"),
) -> None:
    """Delete a branch pointer."""
    repo = _open_repo()
    try:
        repo.remove_branch(name)
        console.print(f"Deleted branch [bold]{escape(name)}[/bold]")
    except Exception as e:
        _fail(e)
    finally:
        repo.close()


@app.command()
def reset(
    commit_ref: str = typer.Argument(..., help="Commit id or unique prefix"),
) -> None:
    """Move the current branch to a commit and check out its files."""
    repo = _open_repo()
    try:
        commit_id = repo.reset_to_commit(commit_ref)
        console.print(f"{escape(repo.current_branch)} is now at [bold cyan]{commit_id[:7]}[/bold cyan]")
    except Exception as e:
        _fail(e)
    finally:
        repo.close()


@app.command()
def merge(
    branch_name: str = typer.Argument(..., help="Branch to merge into the current branch"),
) -> None:
    """Merge a branch into the current branch."""
    repo = _open_repo()
    try:
        result = repo.merge(branch_name)
        if result.status is MergeStatus.UP_TO_DATE:
            console.print("Given branch is an ancestor of the current branch.")
        elif result.status is MergeStatus.FAST_FORWARD:
            console.print("Current branch fast-forwarded.")
        else:
            console.print(
                f"[bold green]>[/bold green] Merged into [bold cyan]{result.commit_id[:7]}[/bold cyan]"
            )
            if result.has_conflicts:
                console.print("[bold yellow]Encountered a merge conflict.[/bold yellow]")
                for path in result.conflicts:
                    console.print(f"  [yellow]![/yellow] {escape(path)}")
    except Exception as e:
        _fail(e)
    finally:
        repo.close()


@app.command()
def reindex() -> None:
    """Rebuild the commit index from the stored commits."""
    repo = _open_repo()
    try:
        count = repo.reindex()
        console.print(f"Indexed {count} commit(s)")
    except Exception as e:
        _fail(e)
    finally:
        repo.close()


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
