"""Main CLI entry point for gitresolve."""

import logging
import os
import socket
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from gitresolve.constants import EXIT_SYSTEM_ERROR, EXIT_USER_ERROR
from gitresolve.exceptions import GitResolveError
from gitresolve.objects import ObjectKind, Signature, Tree, is_valid_address
from gitresolve.repository import Repository

console = Console()
app = typer.Typer(
    name="gitresolve",
    help="Resolve and tag objects in a git object database",
    add_completion=False,
)

REPO_OPTION = typer.Option(
    Path("."),
    "--repo",
    "-C",
    help="Repository or working directory (defaults to the current directory)",
)


def _fail(message: str, code: int = EXIT_USER_ERROR) -> None:
    console.print(f"[bold red]Error:[/bold red] {message}", style="red", highlight=False)
    raise typer.Exit(code)


def _open(path: Path) -> Repository:
    try:
        return Repository(path)
    except GitResolveError as e:
        console.print(f"[bold red]Error:[/bold red] {e}", style="red", highlight=False)
        console.print(
            "\nRun [bold]gitresolve init[/bold] to create a repository",
            style="yellow",
        )
        raise typer.Exit(EXIT_USER_ERROR)


def _address_of(repo: Repository, identifier: str) -> str:
    """Turn an address or reference name into a content address."""
    if is_valid_address(identifier):
        return identifier.lower()
    obj = repo.resolve(identifier)
    if obj is None:
        _fail(f"Not a valid object name: {identifier}")
    return obj.sha


def _default_identity() -> tuple:
    username = os.getenv("USER") or os.getenv("USERNAME") or "unknown"
    return username, f"{username}@{socket.gethostname()}"


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging on stderr"),
) -> None:
    """Resolve and tag objects in a git object database."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


@app.command()
def version() -> None:
    """Show gitresolve version."""
    from gitresolve import __version__
    typer.echo(f"gitresolve version {__version__}")


@app.command()
def init(
    path: Path = typer.Argument(Path("."), help="Directory to initialize"),
    bare: bool = typer.Option(False, "--bare", help="Create a bare repository"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output except errors"),
) -> None:
    """Create an empty repository (or reinitialize an existing one)."""
    try:
        repo_dir = Repository.init(path, is_bare=bare)
    except OSError as e:
        _fail(f"Failed to initialize repository: {e}", EXIT_SYSTEM_ERROR)

    if not quiet:
        console.print(
            Panel(
                f"[bold green]✓[/bold green] Initialized {'bare ' if bare else ''}repository\n\n"
                f"[dim]Repository directory:[/dim] {repo_dir}",
                border_style="green",
                title="gitresolve",
            )
        )


@app.command("cat-file")
def cat_file(
    identifier: str = typer.Argument(..., help="Object address or reference name"),
    show_type: bool = typer.Option(False, "-t", help="Show the object kind"),
    show_size: bool = typer.Option(False, "-s", help="Show the object size"),
    pretty: bool = typer.Option(False, "-p", help="Pretty-print the object contents"),
    repo_path: Path = REPO_OPTION,
) -> None:
    """Show the kind, size or contents of an object."""
    if sum((show_type, show_size, pretty)) != 1:
        _fail("Exactly one of -t, -s or -p is required")

    with _open(repo_path) as repo:
        try:
            address = _address_of(repo, identifier)
            if show_type or show_size:
                header = repo.read_header(address)
                typer.echo(str(header.kind) if show_type else str(header.length))
                return

            obj = repo.resolve(address)
            if isinstance(obj, Tree):
                for entry in obj.entries:
                    typer.echo(f"{entry.mode:06o} {entry.kind} {entry.sha}\t{entry.name}")
            else:
                typer.echo(repo.read(address).payload, nl=False)
        except GitResolveError as e:
            _fail(str(e))


@app.command()
def resolve(
    identifier: str = typer.Argument(..., help="Object address or reference name"),
    kind: Optional[str] = typer.Option(
        None,
        "--type",
        help="Required kind: commit, tree, blob or tag",
    ),
    repo_path: Path = REPO_OPTION,
) -> None:
    """Print the address and kind an identifier resolves to."""
    expected = None
    if kind is not None:
        try:
            expected = ObjectKind.from_name(kind)
        except ValueError:
            _fail(f"Unknown object kind: {kind}")

    with _open(repo_path) as repo:
        try:
            obj = repo.resolve(identifier, expected)
        except GitResolveError as e:
            _fail(str(e))

        if obj is None:
            _fail(f"No object or reference named {identifier}")
        typer.echo(f"{obj.sha} {obj.kind}")


@app.command()
def tag(
    name: str = typer.Argument(..., help="Tag name"),
    target: str = typer.Argument(..., help="Object address or reference name to tag"),
    message: str = typer.Option(..., "--message", "-m", help="Tag message"),
    tagger_name: Optional[str] = typer.Option(
        None, "--name", envvar="GIT_COMMITTER_NAME", help="Tagger name"
    ),
    tagger_email: Optional[str] = typer.Option(
        None, "--email", envvar="GIT_COMMITTER_EMAIL", help="Tagger email"
    ),
    repo_path: Path = REPO_OPTION,
) -> None:
    """Create an annotated tag."""
    default_name, default_email = _default_identity()

    with _open(repo_path) as repo:
        try:
            address = _address_of(repo, target)
            signature = Signature.now(tagger_name or default_name, tagger_email or default_email)
            new_tag = repo.apply_tag(address, name, message, signature)
        except (GitResolveError, ValueError) as e:
            _fail(str(e))

        console.print(
            f"[bold green]✓[/bold green] Tagged {new_tag.target_kind} "
            f"{new_tag.target[:8]} as [cyan]{new_tag.name}[/cyan] "
            f"[dim]({new_tag.sha[:8]})[/dim]",
            highlight=False,
        )


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
