"""Local account and IAM profile commands."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from iam_bridge.core.services import DbSessionService, HttpProfileStore, Profile
from iam_bridge.core.services.profile.profile_store import ProfileStore
from iam_bridge.entities.core.user import LocalUser, UserRepository
from iam_bridge.exceptions import IAMError
from iam_bridge.runtime.context import get_config

console = Console()

app = typer.Typer(
    help="iam-bridge: local accounts linked to IAM profiles",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def get_db_service() -> DbSessionService:
    return DbSessionService()


def get_profile_store() -> ProfileStore:
    return HttpProfileStore(get_config().profile_store)


def _render_user(user: LocalUser) -> None:
    table = Table(title=f"User {user.id}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Username", user.username or "-")
    table.add_row("Name", user.name or "-")
    table.add_row("Primary email", user.primary_email)
    table.add_row("Secondary emails", ", ".join(sorted(user.secondary_emails)) or "-")
    table.add_row("IAM uid", user.iam_uid or "-")
    table.add_row(
        "Last refresh", user.last_refresh.isoformat() if user.last_refresh else "never"
    )
    console.print(table)


@app.command("init-db")
def init_db() -> None:
    """Create the user tables."""
    get_db_service().create_all()
    console.print("[green]Database initialized[/green]")


@app.command("create-user")
def create_user(
    email: str = typer.Argument(..., help="Primary email address"),
    name: str | None = typer.Option(None, "--name", "-n", help="Display name"),
    username: str | None = typer.Option(None, "--username", "-u", help="Username"),
) -> None:
    """Create a local account."""
    with get_db_service().get_session() as session:
        try:
            user = UserRepository(session).create_user(
                email, name=name, username=username
            )
        except (ValueError, IAMError) as e:
            console.print(f"[red]Failed to create user: {e}[/red]")
            raise typer.Exit(code=1) from e
        _render_user(user)


@app.command("show")
def show(email: str = typer.Argument(..., help="Primary or secondary email")) -> None:
    """Show a local account and its IAM link."""
    with get_db_service().get_session() as session:
        user = UserRepository(session).find_by_email(email)
        if user is None:
            console.print(f"[yellow]No user owns {email}[/yellow]")
            raise typer.Exit(code=1)
        _render_user(user)


@app.command("refresh")
def refresh(
    email: str = typer.Argument(..., help="Primary or secondary email"),
    force: bool = typer.Option(False, "--force", "-f", help="Refresh even if fresh"),
) -> None:
    """Pull the IAM profile of a linked account."""
    with get_db_service().get_session() as session:
        directory = UserRepository(session)
        user = directory.find_by_email(email)
        if user is None:
            console.print(f"[yellow]No user owns {email}[/yellow]")
            raise typer.Exit(code=1)

        profile = Profile.for_user(user, directory=directory, store=get_profile_store())
        if profile is None:
            console.print(f"[yellow]{email} is not linked to an IAM profile[/yellow]")
            raise typer.Exit(code=1)

        try:
            outcome = asyncio.run(profile.refresh(force=force))
        except IAMError as e:
            console.print(f"[red]Refresh failed: {e}[/red]")
            raise typer.Exit(code=1) from e

        if outcome is None:
            console.print("[blue]Profile is fresh, nothing to do[/blue]")
        else:
            console.print(
                f"[green]Refreshed[/green] added={outcome.added} "
                f"removed={outcome.removed} taken={outcome.taken_emails}"
            )
        _render_user(user)
