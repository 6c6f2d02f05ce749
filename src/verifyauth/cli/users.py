"""User management CLI commands."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table
from sqlmodel import select

from verifyauth.database import get_session_context
from verifyauth.models import User
from verifyauth.services.auth import AlreadyVerifiedError
from verifyauth.services.email import email_service
from verifyauth.services.users import get_user_by_email, resend_verification_code

console = Console()
app = typer.Typer(help="User management commands")


@app.command("list")
def list_users(
    unverified: bool = typer.Option(False, "--unverified", help="Only show unverified users"),
):
    """List all users."""

    async def _list():
        async with get_session_context() as session:
            stmt = select(User).order_by(User.email)
            if unverified:
                stmt = stmt.where(User.verified == False)  # noqa: E712
            result = await session.execute(stmt)
            users = result.scalars().all()

            table = Table(title="Users")
            table.add_column("ID", style="cyan")
            table.add_column("Email", style="green")
            table.add_column("Name")
            table.add_column("Verified", style="magenta")
            table.add_column("Created", style="dim")

            for user in users:
                verified_str = "[green]Yes[/green]" if user.verified else "No"
                created = user.created_at.strftime("%Y-%m-%d") if user.created_at else "-"
                table.add_row(str(user.id), user.email, user.name, verified_str, created)

            console.print(table)

    asyncio.run(_list())


@app.command("verify")
def verify_user(email: str = typer.Argument(..., help="User email")):
    """Mark a user verified without a code."""

    async def _verify():
        async with get_session_context() as session:
            user = await get_user_by_email(session, email)

            if not user:
                console.print(f"[red]Error:[/red] User {email} not found")
                raise typer.Exit(1)

            if user.verified:
                console.print(f"[yellow]Warning:[/yellow] User {email} is already verified")
                return

            user.verified = True
            user.verification_code = None
            await session.commit()
            console.print(f"[green]Verified:[/green] {email}")

    asyncio.run(_verify())


@app.command("resend")
def resend_code(email: str = typer.Argument(..., help="User email")):
    """Issue and email a new verification code."""

    async def _resend():
        async with get_session_context() as session:
            user = await get_user_by_email(session, email)

            if not user:
                console.print(f"[red]Error:[/red] User {email} not found")
                raise typer.Exit(1)

            try:
                await resend_verification_code(session, email_service, user)
            except AlreadyVerifiedError:
                console.print(f"[yellow]Warning:[/yellow] User {email} is already verified")
                return

            console.print(f"[green]New code sent to:[/green] {email}")

    asyncio.run(_resend())
