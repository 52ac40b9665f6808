"""CLI tools for CRM administration."""

import sys

import click
from sqlmodel import Session

from crm.database import create_db_and_tables, engine
from crm.exceptions import ConstraintViolation
from crm.users.models import Role
from crm.users.schemas import UserCreate
from crm.users import service as user_service

@click.group()
def cli():
    """CRM CLI tools."""
    pass

@cli.command()
def init_db():
    """Create all tables that do not exist yet."""
    create_db_and_tables()
    click.echo("Tables created")

@cli.command()
@click.option("--username", required=True)
@click.option("--email", required=True)
@click.option("--full-name", required=True)
@click.option("--password", required=True, prompt=True, hide_input=True, confirmation_prompt=True)
@click.option(
    "--role",
    type=click.Choice([role.value for role in Role]),
    default=Role.SALES_EXECUTIVE.value,
    show_default=True,
)
def create_user(username: str, email: str, full_name: str, password: str, role: str):
    """
    Provision a user with any role.

    Self-registration only ever creates sales executives; admins and
    managers are created here.

    Example:
        crm create-user --username alice --email alice@acme.com --full-name "Alice Smith" --role admin
    """
    create_db_and_tables()
    with Session(engine) as session:
        try:
            user = user_service.create_user(
                session,
                UserCreate(username=username, email=email, full_name=full_name, password=password, role=Role(role)),
            )
        except ConstraintViolation as exc:
            click.echo(f"Error: {exc.message}", err=True)
            sys.exit(1)
    click.echo(f"Created {user.role.value} '{user.username}' (id {user.id})")

@cli.command()
def list_users():
    """Print every user, newest first."""
    with Session(engine) as session:
        for user in user_service.list_users(session):
            click.echo(f"{user.id}\t{user.username}\t{user.role.value}")

if __name__ == "__main__":
    cli()
