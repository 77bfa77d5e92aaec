"""Operator commands: usage resets, plan assignment and account creation."""
import click

from convert_server.accounts import new_api_key, new_user
from convert_server.billing import BillingService, UnknownPlan
from convert_server.config import Settings
from convert_server.database import Base, make_engine, make_session_factory
from convert_server.plans import Plan
from convert_server.quota import RESET_SCOPES, QuotaLedger
from convert_server.store import SqlStore


def open_store(database_url: str) -> SqlStore:
    engine = make_engine(database_url)
    Base.metadata.create_all(bind=engine)
    return SqlStore(make_session_factory(engine))


@click.group()
@click.option("--database-url", envvar="DATABASE_URL", default=None, help="SQLAlchemy database URL")
@click.pass_context
def cli(ctx: click.Context, database_url: str | None):
    """Administer the conversion API."""
    ctx.obj = open_store(database_url or Settings().database_url)


@cli.command("reset-usage")
@click.option("--scope", type=click.Choice(RESET_SCOPES), default="daily", show_default=True)
@click.pass_obj
def reset_usage(store: SqlStore, scope: str):
    """Reset usage counters for every user (run from a scheduler)."""
    count = QuotaLedger(store).reset_all(scope)
    click.echo(f"Reset {scope} usage for {count} users")


@cli.command("set-plan")
@click.option("--email", required=True, help="Account email address")
@click.option("--plan", required=True, type=click.Choice([p.value for p in Plan]))
@click.pass_obj
def set_plan(store: SqlStore, email: str, plan: str):
    """Assign a plan (and its limits) to a user."""
    user = store.get_user_by_email(email.lower())
    if user is None:
        raise click.ClickException(f"No user with email {email}")
    try:
        BillingService(store).change_plan(user.id, plan)
    except UnknownPlan as exc:
        raise click.ClickException(str(exc))
    click.echo(f"{email} is now on the {plan} plan")


@cli.command("create-user")
@click.option("--email", required=True, help="Account email address")
@click.option("--password", required=True, help="Account password")
@click.option("--plan", default=Plan.FREE.value, type=click.Choice([p.value for p in Plan]), show_default=True)
@click.option("--admin", is_flag=True, help="Allow operator endpoints such as usage resets")
@click.pass_obj
def create_user(store: SqlStore, email: str, password: str, plan: str, admin: bool):
    """Create an account and print its first API key."""
    if store.get_user_by_email(email.lower()):
        raise click.ClickException(f"User with email {email} already exists")

    user = new_user(email, password, Plan(plan), is_admin=admin)
    api_key, secret = new_api_key(user.id)
    store.create_user(user, api_key)
    click.echo(f"User created: {user.email} ({user.id})")
    click.echo(f"API key: {secret}")


if __name__ == "__main__":
    cli()
