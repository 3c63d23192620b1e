"""
Operator commands working directly against the database.
"""

import click
import datetime
from contextlib import contextmanager
from functools import wraps
from sqlalchemy import select

from academy_backend.database import build_engine, build_session_factory
from academy_backend.errors import AccessError
from academy_backend.model.auth import User
from academy_backend.model.base import Base
from academy_backend.permissions.claims import ClaimVerifier
from academy_backend.permissions.core import user_role_names
from academy_backend.permissions.rank_policy import apply_rank_policies
from academy_backend.permissions.role_setup import seed_roles
from academy_backend.settings import settings

database_option = click.option(
    "--database-url",
    "database_url",
    default=lambda: settings.DATABASE_URL,
    show_default="DATABASE_URL",
    help="SQLAlchemy database URL",
)


@contextmanager
def open_session(database_url: str):
    engine = build_engine(database_url)
    db = build_session_factory(engine)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


def handle_access_errors(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except AccessError as e:
            raise click.ClickException(f"[{type(e).__name__}] {e.detail}")

    return wrapper


@click.command()
@database_option
def init_db(database_url):
    """Create the access-control tables if they do not exist."""
    engine = build_engine(database_url)
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()
    click.echo(f"Created {len(Base.metadata.tables)} tables")


@click.command()
@database_option
@handle_access_errors
def seed(database_url):
    """Create the built-in roles, permissions and grants."""
    with open_session(database_url) as db:
        created = seed_roles(db)
    click.echo(f"Seeded roles, {created} new grants")


@click.command()
@database_option
@handle_access_errors
def apply_policies(database_url):
    """Grant every staff member the roles their rank's policy lists."""
    with open_session(database_url) as db:
        assigned = apply_rank_policies(db)
    click.echo(f"Assigned {click.style(str(assigned), fg='green')} roles")


@click.command()
@click.argument("username")
@database_option
@click.option("--secret", default=lambda: settings.JWT_SECRET, help="Signing secret, defaults to JWT_SECRET")
def issue_token(username, database_url, secret):
    """Print a bearer token for USERNAME carrying the roles held right now."""
    if not secret:
        raise click.ClickException("JWT_SECRET is not configured")

    with open_session(database_url) as db:
        user = db.scalars(select(User).where(User.username == username)).first()
        if user is None:
            raise click.ClickException(f"User {username} not found")
        user_id = user.id
        roles = user_role_names(user_id, db)

    verifier = ClaimVerifier(
        secret=secret,
        algorithm=settings.JWT_ALGORITHM,
        ttl=datetime.timedelta(hours=settings.TOKEN_TTL_HOURS),
    )
    click.echo(verifier.issue(user_id, roles))
