"""
Alembic migrations for the ctrl+v license service.

Migrations run over a synchronous driver. The URL comes from Settings:
DATABASE_URL_SYNC when set, otherwise DATABASE_URL with its async driver
removed. Autogenerate compares against the license tables registered on
app.models.Base.
"""

from logging.config import fileConfig

from alembic import context  # type: ignore[attr-defined]
from sqlalchemy import create_engine, pool

from app.core.config import get_settings
from app.models import Base

settings = get_settings()
migration_url = settings.sync_database_url

config = context.config
config.set_main_option("sqlalchemy.url", migration_url)

if config.config_file_name:
    fileConfig(config.config_file_name)

# subscription_accounts, magic_codes, app_sessions, account_subscriptions, paddle_webhook_events
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit the license schema as SQL without a database connection."""
    context.configure(
        url=migration_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations to the license database (Supabase Postgres in production)."""
    connectable = create_engine(migration_url, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
