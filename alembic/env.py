# alembic/env.py

import os
import sys
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context
from dotenv import load_dotenv

load_dotenv()

# Run from the project root so "training_service" is importable
sys.path.insert(0, os.getcwd())

config = context.config

# DATABASE_URL wins over whatever alembic.ini says
real_url = os.getenv("DATABASE_URL")
if real_url is None:
    raise RuntimeError("DATABASE_URL is not set in your environment.")
if real_url.startswith("postgres://"):
    real_url = real_url.replace("postgres://", "postgresql://", 1)
config.set_main_option("sqlalchemy.url", real_url)

if config.config_file_name:
    fileConfig(config.config_file_name)

# Importing the models registers the tests/test_results tables on Base.metadata
from training_service.core.database import Base
import training_service.db.models  # noqa: F401
target_metadata = Base.metadata

# SQLite cannot ALTER constraints in place
RENDER_AS_BATCH = real_url.startswith("sqlite")


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of touching a database."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=RENDER_AS_BATCH,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=RENDER_AS_BATCH,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
