"""Alembic environment for the document store schema."""
from __future__ import annotations

import os
import sys
from logging.config import fileConfig

from alembic import context

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from core.config import get_settings
from core.db import Base, create_db_engine
from core import models  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

settings = get_settings()
target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    # SQLite cannot ALTER in place; batch mode copies the table instead
    context.configure(target_metadata=target_metadata, render_as_batch=settings.is_sqlite, **kwargs)


def run_migrations_offline() -> None:
    _configure(url=settings.database_url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    with create_db_engine(settings.database_url).connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
