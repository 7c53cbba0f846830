from logging.config import fileConfig

from sqlalchemy import create_engine, pool

from alembic import context

from lontario.core.config import settings
from lontario.core.base import Base

# Imported for their side effect of registering tables on Base.metadata.
from lontario.models.job import Job  # noqa: F401
from lontario.models.candidate import Candidate  # noqa: F401
from lontario.models.candidate_activity import CandidateActivity  # noqa: F401
from lontario.models.ai_interview import AIInterview  # noqa: F401
from lontario.models.pregenerated_questions import PregeneratedQuestions  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Migrations run with the DDL-capable migrator role when one is configured.
if settings.DB_MIGRATOR_USER and settings.DB_MIGRATOR_PASSWORD:
    migrations_url = settings.migrations_database_url
else:
    migrations_url = settings.database_url

# ConfigParser treats "%" as interpolation markers.
config.set_main_option("sqlalchemy.url", migrations_url.replace("%", "%%"))

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL to stdout without connecting."""
    context.configure(
        url=migrations_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(migrations_url, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
