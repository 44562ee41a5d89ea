"""
Schema bootstrap run at every startup.

Tables are created from the declarative models. Databases created by older
releases are upgraded in place: missing rank/category/term columns are added
and missing indexes are created one by one.
"""
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings
from .database import Base, Database
from ..repositories import admins, identity
import logging

logger = logging.getLogger(__name__)

# table -> [(column, DDL fragment)]
COLUMN_MIGRATIONS = {
    "classes": [
        ("display_order", "display_order INTEGER DEFAULT 0"),
    ],
    "units": [
        ("display_order", "display_order INTEGER DEFAULT 0"),
        ("category", "category TEXT DEFAULT 'P'"),
        ("term", "term TEXT DEFAULT '1'"),
    ],
}


async def migrate_columns(db: Database) -> list:
    added = []
    for table, columns in COLUMN_MIGRATIONS.items():
        existing = set(await db.column_names(table))
        for column, ddl in columns:
            if column in existing:
                continue
            await db.run(f"ALTER TABLE {table} ADD COLUMN {ddl}")
            logger.info(f"Added column {table}.{column}")
            added.append(f"{table}.{column}")
    return added


async def ensure_indexes(db: Database) -> list:
    """Create declared indexes missing from tables that predate them."""
    created = []
    for table in Base.metadata.sorted_tables:
        existing = set(await db.index_names(table.name))
        for index in table.indexes:
            if index.name in existing:
                continue
            try:
                await db.create_index(index)
            except SQLAlchemyError as e:
                # Legacy duplicate rows block a unique index; the rest of startup continues
                logger.warning(f"Could not create index {index.name} on {table.name}: {e}")
                continue
            logger.info(f"Created index {index.name} on {table.name}")
            created.append(index.name)
    return created


async def init_database(db: Database, settings: Settings) -> None:
    logger.info("Initializing database schema...")
    await db.create_tables()
    await migrate_columns(db)
    await ensure_indexes(db)
    await admins.ensure_default_admin(db, settings.admin_username, settings.admin_password)
    await identity.ensure_identity(db)
    logger.info("Database initialized successfully")
