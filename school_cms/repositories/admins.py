from ..core.auth import get_password_hash
import logging

logger = logging.getLogger(__name__)


async def get_by_username(db, username: str):
    return await db.get("SELECT * FROM admins WHERE username = ?", [username])


async def ensure_default_admin(db, username: str, password: str) -> bool:
    """Create the first admin when none exists; returns True when one was created."""
    existing_admin = await db.get("SELECT id FROM admins LIMIT 1")
    if existing_admin:
        logger.info("Admin account already exists")
        return False

    await db.run(
        "INSERT INTO admins (username, password_hash) VALUES (?, ?)",
        [username, get_password_hash(password)]
    )
    logger.info(f"Default admin account created: {username}")
    logger.warning("Set ADMIN_PASSWORD in production and change the default password")
    return True
