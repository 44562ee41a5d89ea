from ..core.errors import ValidationFailed
import logging

logger = logging.getLogger(__name__)

MAX_FIELD_LENGTH = 150

DEFAULT_IDENTITY = {
    "schoolName": "مدرسة أبو فراس الحمداني للتعليم الأساسي",
    "platformLabel": "المنصة التعليمية",
    "adminName": "إدارة المدرسة",
    "adminRole": "مسؤول النظام التعليمي",
}

# API field -> column
FIELD_COLUMNS = {
    "schoolName": "school_name",
    "platformLabel": "platform_label",
    "adminName": "admin_name",
    "adminRole": "admin_role",
}


def _to_api(row: dict) -> dict:
    return {field: row[column] for field, column in FIELD_COLUMNS.items()}


async def get_identity(db) -> dict:
    row = await db.get(
        "SELECT school_name, platform_label, admin_name, admin_role FROM identity_settings ORDER BY id ASC LIMIT 1"
    )
    return _to_api(row) if row else dict(DEFAULT_IDENTITY)


async def update_identity(db, data: dict) -> dict:
    identity = {
        field: data.get(field).strip() if isinstance(data.get(field), str) else ""
        for field in FIELD_COLUMNS
    }

    if not all(identity.values()):
        raise ValidationFailed(
            "جميع الحقول مطلوبة: اسم المدرسة، اسم المنصة، جهة الإدارة، وصف جهة الإدارة",
            "FIELDS_REQUIRED"
        )
    if any(len(value) > MAX_FIELD_LENGTH for value in identity.values()):
        raise ValidationFailed(f"يجب ألا يتجاوز كل حقل {MAX_FIELD_LENGTH} حرفًا", "FIELD_TOO_LONG")

    values = [identity[field] for field in FIELD_COLUMNS]

    async with db.transaction() as tx:
        existing = await tx.get("SELECT id FROM identity_settings ORDER BY id ASC LIMIT 1")
        if existing:
            await tx.run(
                "UPDATE identity_settings SET school_name = ?, platform_label = ?, admin_name = ?, "
                "admin_role = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                [*values, existing["id"]]
            )
        else:
            await tx.run(
                "INSERT INTO identity_settings (school_name, platform_label, admin_name, admin_role) "
                "VALUES (?, ?, ?, ?)",
                values
            )

    logger.info("Identity settings updated")
    return identity


async def ensure_identity(db) -> None:
    existing = await db.get("SELECT id FROM identity_settings LIMIT 1")
    if existing:
        logger.info("Identity settings already exist")
        return

    await db.run(
        "INSERT INTO identity_settings (school_name, platform_label, admin_name, admin_role) VALUES (?, ?, ?, ?)",
        [DEFAULT_IDENTITY[field] for field in FIELD_COLUMNS]
    )
    logger.info("Default identity settings created")
