import asyncio

from sqlalchemy.exc import IntegrityError

from ..core.errors import Conflict, NotFound
from ..utils.validation import require_arabic_text
from . import ordering
from .units import list_unit_refs
import logging

logger = logging.getLogger(__name__)

# Newest first among equal ranks
CLASS_ORDER = "ORDER BY display_order ASC, created_at DESC, id DESC"

NAME_REQUIRED_MESSAGE = "اسم الصف مطلوب"
INVALID_NAME_MESSAGE = "اسم الصف يجب أن يحتوي على أحرف عربية فقط"
DUPLICATE_NAME_MESSAGE = "هذا الاسم موجود بالفعل. يرجى اختيار اسم آخر"


def _validate_name(name) -> str:
    return require_arabic_text(name, NAME_REQUIRED_MESSAGE, "NAME_REQUIRED", INVALID_NAME_MESSAGE)


async def list_classes(db):
    return await db.all(f"SELECT * FROM classes {CLASS_ORDER}")


async def dashboard_data(db):
    """Classes plus the (id, class_id) pairs of every unit, in one call."""
    classes, units = await asyncio.gather(list_classes(db), list_unit_refs(db))
    return {"classes": classes, "units": units}


async def get_class(db, class_id: int):
    class_item = await db.get("SELECT * FROM classes WHERE id = ?", [class_id])
    if not class_item:
        raise NotFound("Class not found", "CLASS_NOT_FOUND")
    return class_item


async def create_class(db, name):
    name = _validate_name(name)

    try:
        result = await db.run("INSERT INTO classes (name) VALUES (?)", [name])
    except IntegrityError as e:
        if db.is_unique_violation(e):
            raise Conflict(DUPLICATE_NAME_MESSAGE, "DUPLICATE_CLASS_NAME")
        raise

    logger.info(f"Created class {result.id}")
    return await db.get("SELECT * FROM classes WHERE id = ?", [result.id])


async def update_class(db, class_id: int, name):
    name = _validate_name(name)

    try:
        result = await db.run("UPDATE classes SET name = ? WHERE id = ?", [name, class_id])
    except IntegrityError as e:
        if db.is_unique_violation(e):
            raise Conflict(DUPLICATE_NAME_MESSAGE, "DUPLICATE_CLASS_NAME")
        raise

    if result.changes == 0:
        raise NotFound("الصف غير موجود", "CLASS_NOT_FOUND")

    return await db.get("SELECT * FROM classes WHERE id = ?", [class_id])


async def delete_class(db, class_id: int) -> None:
    # Units, lessons, media and questions go with it through FK cascades
    result = await db.run("DELETE FROM classes WHERE id = ?", [class_id])
    if result.changes == 0:
        raise NotFound("Class not found", "CLASS_NOT_FOUND")
    logger.info(f"Deleted class {class_id}")


async def reorder_classes(db, order):
    return await ordering.reorder(db, "classes", order)
