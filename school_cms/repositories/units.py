from sqlalchemy.exc import IntegrityError

from ..core.errors import Conflict, NotFound, ValidationFailed
from ..models.unit import CATEGORY_ENRICHMENT, CATEGORY_PRIMARY, TERMS
from ..utils.validation import parse_positive_int, require_arabic_text
from . import ordering
import logging

logger = logging.getLogger(__name__)

# Oldest first among equal ranks
UNIT_ORDER = "ORDER BY display_order ASC, created_at ASC, id ASC"

TERM_NAMES = {"1": "الفصل الدراسي الأول", "2": "الفصل الدراسي الثاني"}


def _normalize_category(category) -> str:
    return CATEGORY_ENRICHMENT if category == CATEGORY_ENRICHMENT else CATEGORY_PRIMARY


def _normalize_term(term) -> str:
    if term is None or term == "":
        return "1"
    term = str(term).strip()
    if term not in TERMS:
        raise ValidationFailed("الفصل الدراسي يجب أن يكون 1 أو 2", "INVALID_TERM")
    return term


async def _validate(db, title, class_id):
    """Shared create/update checks; returns (title, class_id)."""
    class_id = parse_positive_int(class_id)
    if class_id is None:
        raise ValidationFailed("الصف الدراسي مطلوب", "CLASS_ID_REQUIRED")

    title = require_arabic_text(
        title,
        "عنوان الوحدة مطلوب",
        "TITLE_REQUIRED",
        "عنوان الوحدة يجب أن يحتوي على أحرف عربية فقط",
    )

    class_exists = await db.get("SELECT id FROM classes WHERE id = ?", [class_id])
    if not class_exists:
        raise NotFound("الصف الدراسي غير موجود", "CLASS_NOT_FOUND")

    return title, class_id


def _duplicate_title(term: str) -> Conflict:
    return Conflict(f"هذا العنوان موجود بالفعل في {TERM_NAMES[term]} لهذا الصف.", "DUPLICATE_UNIT_TITLE")


async def list_units_for_class(db, class_id: int):
    return await db.all(f"SELECT * FROM units WHERE class_id = ? {UNIT_ORDER}", [class_id])


async def list_unit_refs(db):
    return await db.all(f"SELECT id, class_id FROM units {UNIT_ORDER}")


async def list_all_units(db):
    return await db.all("""
        SELECT u.*, c.name AS class_name
        FROM units u
        JOIN classes c ON u.class_id = c.id
        ORDER BY c.display_order ASC, u.display_order ASC, u.created_at ASC, u.id ASC
    """)


async def get_unit(db, unit_id: int):
    unit = await db.get("SELECT * FROM units WHERE id = ?", [unit_id])
    if not unit:
        raise NotFound("Unit not found", "UNIT_NOT_FOUND")
    return unit


async def create_unit(db, title, class_id, category=None, term=None):
    title, class_id = await _validate(db, title, class_id)
    term = _normalize_term(term)

    try:
        result = await db.run(
            "INSERT INTO units (title, class_id, category, term) VALUES (?, ?, ?, ?)",
            [title, class_id, _normalize_category(category), term]
        )
    except IntegrityError as e:
        if db.is_unique_violation(e):
            raise _duplicate_title(term)
        raise

    logger.info(f"Created unit {result.id} in class {class_id}")
    return await db.get("SELECT * FROM units WHERE id = ?", [result.id])


async def update_unit(db, unit_id: int, title, class_id, category=None, term=None):
    title, class_id = await _validate(db, title, class_id)
    term = _normalize_term(term)

    try:
        result = await db.run(
            "UPDATE units SET title = ?, class_id = ?, category = ?, term = ? WHERE id = ?",
            [title, class_id, _normalize_category(category), term, unit_id]
        )
    except IntegrityError as e:
        if db.is_unique_violation(e):
            raise _duplicate_title(term)
        raise

    if result.changes == 0:
        raise NotFound("الوحدة غير موجودة", "UNIT_NOT_FOUND")

    return await db.get("SELECT * FROM units WHERE id = ?", [unit_id])


async def delete_unit(db, unit_id: int) -> None:
    result = await db.run("DELETE FROM units WHERE id = ?", [unit_id])
    if result.changes == 0:
        raise NotFound("Unit not found", "UNIT_NOT_FOUND")
    logger.info(f"Deleted unit {unit_id}")


async def reorder_units(db, order):
    return await ordering.reorder(db, "units", order, parent_column="class_id")
