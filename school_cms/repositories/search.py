import asyncio

from .classes import CLASS_ORDER
import logging

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
RESULT_LIMIT = 20


def empty_results() -> dict:
    return {"classes": [], "units": [], "lessons": []}


async def search(db, query) -> dict:
    """Case-insensitive substring search over classes, units and lessons."""
    raw_query = (query or "").strip()
    if len(raw_query) < MIN_QUERY_LENGTH:
        return empty_results()

    like_query = f"%{raw_query.lower()}%"

    classes, units, lessons = await asyncio.gather(
        db.all(
            f"""
            SELECT id, name, created_at
            FROM classes
            WHERE LOWER(name) LIKE ?
            {CLASS_ORDER}
            LIMIT {RESULT_LIMIT}
            """,
            [like_query]
        ),
        db.all(
            f"""
            SELECT u.id, u.title, u.class_id, u.term, u.category, u.created_at, c.name AS class_name
            FROM units u
            JOIN classes c ON u.class_id = c.id
            WHERE LOWER(u.title) LIKE ? OR LOWER(c.name) LIKE ?
            ORDER BY u.created_at DESC, u.id DESC
            LIMIT {RESULT_LIMIT}
            """,
            [like_query, like_query]
        ),
        db.all(
            f"""
            SELECT l.id, l.title, l.unit_id, l.created_at,
                   u.title AS unit_title, u.term, u.category AS unit_category,
                   u.class_id, c.name AS class_name
            FROM lessons l
            JOIN units u ON l.unit_id = u.id
            JOIN classes c ON u.class_id = c.id
            WHERE LOWER(l.title) LIKE ? OR LOWER(u.title) LIKE ? OR LOWER(c.name) LIKE ?
            ORDER BY l.created_at DESC, l.id DESC
            LIMIT {RESULT_LIMIT}
            """,
            [like_query, like_query, like_query]
        ),
    )

    logger.debug(f"Search '{raw_query}': {len(classes)} classes, {len(units)} units, {len(lessons)} lessons")
    return {"classes": classes, "units": units, "lessons": lessons}
