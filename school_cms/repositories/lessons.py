import asyncio
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from ..core.errors import Conflict, NotFound, ValidationFailed
from ..models.media import POSITIONS
from ..utils.validation import parse_positive_int, require_arabic_text
import logging

logger = logging.getLogger(__name__)

VIDEO_COLUMNS = "id, lesson_id, video_url, position, size, explanation"
IMAGE_COLUMNS = "id, lesson_id, image_path, position, size, caption"

DUPLICATE_TITLE_MESSAGE = "هذا العنوان موجود بالفعل في هذه الوحدة. يرجى اختيار عنوان آخر"


def _position(value, default: str = "bottom") -> str:
    return value if value in POSITIONS else default


async def _validate(db, title, unit_id):
    """Shared create/update checks; returns (title, unit_id)."""
    if not isinstance(title, str) or not title.strip():
        raise ValidationFailed("عنوان الدرس مطلوب", "TITLE_REQUIRED")

    unit_id = parse_positive_int(unit_id)
    if unit_id is None:
        raise ValidationFailed("الوحدة الدراسية مطلوبة", "UNIT_ID_REQUIRED")

    title = require_arabic_text(
        title,
        "عنوان الدرس مطلوب",
        "TITLE_REQUIRED",
        "عنوان الدرس يجب أن يحتوي على أحرف عربية فقط",
    )

    unit_exists = await db.get("SELECT id FROM units WHERE id = ?", [unit_id])
    if not unit_exists:
        raise NotFound("الوحدة الدراسية غير موجودة", "UNIT_NOT_FOUND")

    return title, unit_id


async def _lesson_media(db, lesson_id: int):
    return await asyncio.gather(
        db.all(f"SELECT {VIDEO_COLUMNS} FROM videos WHERE lesson_id = ? ORDER BY display_order ASC", [lesson_id]),
        db.all(f"SELECT {IMAGE_COLUMNS} FROM images WHERE lesson_id = ? ORDER BY display_order ASC", [lesson_id]),
    )


async def _load_lesson(db, lesson_id: int) -> Optional[dict]:
    lesson = await db.get("SELECT * FROM lessons WHERE id = ?", [lesson_id])
    if not lesson:
        return None
    videos, images = await _lesson_media(db, lesson_id)
    return {**lesson, "videos": videos, "images": images}


async def replace_videos(tx, lesson_id: int, videos: List[dict]) -> None:
    """Full replace: drop every video of the lesson, then insert the submitted set."""
    await tx.run("DELETE FROM videos WHERE lesson_id = ?", [lesson_id])

    # Entries without a URL are skipped but keep their array position
    for index, video in enumerate(videos):
        if not video.get("video_url"):
            continue
        await tx.run(
            "INSERT INTO videos (lesson_id, video_url, position, size, explanation, display_order) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            [
                lesson_id,
                video["video_url"],
                _position(video.get("video_position")),
                video.get("video_size") or "large",
                video.get("video_explanation") or None,
                index,
            ]
        )


async def replace_images(tx, lesson_id: int, images: List[dict]) -> None:
    """Full replace: drop every image of the lesson, then insert the submitted set."""
    await tx.run("DELETE FROM images WHERE lesson_id = ?", [lesson_id])

    for index, image in enumerate(images):
        if not image.get("image_path"):
            continue
        await tx.run(
            "INSERT INTO images (lesson_id, image_path, position, size, caption, display_order) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            [
                lesson_id,
                image["image_path"],
                _position(image.get("image_position")),
                image.get("image_size") or "medium",
                image.get("image_caption") or None,
                index,
            ]
        )


async def list_lessons_for_unit(db, unit_id: int):
    return await db.all(
        "SELECT id, unit_id, title, created_at FROM lessons WHERE unit_id = ? ORDER BY created_at ASC, id ASC",
        [unit_id]
    )


async def list_all_lessons(db):
    return await db.all("""
        SELECT l.*, u.title AS unit_title, u.term, u.class_id, c.name AS class_name
        FROM lessons l
        JOIN units u ON l.unit_id = u.id
        JOIN classes c ON u.class_id = c.id
        ORDER BY c.display_order ASC, u.display_order ASC, l.created_at DESC, l.id DESC
    """)


async def get_lesson(db, lesson_id: int):
    lesson = await _load_lesson(db, lesson_id)
    if not lesson:
        raise NotFound("الدرس غير موجود", "LESSON_NOT_FOUND")
    return lesson


async def create_lesson(db, title, unit_id, content=None, videos=None, images=None):
    title, unit_id = await _validate(db, title, unit_id)

    try:
        async with db.transaction() as tx:
            result = await tx.run(
                "INSERT INTO lessons (title, unit_id, content) VALUES (?, ?, ?)",
                [title, unit_id, content or ""]
            )
            if videos:
                await replace_videos(tx, result.id, videos)
            if images:
                await replace_images(tx, result.id, images)
    except IntegrityError as e:
        if db.is_unique_violation(e):
            raise Conflict(DUPLICATE_TITLE_MESSAGE, "DUPLICATE_LESSON_TITLE")
        raise

    logger.info(f"Created lesson {result.id} in unit {unit_id}")
    return await _load_lesson(db, result.id)


async def update_lesson(db, lesson_id: int, title, unit_id, content=None, videos=None, images=None):
    """
    Update a lesson and, for each media list that is provided, replace the
    whole collection. ``None`` leaves that collection untouched; an empty
    list removes it. Everything happens in one transaction.
    """
    title, unit_id = await _validate(db, title, unit_id)

    try:
        async with db.transaction() as tx:
            result = await tx.run(
                "UPDATE lessons SET title = ?, unit_id = ?, content = ? WHERE id = ?",
                [title, unit_id, content or "", lesson_id]
            )
            if result.changes == 0:
                raise NotFound("الدرس غير موجود", "LESSON_NOT_FOUND")

            if videos is not None:
                await replace_videos(tx, lesson_id, videos)
            if images is not None:
                await replace_images(tx, lesson_id, images)
    except IntegrityError as e:
        if db.is_unique_violation(e):
            raise Conflict(DUPLICATE_TITLE_MESSAGE, "DUPLICATE_LESSON_TITLE")
        raise

    logger.info(f"Updated lesson {lesson_id}")
    return await _load_lesson(db, lesson_id)


async def delete_lesson(db, lesson_id: int) -> None:
    result = await db.run("DELETE FROM lessons WHERE id = ?", [lesson_id])
    if result.changes == 0:
        raise NotFound("Lesson not found", "LESSON_NOT_FOUND")
    logger.info(f"Deleted lesson {lesson_id}")
