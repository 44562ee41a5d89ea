from ..core.errors import NotFound, ValidationFailed
from ..models.question import ANSWERS
import logging

logger = logging.getLogger(__name__)

# correct_answer stays server-side for students
PUBLIC_COLUMNS = "id, lesson_id, question_text, option_a, option_b, option_c, option_d, display_order"

QUESTION_FIELDS = ("question_text", "option_a", "option_b", "option_c", "option_d", "correct_answer")


def _validate(data: dict) -> list:
    """Return the field values in column order, answer upper-cased."""
    values = [data.get(field) for field in QUESTION_FIELDS]
    if not all(isinstance(value, str) and value.strip() for value in values):
        raise ValidationFailed("جميع الحقول مطلوبة", "FIELDS_REQUIRED")

    answer = values[-1].strip().upper()
    if answer not in ANSWERS:
        raise ValidationFailed("الإجابة الصحيحة يجب أن تكون A أو B أو C أو D", "INVALID_ANSWER")
    values[-1] = answer
    return values


async def _require_lesson(db, lesson_id: int) -> None:
    lesson = await db.get("SELECT id FROM lessons WHERE id = ?", [lesson_id])
    if not lesson:
        raise NotFound("الدرس غير موجود", "LESSON_NOT_FOUND")


async def list_public(db, lesson_id: int):
    return await db.all(
        f"SELECT {PUBLIC_COLUMNS} FROM questions WHERE lesson_id = ? ORDER BY display_order ASC, id ASC",
        [lesson_id]
    )


async def list_admin(db, lesson_id: int):
    return await db.all(
        "SELECT * FROM questions WHERE lesson_id = ? ORDER BY display_order ASC, id ASC",
        [lesson_id]
    )


async def create_question(db, lesson_id: int, data: dict):
    values = _validate(data)
    await _require_lesson(db, lesson_id)

    # Append after the current last question
    async with db.transaction() as tx:
        last = await tx.get(
            "SELECT COALESCE(MAX(display_order), 0) AS max_order FROM questions WHERE lesson_id = ?",
            [lesson_id]
        )
        display_order = (last["max_order"] if last else 0) + 1

        result = await tx.run(
            "INSERT INTO questions (lesson_id, question_text, option_a, option_b, option_c, option_d, "
            "correct_answer, display_order) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            [lesson_id, *values, display_order]
        )

    logger.info(f"Added question {result.id} to lesson {lesson_id}")
    return await db.get("SELECT * FROM questions WHERE id = ?", [result.id])


async def update_question(db, lesson_id: int, question_id: int, data: dict):
    values = _validate(data)

    result = await db.run(
        "UPDATE questions SET question_text = ?, option_a = ?, option_b = ?, option_c = ?, option_d = ?, "
        "correct_answer = ? WHERE id = ? AND lesson_id = ?",
        [*values, question_id, lesson_id]
    )
    if result.changes == 0:
        raise NotFound("السؤال غير موجود", "QUESTION_NOT_FOUND")

    return await db.get("SELECT * FROM questions WHERE id = ?", [question_id])


async def delete_question(db, lesson_id: int, question_id: int) -> None:
    result = await db.run("DELETE FROM questions WHERE id = ? AND lesson_id = ?", [question_id, lesson_id])
    if result.changes == 0:
        raise NotFound("السؤال غير موجود", "QUESTION_NOT_FOUND")


async def check_answer(db, lesson_id: int, question_id: int, answer):
    if answer is None or not str(answer).strip():
        raise ValidationFailed("الإجابة مطلوبة", "ANSWER_REQUIRED")

    question = await db.get(
        "SELECT correct_answer FROM questions WHERE id = ? AND lesson_id = ?",
        [question_id, lesson_id]
    )
    if not question:
        raise NotFound("السؤال غير موجود", "QUESTION_NOT_FOUND")

    correct_answer = question["correct_answer"].upper()
    return {
        "correct": str(answer).strip().upper() == correct_answer,
        "correctAnswer": correct_answer,
    }
