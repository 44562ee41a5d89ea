from typing import Any, List, Optional

from fastapi import APIRouter, Depends, File, Path, UploadFile
from pydantic import BaseModel

from ..core.auth import get_app_settings, require_admin
from ..core.config import Settings
from ..core.database import Database, get_db
from ..core.errors import AppError, ValidationFailed
from ..core.storage import ALLOWED_IMAGE_TYPES, CloudinaryImageStorage, get_storage
from ..repositories import lessons, questions
from ..utils.validation import MAX_ID
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


class LessonPayload(BaseModel):
    title: Optional[str] = None
    unit_id: Any = None
    content: Optional[str] = None
    # None keeps the stored media, a list (even empty) replaces it
    videos: Optional[List[dict]] = None
    images: Optional[List[dict]] = None


class QuestionPayload(BaseModel):
    question_text: Optional[str] = None
    option_a: Optional[str] = None
    option_b: Optional[str] = None
    option_c: Optional[str] = None
    option_d: Optional[str] = None
    correct_answer: Optional[str] = None


class AnswerRequest(BaseModel):
    answer: Any = None


class UploadResponse(BaseModel):
    imagePath: str


# Lessons

@router.get("")
async def get_all_lessons(db: Database = Depends(get_db), admin: dict = Depends(require_admin)):
    return await lessons.list_all_lessons(db)


@router.get("/unit/{unit_id}")
async def get_lessons_for_unit(unit_id: int = Path(gt=0, le=MAX_ID), db: Database = Depends(get_db)):
    return await lessons.list_lessons_for_unit(db, unit_id)


@router.post("/upload-image", response_model=UploadResponse)
async def upload_image(image: Optional[UploadFile] = File(None),
                       storage: CloudinaryImageStorage = Depends(get_storage),
                       settings: Settings = Depends(get_app_settings),
                       admin: dict = Depends(require_admin)):
    """
    Upload a lesson image and return its public URL
    """
    if image is None or not image.filename:
        raise ValidationFailed("لم يتم توفير ملف صورة", "NO_FILE")

    if image.content_type not in ALLOWED_IMAGE_TYPES:
        logger.warning(f"Rejected upload {image.filename} with type {image.content_type}")
        raise ValidationFailed("يُسمح فقط بملفات الصور", "INVALID_FILE_TYPE")

    # One byte past the limit is enough to know it is too large
    data = await image.read(settings.max_upload_bytes + 1)
    if not data:
        raise ValidationFailed("لم يتم توفير ملف صورة", "NO_FILE")
    if len(data) > settings.max_upload_bytes:
        raise ValidationFailed("حجم الصورة كبير جداً", "FILE_TOO_LARGE")

    image_path = await storage.upload(data, image.filename)
    return UploadResponse(imagePath=image_path)


@router.get("/{lesson_id}")
async def get_lesson(lesson_id: int = Path(gt=0, le=MAX_ID), db: Database = Depends(get_db)):
    return await lessons.get_lesson(db, lesson_id)


@router.post("", status_code=201)
async def create_lesson(payload: LessonPayload, db: Database = Depends(get_db),
                        admin: dict = Depends(require_admin)):
    try:
        return await lessons.create_lesson(
            db, payload.title, payload.unit_id, payload.content, payload.videos, payload.images
        )
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error creating lesson: {e}")
        raise


@router.put("/{lesson_id}")
async def update_lesson(payload: LessonPayload, lesson_id: int = Path(gt=0, le=MAX_ID), db: Database = Depends(get_db),
                        admin: dict = Depends(require_admin)):
    try:
        return await lessons.update_lesson(
            db, lesson_id, payload.title, payload.unit_id, payload.content, payload.videos, payload.images
        )
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error updating lesson {lesson_id}: {e}")
        raise


@router.delete("/{lesson_id}")
async def delete_lesson(lesson_id: int = Path(gt=0, le=MAX_ID), db: Database = Depends(get_db),
                        admin: dict = Depends(require_admin)):
    await lessons.delete_lesson(db, lesson_id)
    return {"success": True, "message": "Lesson deleted"}


# Questions

@router.get("/{lesson_id}/questions")
async def get_questions(lesson_id: int = Path(gt=0, le=MAX_ID), db: Database = Depends(get_db)):
    """Quiz questions for students, without the correct answer"""
    return await questions.list_public(db, lesson_id)


@router.get("/{lesson_id}/questions/admin")
async def get_questions_admin(lesson_id: int = Path(gt=0, le=MAX_ID), db: Database = Depends(get_db),
                              admin: dict = Depends(require_admin)):
    return await questions.list_admin(db, lesson_id)


@router.post("/{lesson_id}/questions", status_code=201)
async def create_question(payload: QuestionPayload, lesson_id: int = Path(gt=0, le=MAX_ID),
                          db: Database = Depends(get_db), admin: dict = Depends(require_admin)):
    return await questions.create_question(db, lesson_id, payload.model_dump())


@router.put("/{lesson_id}/questions/{question_id}")
async def update_question(payload: QuestionPayload, lesson_id: int = Path(gt=0, le=MAX_ID), question_id: int = Path(gt=0, le=MAX_ID),
                          db: Database = Depends(get_db), admin: dict = Depends(require_admin)):
    return await questions.update_question(db, lesson_id, question_id, payload.model_dump())


@router.delete("/{lesson_id}/questions/{question_id}")
async def delete_question(lesson_id: int = Path(gt=0, le=MAX_ID), question_id: int = Path(gt=0, le=MAX_ID),
                          db: Database = Depends(get_db), admin: dict = Depends(require_admin)):
    await questions.delete_question(db, lesson_id, question_id)
    return {"success": True, "message": "تم حذف السؤال"}


@router.post("/{lesson_id}/questions/{question_id}/check")
async def check_answer(payload: AnswerRequest, lesson_id: int = Path(gt=0, le=MAX_ID), question_id: int = Path(gt=0, le=MAX_ID),
                       db: Database = Depends(get_db)):
    return await questions.check_answer(db, lesson_id, question_id, payload.answer)
