from typing import Any, Optional

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel

from ..core.auth import require_admin
from ..core.database import Database, get_db
from ..core.errors import AppError
from ..repositories import classes
from ..utils.validation import MAX_ID
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


class ClassPayload(BaseModel):
    name: Optional[str] = None


class ReorderRequest(BaseModel):
    order: Any = None


@router.get("")
async def get_classes(db: Database = Depends(get_db)):
    return await classes.list_classes(db)


@router.get("/dashboard-data")
async def get_dashboard_data(db: Database = Depends(get_db)):
    """Classes and unit references for the student dashboard in one request"""
    return await classes.dashboard_data(db)


@router.get("/{class_id}")
async def get_class(class_id: int = Path(gt=0, le=MAX_ID), db: Database = Depends(get_db)):
    return await classes.get_class(db, class_id)


@router.post("", status_code=201)
async def create_class(payload: ClassPayload, db: Database = Depends(get_db), admin: dict = Depends(require_admin)):
    try:
        return await classes.create_class(db, payload.name)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error creating class: {e}")
        raise


@router.put("/{class_id}")
async def update_class(payload: ClassPayload, class_id: int = Path(gt=0, le=MAX_ID), db: Database = Depends(get_db),
                       admin: dict = Depends(require_admin)):
    try:
        return await classes.update_class(db, class_id, payload.name)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error updating class {class_id}: {e}")
        raise


@router.delete("/{class_id}")
async def delete_class(class_id: int = Path(gt=0, le=MAX_ID), db: Database = Depends(get_db),
                       admin: dict = Depends(require_admin)):
    await classes.delete_class(db, class_id)
    return {"success": True, "message": "Class deleted"}


@router.post("/reorder")
async def reorder_classes(payload: ReorderRequest, db: Database = Depends(get_db),
                          admin: dict = Depends(require_admin)):
    await classes.reorder_classes(db, payload.order)
    return {"success": True, "message": "Classes reordered successfully"}
