from typing import Any, Optional

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel

from ..core.auth import require_admin
from ..core.database import Database, get_db
from ..core.errors import AppError
from ..repositories import units
from ..utils.validation import MAX_ID
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


class UnitPayload(BaseModel):
    title: Optional[str] = None
    class_id: Any = None
    category: Optional[str] = None
    term: Any = None


class ReorderRequest(BaseModel):
    order: Any = None


@router.get("")
async def get_all_units(db: Database = Depends(get_db), admin: dict = Depends(require_admin)):
    """All units with their class name, for the admin panel"""
    return await units.list_all_units(db)


@router.get("/class/{class_id}")
async def get_units_for_class(class_id: int = Path(gt=0, le=MAX_ID), db: Database = Depends(get_db)):
    return await units.list_units_for_class(db, class_id)


@router.get("/list/all")
async def get_unit_refs(db: Database = Depends(get_db)):
    return await units.list_unit_refs(db)


@router.get("/{unit_id}")
async def get_unit(unit_id: int = Path(gt=0, le=MAX_ID), db: Database = Depends(get_db)):
    return await units.get_unit(db, unit_id)


@router.post("", status_code=201)
async def create_unit(payload: UnitPayload, db: Database = Depends(get_db), admin: dict = Depends(require_admin)):
    try:
        return await units.create_unit(db, payload.title, payload.class_id, payload.category, payload.term)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error creating unit: {e}")
        raise


@router.put("/{unit_id}")
async def update_unit(payload: UnitPayload, unit_id: int = Path(gt=0, le=MAX_ID), db: Database = Depends(get_db),
                      admin: dict = Depends(require_admin)):
    try:
        return await units.update_unit(db, unit_id, payload.title, payload.class_id, payload.category, payload.term)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error updating unit {unit_id}: {e}")
        raise


@router.delete("/{unit_id}")
async def delete_unit(unit_id: int = Path(gt=0, le=MAX_ID), db: Database = Depends(get_db),
                      admin: dict = Depends(require_admin)):
    await units.delete_unit(db, unit_id)
    return {"success": True, "message": "Unit deleted"}


@router.post("/reorder")
async def reorder_units(payload: ReorderRequest, db: Database = Depends(get_db),
                        admin: dict = Depends(require_admin)):
    await units.reorder_units(db, payload.order)
    return {"success": True, "message": "Units reordered successfully"}
