from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..core.auth import require_admin
from ..core.database import Database, get_db
from ..repositories import identity
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


class IdentityPayload(BaseModel):
    schoolName: Optional[str] = None
    platformLabel: Optional[str] = None
    adminName: Optional[str] = None
    adminRole: Optional[str] = None


@router.get("/identity")
async def get_identity(db: Database = Depends(get_db)):
    return await identity.get_identity(db)


@router.put("/identity")
async def update_identity(payload: IdentityPayload, db: Database = Depends(get_db),
                          admin: dict = Depends(require_admin)):
    logger.info(f"Identity settings update by {admin['username']}")
    return await identity.update_identity(db, payload.model_dump())
