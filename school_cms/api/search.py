from fastapi import APIRouter, Depends, Query

from ..core.database import Database, get_db
from ..repositories import search as search_repository

router = APIRouter()


@router.get("")
async def search(q: str = Query(default=""), db: Database = Depends(get_db)):
    """Global search across classes, units and lessons for students"""
    return await search_repository.search(db, q)
