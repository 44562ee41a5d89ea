"""
Drag-and-drop ranking of sibling rows.

A reorder call receives the complete sibling list in its new order and
rewrites ``display_order`` to the dense, zero-based position of every id
inside one transaction.
"""
from typing import Any, List, Optional

from ..core.database import Transaction
from ..core.errors import ValidationFailed
from ..utils.validation import parse_positive_int
import logging

logger = logging.getLogger(__name__)

INVALID_ORDER_MESSAGE = "Invalid order data"

# Only these tables carry a sibling rank
ORDERED_TABLES = ("classes", "units")


def parse_order(order: Any) -> List[int]:
    """Validate the submitted ordering: a non-empty list of distinct positive ids."""
    if not isinstance(order, list) or not order:
        raise ValidationFailed(INVALID_ORDER_MESSAGE, "INVALID_ORDER")

    ids = []
    for value in order:
        row_id = parse_positive_int(value)
        if row_id is None:
            raise ValidationFailed(INVALID_ORDER_MESSAGE, "INVALID_ORDER")
        ids.append(row_id)

    if len(set(ids)) != len(ids):
        raise ValidationFailed(INVALID_ORDER_MESSAGE, "INVALID_ORDER")
    return ids


async def sibling_ids(tx: Transaction, table: str, ids: List[int], parent_column: Optional[str]) -> set:
    """
    Ids of every row sharing the scope of ``ids``.

    With a parent column, all listed rows must exist and share one parent.
    """
    if parent_column is None:
        rows = await tx.all(f"SELECT id FROM {table}")
        return {row["id"] for row in rows}

    placeholders = ", ".join("?" for _ in ids)
    rows = await tx.all(f"SELECT id, {parent_column} FROM {table} WHERE id IN ({placeholders})", ids)
    parents = {row[parent_column] for row in rows}
    if len(rows) != len(ids) or len(parents) != 1:
        raise ValidationFailed(INVALID_ORDER_MESSAGE, "INVALID_ORDER")

    rows = await tx.all(f"SELECT id FROM {table} WHERE {parent_column} = ?", [parents.pop()])
    return {row["id"] for row in rows}


async def reorder(db, table: str, order: Any, parent_column: Optional[str] = None) -> List[int]:
    if table not in ORDERED_TABLES:
        raise ValueError(f"{table} has no display order")

    ids = parse_order(order)

    async with db.transaction() as tx:
        if await sibling_ids(tx, table, ids, parent_column) != set(ids):
            raise ValidationFailed(INVALID_ORDER_MESSAGE, "INVALID_ORDER")

        for position, row_id in enumerate(ids):
            await tx.run(f"UPDATE {table} SET display_order = ? WHERE id = ?", [position, row_id])

    logger.info(f"Reordered {len(ids)} rows in {table}")
    return ids
