from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from ..core.database import Base

CATEGORY_PRIMARY = "P"
CATEGORY_ENRICHMENT = "Z"
TERMS = ("1", "2")


class Unit(Base):
    __tablename__ = "units"

    id = Column(Integer, primary_key=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    category = Column(String, default=CATEGORY_PRIMARY, server_default=CATEGORY_PRIMARY)
    term = Column(String, default="1", server_default="1")
    display_order = Column(Integer, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        # Same title may repeat across terms or classes, never within one class and term
        Index("uq_units_class_title_term", "class_id", "title", "term", unique=True),
        Index("ix_units_class_created", "class_id", "created_at"),
    )
