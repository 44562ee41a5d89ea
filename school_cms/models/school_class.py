from sqlalchemy import Column, Integer, String, DateTime, Index
from sqlalchemy.sql import func
from ..core.database import Base


class SchoolClass(Base):
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    display_order = Column(Integer, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("uq_classes_name", "name", unique=True),
    )
