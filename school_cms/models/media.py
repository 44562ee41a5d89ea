from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from ..core.database import Base

POSITIONS = ("top", "bottom", "side")


class Video(Base):
    __tablename__ = "videos"

    id = Column(Integer, primary_key=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)
    video_url = Column(Text, nullable=False)
    position = Column(String, default="bottom", server_default="bottom")
    size = Column(String, default="large", server_default="large")
    explanation = Column(Text)
    display_order = Column(Integer, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Image(Base):
    __tablename__ = "images"

    id = Column(Integer, primary_key=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)
    image_path = Column(Text, nullable=False)
    position = Column(String, default="bottom", server_default="bottom")
    size = Column(String, default="medium", server_default="medium")
    caption = Column(Text)
    display_order = Column(Integer, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
