from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from ..core.database import Base


class IdentitySettings(Base):
    """Singleton row; the first row wins."""

    __tablename__ = "identity_settings"

    id = Column(Integer, primary_key=True)
    school_name = Column(String, nullable=False)
    platform_label = Column(String, nullable=False)
    admin_name = Column(String, nullable=False)
    admin_role = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
