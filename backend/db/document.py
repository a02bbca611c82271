from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func

from .database import Base


class Document(Base):
    """One stored collection (inventory, customers or sales) as a JSON array."""
    __tablename__ = "documents"

    key = Column(String, primary_key=True)
    body = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
