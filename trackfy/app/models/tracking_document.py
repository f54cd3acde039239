"""
Tracking document database model.

The SQL store keeps the whole tracking document (records and generations)
as JSON in a single row, mirroring the file layout.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from trackfy.app.db.session import Base


class TrackingDocumentRow(Base):
    """
    One row per named document; the API uses the ``default`` document.
    """
    __tablename__ = "tracking_documents"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    payload = Column(JSON, nullable=False)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<TrackingDocumentRow(id={self.id}, name='{self.name}')>"
