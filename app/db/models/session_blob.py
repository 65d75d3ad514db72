"""
Session blob model backing the keyed role-play session store.
"""
from sqlalchemy import Column, String, DateTime, Text, Index
from sqlalchemy.sql import func
from app.db.base import Base


class SessionBlob(Base):
    __tablename__ = "session_blobs"

    key = Column(String, primary_key=True)  # e.g. "interview:<session_id>:history"
    value_json = Column(Text, nullable=False)  # Serialized JSON payload
    expires_at = Column(DateTime, nullable=False)  # Naive UTC
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index('idx_session_blobs_expires', 'expires_at'),
    )
