"""
Database models module.

Models are imported here so they are registered with Base.metadata before
table creation.
"""
from app.db.models.session_blob import SessionBlob

__all__ = [
    "SessionBlob",
]
