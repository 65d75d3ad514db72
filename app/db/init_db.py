from app.db.session import engine
from app.db.base import Base
from app.db.models.session_blob import SessionBlob


def init_db():
    """Create tables for all registered models."""
    Base.metadata.create_all(bind=engine)
