"""
Engine and session factory for the database named by ``DATABASE_URL``.

The URL comes from ``geomap_backend.config.settings``, which refuses to load
without it.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from geomap_backend.config import settings

# SQLite connections are handed across FastAPI's worker threads
connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, future=True, echo=False, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# PUBLIC_INTERFACE
def get_db():
    """FastAPI dependency yielding one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
