"""
Database initialization script.

Run this script to create all required tables in the database.
"""
from geomap_database.db import engine
from geomap_database.models import Base

# PUBLIC_INTERFACE
def init_db(bind=None):
    """Initializes the database by creating all tables if they do not exist."""
    Base.metadata.create_all(bind=bind if bind is not None else engine)

if __name__ == "__main__":
    init_db()
    print("Database tables created successfully.")
