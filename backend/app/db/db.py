import os

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

# Catalog database; SQLite file next to the backend directory by default
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///../points.db")

# SQLite connections are shared across FastAPI's worker threads
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=_connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Declarative base for the programs, conversions and catalog_info tables
Base = declarative_base()


def init_db(bind=None) -> None:
    """Create any missing catalog tables."""
    # Importing the models registers them on Base.metadata
    from app import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
