from sqlalchemy import Column, DateTime, Integer, String

from app.db.db import Base


class CatalogInfo(Base):
    """Single-row table holding document-level metadata (lastUpdated, dataSource)."""
    __tablename__ = "catalog_info"

    id = Column(Integer, primary_key=True, default=1)
    data_source = Column(String(255), nullable=False, default="")
    last_updated = Column(DateTime, nullable=True)
