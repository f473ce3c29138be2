from fastapi import Depends
from sqlalchemy.orm import Session

from app.dependencies.db import get_db
from app.services.catalog_service import CatalogService
from app.services.routing_service import RoutingService
from points_engine.source import CatalogStore

_catalog_store = CatalogStore()


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


def get_catalog_store() -> CatalogStore:
    """Process-wide routing snapshot, reloaded after every catalog write."""
    return _catalog_store


def get_routing_service(
    catalog_service: CatalogService = Depends(get_catalog_service),
    store: CatalogStore = Depends(get_catalog_store),
) -> RoutingService:
    catalog = store.catalog
    if catalog is None:
        catalog = store.reload(catalog_service.get_catalog)
    return RoutingService(catalog)
