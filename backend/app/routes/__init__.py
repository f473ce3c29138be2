from .catalog import router as catalog_router
from .routing import router as routing_router

__all__ = [
    "catalog_router",
    "routing_router",
]
