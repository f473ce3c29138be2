from .data_service import init_catalog_data

__all__ = [
    "init_catalog_data",
]
