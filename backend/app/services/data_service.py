import json
import logging
from pathlib import Path
from typing import Optional, Union

from app.db.db import SessionLocal
from app.services.catalog_service import CatalogService
from points_engine.source import SourceConfig

logger = logging.getLogger(__name__)


def init_catalog_data(
    path: Optional[Union[str, Path]] = None,
    session_factory=SessionLocal,
) -> int:
    """
    Seed the database from the conversions JSON file when it holds no programs.

    Returns:
        Number of conversions imported (0 when the database was already seeded
        or the file is unavailable)
    """
    path = Path(path or SourceConfig.CATALOG_PATH)
    with session_factory() as db:
        service = CatalogService(db)
        if not service.is_empty():
            logger.info("Catalog already seeded; skipping import from %s", path)
            return 0

        try:
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Could not seed catalog from %s: %s", path, exc)
            return 0

        count = service.import_document(document)
        logger.info("Seeded catalog from %s with %d conversions", path, count)
        return count
