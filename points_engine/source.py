"""
Catalog loading from a JSON file or the conversions API.

Loading is the only I/O in the engine. Failures are raised once as
CatalogLoadError and are never retried automatically.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

import requests

from points_engine.catalog import Catalog, CatalogFormatError, build_catalog

logger = logging.getLogger(__name__)


class SourceConfig:
    """Catalog source settings with environment variable overrides"""
    CATALOG_PATH = Path(os.getenv("POINTS_CATALOG_PATH", "data/conversions.json"))

    API_URLS = [
        url.strip()
        for url in os.getenv("POINTS_CATALOG_URLS", "").split(",")
        if url.strip()
    ]

    # Parse timeout with validation and fallback
    _default_timeout = 10
    try:
        TIMEOUT_SECONDS = float(os.getenv("POINTS_CATALOG_TIMEOUT", str(_default_timeout)))
    except (TypeError, ValueError):
        logger.warning(
            "Invalid POINTS_CATALOG_TIMEOUT value; falling back to default %s seconds",
            _default_timeout,
        )
        TIMEOUT_SECONDS = _default_timeout


class CatalogLoadError(Exception):
    """Raised when no catalog could be loaded from the configured source."""


def load_catalog_file(path: Union[str, Path]) -> Catalog:
    """
    Load a catalog from a conversions JSON file.

    Raises:
        CatalogLoadError: If the file is missing, not JSON, or not a catalog
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)
        catalog = build_catalog(document)
    except (OSError, json.JSONDecodeError, CatalogFormatError) as exc:
        logger.error("Error loading conversion data from %s: %s", path, exc)
        raise CatalogLoadError(f"Could not load conversion data from {path}: {exc}") from exc

    logger.info(
        "Loaded conversion data: %d programs, %d conversions",
        len(catalog.programs),
        len(catalog.conversions),
    )
    return catalog


def _fetch_document(url: str, timeout: float, session=None) -> dict:
    http = session or requests
    response = http.get(url, timeout=timeout, headers={"Accept": "application/json"})
    response.raise_for_status()
    return response.json()


def fetch_catalog(
    urls: Iterable[str],
    fallback_path: Optional[Union[str, Path]] = None,
    timeout: float = SourceConfig.TIMEOUT_SECONDS,
    session: Optional[requests.Session] = None,
) -> Catalog:
    """
    Fetch the catalog from the first API URL that answers, else a static file.

    Args:
        urls: API endpoints tried in order (e.g. .../api/v1/conversions)
        fallback_path: Static conversions JSON used when every URL fails
        timeout: Per-request timeout in seconds
        session: Optional requests.Session

    Returns:
        Catalog

    Raises:
        CatalogLoadError: If every URL fails and there is no usable fallback
    """
    last_error: Optional[Exception] = None
    for url in urls:
        try:
            document = _fetch_document(url, timeout, session)
            catalog = build_catalog(document)
        except (requests.RequestException, ValueError) as exc:
            # JSON decode errors and CatalogFormatError are both ValueErrors
            logger.warning("Conversions API %s not available: %s", url, exc)
            last_error = exc
            continue
        logger.info("Loaded conversion data from %s", url)
        return catalog

    if fallback_path is not None:
        logger.warning("API not available, falling back to static JSON at %s", fallback_path)
        return load_catalog_file(fallback_path)

    logger.error("Error loading conversion data: no source available")
    raise CatalogLoadError(f"No conversion data source available: {last_error}")


class CatalogStore:
    """
    Holds the current catalog snapshot for long-lived consumers.

    `catalog` is None until the first successful load; queries against it
    then return empty results. A reload swaps the reference in one
    assignment, so readers see either the old or the new catalog. A failed
    reload keeps the previous snapshot and re-raises.
    """

    def __init__(self, loader: Optional[Callable[[], Catalog]] = None) -> None:
        self._loader = loader
        self._catalog: Optional[Catalog] = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def catalog(self) -> Optional[Catalog]:
        return self._catalog

    @property
    def generation(self) -> int:
        """Incremented on every successful load; memoized results keyed on it."""
        return self._generation

    @property
    def is_loaded(self) -> bool:
        return self._catalog is not None

    def reload(self, loader: Optional[Callable[[], Catalog]] = None) -> Catalog:
        """
        Load a fresh catalog and make it current.

        Raises:
            CatalogLoadError: Propagated from the loader
            ValueError: If no loader was configured
        """
        loader = loader or self._loader
        if loader is None:
            raise ValueError("CatalogStore has no loader configured")

        catalog = loader()
        with self._lock:
            self._catalog = catalog
            self._generation += 1
        return catalog

    def load(self) -> Catalog:
        """Load once; later calls return the current snapshot."""
        if self._catalog is None:
            return self.reload()
        return self._catalog
