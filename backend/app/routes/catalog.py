"""Catalog routes: health, the raw conversions document, and catalog edits."""

import logging
from dataclasses import asdict
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status

from app.dependencies.services import get_catalog_service, get_catalog_store
from app.models.conversion import ConversionCreate, ConversionResponse
from app.models.program import ProgramCreate, ProgramResponse
from app.schemas.errors import service_error_response
from app.schemas.routing_schemas import HealthResponse
from app.services.catalog_service import CatalogService
from app.services.errors import ServiceError
from points_engine.source import CatalogStore

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1",
    tags=["catalog"]
)


@router.get("/health", response_model=HealthResponse)
def health(service: CatalogService = Depends(get_catalog_service)):
    catalog = service.get_catalog()
    return HealthResponse(
        status="healthy",
        message="Points Converter API is running",
        programs=len(catalog.programs),
        conversions=len(catalog.conversions),
        last_updated=catalog.last_updated,
        data_source=catalog.data_source,
    )


@router.get("/conversions")
def get_conversions(service: CatalogService = Depends(get_catalog_service)) -> Dict[str, Any]:
    """The full catalog in the conversions JSON layout."""
    return service.get_document()


@router.post("/conversions", response_model=ConversionResponse, status_code=status.HTTP_201_CREATED)
def add_conversion(
    payload: ConversionCreate,
    service: CatalogService = Depends(get_catalog_service),
    store: CatalogStore = Depends(get_catalog_store),
):
    try:
        conversion = service.add_conversion(payload)
    except ServiceError as exc:
        logger.info("Rejected conversion %s -> %s: %s", payload.from_id, payload.to_id, exc.code)
        return service_error_response(exc)
    store.reload(service.get_catalog)
    return conversion


@router.get("/programs", response_model=List[ProgramResponse])
def list_programs(service: CatalogService = Depends(get_catalog_service)):
    return service.list_programs()


@router.post("/programs", response_model=ProgramResponse, status_code=status.HTTP_201_CREATED)
def add_program(
    payload: ProgramCreate,
    service: CatalogService = Depends(get_catalog_service),
    store: CatalogStore = Depends(get_catalog_store),
):
    try:
        program = service.add_program(payload)
    except ServiceError as exc:
        return service_error_response(exc)
    store.reload(service.get_catalog)
    return program


@router.get("/catalog/integrity")
def catalog_integrity(service: CatalogService = Depends(get_catalog_service)) -> Dict[str, Any]:
    """Schema and referential integrity report for the stored catalog."""
    report = service.integrity_report()
    return {
        **report.summary(),
        "timestamp": report.timestamp,
        "schema": asdict(report.schema),
        "integrity": asdict(report.integrity),
    }
