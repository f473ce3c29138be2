"""
Routing routes.

Read-only lookups over a per-request catalog snapshot:
- GET /api/v1/routes?from=&to=            direct edge plus two-step routes
- GET /api/v1/convert?from=&to=&amount=   conversion plan for an amount
- GET /api/v1/programs/{id}/reachable     programs reachable in one or two steps
- GET /api/v1/programs/{id}/sources       programs that can reach {id}
- GET /api/v1/transfers/from/{id}         outgoing edges and two-step routes
- GET /api/v1/transfers/to/{id}           incoming edges and two-step routes
"""

from fastapi import APIRouter, Depends, Query

from app.dependencies.services import get_routing_service
from app.schemas.errors import service_error_response
from app.schemas.routing_schemas import (
    ConversionPlanResponse,
    ConversionStep,
    ProgramSetResponse,
    RouteResponse,
    RoutesResponse,
    TransferSummaryResponse,
)
from app.services.errors import ServiceError
from app.services.routing_service import RoutingService

router = APIRouter(
    prefix="/api/v1",
    tags=["routing"]
)


@router.get("/routes", response_model=RoutesResponse)
def get_routes(
    from_id: str = Query(..., alias="from", min_length=1),
    to_id: str = Query(..., alias="to", min_length=1),
    service: RoutingService = Depends(get_routing_service),
):
    try:
        result = service.get_routes(from_id, to_id)
    except ServiceError as exc:
        return service_error_response(exc)

    direct = result["direct"]
    return RoutesResponse(
        from_id=from_id,
        to_id=to_id,
        direct=ConversionStep.from_conversion(direct) if direct else None,
        routes=[RouteResponse.from_route(route) for route in result["routes"]],
    )


@router.get("/convert", response_model=ConversionPlanResponse)
def convert(
    from_id: str = Query(..., alias="from", min_length=1),
    to_id: str = Query(..., alias="to", min_length=1),
    amount: float = Query(...),
    multi_step: bool = Query(True),
    service: RoutingService = Depends(get_routing_service),
):
    try:
        plan = service.convert(from_id, to_id, amount, include_multi_step=multi_step)
    except ServiceError as exc:
        return service_error_response(exc)
    return ConversionPlanResponse.from_plan(plan)


@router.get("/programs/{program_id}/reachable", response_model=ProgramSetResponse)
def reachable_programs(program_id: str, service: RoutingService = Depends(get_routing_service)):
    try:
        return ProgramSetResponse(program_id=program_id, programs=service.reachable(program_id))
    except ServiceError as exc:
        return service_error_response(exc)


@router.get("/programs/{program_id}/sources", response_model=ProgramSetResponse)
def source_programs(program_id: str, service: RoutingService = Depends(get_routing_service)):
    try:
        return ProgramSetResponse(program_id=program_id, programs=service.sources(program_id))
    except ServiceError as exc:
        return service_error_response(exc)


@router.get("/transfers/from/{program_id}", response_model=TransferSummaryResponse)
def transfers_from(program_id: str, service: RoutingService = Depends(get_routing_service)):
    try:
        summary = service.transfers_from(program_id)
    except ServiceError as exc:
        return service_error_response(exc)
    return TransferSummaryResponse.from_summary(program_id, summary)


@router.get("/transfers/to/{program_id}", response_model=TransferSummaryResponse)
def transfers_to(program_id: str, service: RoutingService = Depends(get_routing_service)):
    try:
        summary = service.transfers_to(program_id)
    except ServiceError as exc:
        return service_error_response(exc)
    return TransferSummaryResponse.from_summary(program_id, summary)
