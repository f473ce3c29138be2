"""
Routing API Schemas - response DTOs for conversion lookups.

The engine returns frozen dataclasses; these models flatten them into
JSON-friendly payloads with the effective rate precomputed per step.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from points_engine.models import Conversion, InboundRoute, OutboundRoute, Route, TransferSummary
from points_engine.planner import ConversionOption, ConversionPlan
from points_engine.routing import effective_rate


class ConversionStep(BaseModel):
    """One directed edge as seen by API clients."""

    from_id: str
    to_id: str
    rate: float
    effective_rate: float
    bonus: bool
    bonus_rate: Optional[float] = None
    bonus_end_date: Optional[datetime] = None
    instant_transfer: bool = False
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    note: Optional[str] = None

    @classmethod
    def from_conversion(cls, conversion: Conversion) -> "ConversionStep":
        return cls(
            from_id=conversion.from_id,
            to_id=conversion.to_id,
            rate=conversion.rate,
            effective_rate=effective_rate(conversion),
            bonus=conversion.bonus,
            bonus_rate=conversion.bonus_rate,
            bonus_end_date=conversion.bonus_end_date,
            instant_transfer=conversion.instant_transfer,
            min_amount=conversion.min_amount,
            max_amount=conversion.max_amount,
            note=conversion.note,
        )


class RouteResponse(BaseModel):
    via: str
    total_rate: float
    steps: List[ConversionStep]
    from_id: Optional[str] = None
    to_id: Optional[str] = None

    @classmethod
    def from_route(cls, route: Route) -> "RouteResponse":
        return cls(
            via=route.via,
            total_rate=route.total_rate,
            steps=[ConversionStep.from_conversion(step) for step in route.steps],
            from_id=route.from_id if isinstance(route, InboundRoute) else route.steps[0].from_id,
            to_id=route.to_id if isinstance(route, OutboundRoute) else route.steps[1].to_id,
        )


class RoutesResponse(BaseModel):
    from_id: str
    to_id: str
    direct: Optional[ConversionStep] = None
    routes: List[RouteResponse]


class ProgramSetResponse(BaseModel):
    program_id: str
    programs: List[str]


class TransferSummaryResponse(BaseModel):
    program_id: str
    direct: List[ConversionStep]
    two_step: List[RouteResponse]

    @classmethod
    def from_summary(cls, program_id: str, summary: TransferSummary) -> "TransferSummaryResponse":
        return cls(
            program_id=program_id,
            direct=[ConversionStep.from_conversion(c) for c in summary.direct],
            two_step=[RouteResponse.from_route(r) for r in summary.two_step],
        )


class ConversionOptionResponse(BaseModel):
    steps: List[ConversionStep]
    rate: float
    converted_amount: int
    step_amounts: List[int]
    dollar_value: Optional[float] = None
    warnings: List[str]
    is_direct: bool
    has_bonus: bool

    @classmethod
    def from_option(cls, option: Optional[ConversionOption]) -> Optional["ConversionOptionResponse"]:
        if option is None:
            return None
        return cls(
            steps=[ConversionStep.from_conversion(step) for step in option.steps],
            rate=option.rate,
            converted_amount=option.converted_amount,
            step_amounts=option.step_amounts,
            dollar_value=option.dollar_value,
            warnings=option.warnings,
            is_direct=option.is_direct,
            has_bonus=option.has_bonus,
        )


class ConversionPlanResponse(BaseModel):
    from_id: str
    to_id: str
    amount: float
    status: str
    direct: Optional[ConversionOptionResponse] = None
    routes: List[ConversionOptionResponse]
    best: Optional[ConversionOptionResponse] = None

    @classmethod
    def from_plan(cls, plan: ConversionPlan) -> "ConversionPlanResponse":
        return cls(
            from_id=plan.from_id,
            to_id=plan.to_id,
            amount=plan.amount,
            status=plan.status,
            direct=ConversionOptionResponse.from_option(plan.direct),
            routes=[ConversionOptionResponse.from_option(o) for o in plan.routes],
            best=ConversionOptionResponse.from_option(plan.best),
        )


class HealthResponse(BaseModel):
    status: str
    message: str
    programs: int
    conversions: int
    last_updated: Optional[datetime] = None
    data_source: str = ""
