import logging
import math
from typing import Dict

from app.services.errors import ServiceError, program_not_found
from points_engine.catalog import Catalog
from points_engine.models import TransferSummary
from points_engine.planner import ConversionPlan, plan_conversion
from points_engine.routing import (
    find_direct_conversion,
    find_multi_step_conversions,
    get_reachable_programs,
    get_source_programs,
    get_transfers_from,
    get_transfers_to,
)

logger = logging.getLogger(__name__)


class RoutingService:
    """Wraps the routing engine around one catalog snapshot and maps misuse to ServiceError."""

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def _require_program(self, program_id: str) -> None:
        if not self.catalog.has_program(program_id):
            raise program_not_found([program_id])

    def get_routes(self, from_id: str, to_id: str) -> Dict[str, object]:
        self._require_program(from_id)
        self._require_program(to_id)
        return {
            "direct": find_direct_conversion(self.catalog, from_id, to_id),
            "routes": find_multi_step_conversions(self.catalog, from_id, to_id),
        }

    def convert(
        self,
        from_id: str,
        to_id: str,
        amount: float,
        include_multi_step: bool = True,
    ) -> ConversionPlan:
        self._require_program(from_id)
        self._require_program(to_id)
        logger.debug("Planning %s -> %s for %s points", from_id, to_id, amount)
        try:
            return plan_conversion(
                self.catalog,
                from_id,
                to_id,
                amount,
                include_multi_step=include_multi_step,
            )
        except ValueError as exc:
            raise ServiceError(
                status_code=400,
                code="VALIDATION_ERROR",
                message=str(exc),
                details={
                    "from": from_id,
                    "to": to_id,
                    # JSON has no inf or nan
                    "amount": amount if math.isfinite(amount) else str(amount),
                },
            ) from exc

    def reachable(self, program_id: str) -> list[str]:
        self._require_program(program_id)
        return sorted(get_reachable_programs(self.catalog, program_id))

    def sources(self, program_id: str) -> list[str]:
        self._require_program(program_id)
        return sorted(get_source_programs(self.catalog, program_id))

    def transfers_from(self, program_id: str) -> TransferSummary:
        self._require_program(program_id)
        return get_transfers_from(self.catalog, program_id)

    def transfers_to(self, program_id: str) -> TransferSummary:
        self._require_program(program_id)
        return get_transfers_to(self.catalog, program_id)
