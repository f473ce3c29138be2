from .catalog import Catalog, CatalogFormatError, build_catalog
from .models import (
    BonusRate,
    Conversion,
    FlatRate,
    InboundRoute,
    OutboundRoute,
    Program,
    ProgramType,
    Route,
    TransferSummary,
)
from .planner import ConversionOption, ConversionPlan, convert_amount, plan_conversion
from .routing import (
    effective_rate,
    find_direct_conversion,
    find_multi_step_conversions,
    get_reachable_programs,
    get_source_programs,
    get_transfers_from,
    get_transfers_to,
)
from .source import CatalogLoadError, CatalogStore, fetch_catalog, load_catalog_file

__all__ = [
    "Catalog",
    "CatalogFormatError",
    "build_catalog",
    "BonusRate",
    "Conversion",
    "FlatRate",
    "InboundRoute",
    "OutboundRoute",
    "Program",
    "ProgramType",
    "Route",
    "TransferSummary",
    "ConversionOption",
    "ConversionPlan",
    "convert_amount",
    "plan_conversion",
    "effective_rate",
    "find_direct_conversion",
    "find_multi_step_conversions",
    "get_reachable_programs",
    "get_source_programs",
    "get_transfers_from",
    "get_transfers_to",
    "CatalogLoadError",
    "CatalogStore",
    "fetch_catalog",
    "load_catalog_file",
]
