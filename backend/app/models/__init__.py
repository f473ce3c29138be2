from .catalog_info import CatalogInfo
from .conversion import ConversionRecord, ConversionCreate, ConversionResponse
from .program import ProgramRecord, ProgramCreate, ProgramResponse

__all__ = [
    "CatalogInfo",
    "ConversionRecord",
    "ConversionCreate",
    "ConversionResponse",
    "ProgramRecord",
    "ProgramCreate",
    "ProgramResponse",
]
