from dataclasses import dataclass, field
from typing import Any, Dict, Iterable


@dataclass
class ServiceError(Exception):
    """Service-layer exception carrying the HTTP status and error envelope fields."""

    status_code: int
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:  # pragma: no cover - convenience for logging
        return f"{self.status_code} {self.code}: {self.message} | {self.details}"


def program_not_found(program_ids: Iterable[str]) -> ServiceError:
    missing = list(program_ids)
    if len(missing) == 1:
        return ServiceError(
            status_code=404,
            code="PROGRAM_NOT_FOUND",
            message=f"Unknown program '{missing[0]}'.",
            details={"missing_programs": missing},
        )
    return ServiceError(
        status_code=404,
        code="PROGRAM_NOT_FOUND",
        message="Unknown programs: " + ", ".join(missing) + ".",
        details={"missing_programs": missing},
    )
