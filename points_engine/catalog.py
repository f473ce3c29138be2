"""
In-memory catalog of programs and conversions.
Built once per load and treated as read-only by every query.
"""

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from points_engine.models import (
    BonusRate,
    Conversion,
    FlatRate,
    Program,
    ProgramType,
    RateTerms,
)

logger = logging.getLogger(__name__)


class CatalogFormatError(ValueError):
    """Raised when a catalog document is structurally unusable."""


class Catalog:
    """
    Immutable snapshot of the conversion graph.

    Adjacency indexes are built at construction time. Orphaned edges (an
    endpoint missing from `programs`) are left out of both indexes so no
    query can route through them; duplicate and self-loop edges stay in,
    in catalog order.
    """

    __slots__ = ("_programs", "_conversions", "_outgoing", "_incoming", "last_updated", "data_source")

    def __init__(
        self,
        programs: Mapping[str, Program],
        conversions: Iterable[Conversion],
        last_updated: Optional[datetime] = None,
        data_source: str = "",
    ) -> None:
        self._programs: dict[str, Program] = dict(programs)
        self._conversions: tuple[Conversion, ...] = tuple(conversions)
        self.last_updated = last_updated
        self.data_source = data_source

        outgoing: dict[str, list[Conversion]] = {}
        incoming: dict[str, list[Conversion]] = {}
        for conversion in self._conversions:
            if conversion.from_id not in self._programs or conversion.to_id not in self._programs:
                continue
            outgoing.setdefault(conversion.from_id, []).append(conversion)
            incoming.setdefault(conversion.to_id, []).append(conversion)
        self._outgoing = {k: tuple(v) for k, v in outgoing.items()}
        self._incoming = {k: tuple(v) for k, v in incoming.items()}

    @property
    def programs(self) -> dict[str, Program]:
        # Copy so callers cannot mutate the snapshot.
        return dict(self._programs)

    @property
    def conversions(self) -> tuple[Conversion, ...]:
        return self._conversions

    def get_program(self, program_id: str) -> Optional[Program]:
        return self._programs.get(program_id)

    def has_program(self, program_id: str) -> bool:
        return program_id in self._programs

    def outgoing(self, program_id: str) -> tuple[Conversion, ...]:
        """Usable edges leaving `program_id`, in catalog order."""
        return self._outgoing.get(program_id, ())

    def incoming(self, program_id: str) -> tuple[Conversion, ...]:
        """Usable edges arriving at `program_id`, in catalog order."""
        return self._incoming.get(program_id, ())

    def __len__(self) -> int:
        return len(self._conversions)

    def __repr__(self) -> str:
        return f"Catalog(programs={len(self._programs)}, conversions={len(self._conversions)})"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp or date string.

    Returns None for empty values. A trailing 'Z' is accepted as UTC.

    Example:
        >>> parse_timestamp("2024-01-31")
        datetime.datetime(2024, 1, 31, 0, 0)
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _lenient_timestamp(value: Any, label: str) -> Optional[datetime]:
    try:
        return parse_timestamp(value)
    except ValueError:
        logger.warning("Ignoring unparseable %s %r", label, value)
        return None


def _number(value: Any, label: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise CatalogFormatError(f"{label} must be a number, got {value!r}") from exc


def _optional_float(value: Any, label: str) -> Optional[float]:
    if value is None:
        return None
    return _number(value, label)


def parse_rate_terms(raw: Mapping[str, Any]) -> RateTerms:
    """
    Build the rate variant for one raw conversion dict.

    The `bonus` flag governs: a bonusRate on a non-bonus edge is stale data
    and is dropped. A bonus flag without a usable bonusRate falls back to the
    regular rate.
    """
    try:
        rate = float(raw["rate"])
    except (KeyError, TypeError, ValueError) as exc:
        raise CatalogFormatError(
            f"Conversion {raw.get('from')!r} -> {raw.get('to')!r} has no numeric rate"
        ) from exc

    bonus_rate = _optional_float(
        raw.get("bonusRate"), f"bonusRate of {raw.get('from')!r} -> {raw.get('to')!r}"
    )
    if not raw.get("bonus"):
        return FlatRate(rate=rate)

    if bonus_rate is None:
        logger.warning(
            "Conversion %s -> %s is flagged as bonus but has no bonusRate; using regular rate",
            raw.get("from"),
            raw.get("to"),
        )
        return FlatRate(rate=rate)

    return BonusRate(
        rate=rate,
        bonus_rate=bonus_rate,
        end_date=_lenient_timestamp(raw.get("bonusEndDate"), "bonusEndDate"),
    )


def parse_program(program_id: str, raw: Mapping[str, Any]) -> Program:
    if not isinstance(raw, Mapping):
        raise CatalogFormatError(f"Program {program_id!r} must be an object")
    type_value = str(raw.get("type") or ProgramType.OTHER.value).lower()
    try:
        program_type = ProgramType(type_value)
    except ValueError:
        logger.warning("Program %s has unknown type %r; treating as 'other'", program_id, type_value)
        program_type = ProgramType.OTHER

    name = raw.get("name") or program_id
    return Program(
        id=program_id,
        name=name,
        short_name=raw.get("shortName") or name,
        type=program_type,
        dollar_value=_number(raw.get("dollarValue") or 0.0, f"dollarValue of {program_id!r}"),
    )


def parse_conversion(raw: Mapping[str, Any]) -> Conversion:
    if not isinstance(raw, Mapping):
        raise CatalogFormatError(f"Conversion entries must be objects, got {raw!r}")
    label = f"{raw.get('from')!r} -> {raw.get('to')!r}"
    return Conversion(
        from_id=str(raw.get("from", "")),
        to_id=str(raw.get("to", "")),
        terms=parse_rate_terms(raw),
        instant_transfer=bool(raw.get("instantTransfer", False)),
        min_amount=_optional_float(raw.get("minAmount"), f"minAmount of {label}"),
        max_amount=_optional_float(raw.get("maxAmount"), f"maxAmount of {label}"),
        note=raw.get("note"),
        source=raw.get("source"),
        last_updated=_lenient_timestamp(raw.get("lastUpdated"), "lastUpdated"),
    )


def build_catalog(document: Mapping[str, Any]) -> Catalog:
    """
    Build a Catalog from a decoded conversions document.

    Args:
        document: dict with 'programs' (id -> program dict) and
            'conversions' (list of conversion dicts), plus optional
            'lastUpdated' and 'dataSource'

    Returns:
        Catalog snapshot

    Raises:
        CatalogFormatError: If the document is missing its programs or
            conversions, an entry is not an object, or a numeric field
            does not hold a number
    """
    if not isinstance(document, Mapping):
        raise CatalogFormatError("Catalog document must be a JSON object")

    raw_programs = document.get("programs")
    raw_conversions = document.get("conversions")
    if not isinstance(raw_programs, Mapping):
        raise CatalogFormatError("Catalog document must contain a 'programs' object")
    if not isinstance(raw_conversions, list):
        raise CatalogFormatError("Catalog document must contain a 'conversions' list")

    programs = {pid: parse_program(pid, raw or {}) for pid, raw in raw_programs.items()}
    conversions = [parse_conversion(raw) for raw in raw_conversions]

    orphaned = sum(1 for c in conversions if c.from_id not in programs or c.to_id not in programs)
    if orphaned:
        logger.warning("Catalog contains %d orphaned conversion(s); they will not be routed", orphaned)

    return Catalog(
        programs=programs,
        conversions=conversions,
        last_updated=_lenient_timestamp(document.get("lastUpdated"), "lastUpdated"),
        data_source=document.get("dataSource") or "",
    )
