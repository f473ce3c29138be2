import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.catalog_info import CatalogInfo
from app.models.conversion import ConversionCreate, ConversionRecord
from app.models.program import ProgramCreate, ProgramRecord
from app.services.errors import ServiceError, program_not_found
from points_engine.catalog import Catalog, build_catalog, parse_program, parse_timestamp
from points_engine.integrity import ValidationReport, generate_report

logger = logging.getLogger(__name__)


def _to_db_datetime(value: Any) -> Optional[datetime]:
    """Normalise a timestamp to naive UTC for storage."""
    try:
        parsed = parse_timestamp(value)
    except ValueError:
        logger.warning("Dropping unparseable timestamp %r", value)
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat() + "Z"


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


class CatalogService:
    """
    Database-backed store for programs and conversions.

    Rows are converted to the JSON document layout before being handed to
    the routing engine, so the API and the CLI share one parsing path.
    """

    def __init__(self, db: Session):
        self.db = db

    def list_programs(self) -> List[ProgramRecord]:
        """Retrieve all programs ordered by id."""
        return self.db.query(ProgramRecord).order_by(ProgramRecord.id).all()

    def list_conversions(self) -> List[ConversionRecord]:
        """Retrieve all conversions in catalog order."""
        return self.db.query(ConversionRecord).order_by(ConversionRecord.id).all()

    def get_program(self, program_id: str) -> Optional[ProgramRecord]:
        return self.db.query(ProgramRecord).filter(ProgramRecord.id == program_id).first()

    def is_empty(self) -> bool:
        return self.db.query(ProgramRecord).first() is None

    def add_program(self, payload: ProgramCreate) -> ProgramRecord:
        if self.get_program(payload.id):
            raise ServiceError(
                status_code=409,
                code="PROGRAM_EXISTS",
                message=f"Program '{payload.id}' already exists.",
                details={"program_id": payload.id},
            )

        program = ProgramRecord(
            id=payload.id,
            name=payload.name,
            short_name=payload.short_name,
            type=payload.type,
            dollar_value=payload.dollar_value,
        )
        try:
            self.db.add(program)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise

        self.db.refresh(program)
        self._touch()
        logger.info("Added program %s", program.id)
        return program

    def add_conversion(self, payload: ConversionCreate) -> ConversionRecord:
        """Add a conversion between two existing programs."""
        missing = [pid for pid in (payload.from_id, payload.to_id) if not self.get_program(pid)]
        if missing:
            raise program_not_found(missing)

        duplicate = (
            self.db.query(ConversionRecord)
            .filter(
                ConversionRecord.from_id == payload.from_id,
                ConversionRecord.to_id == payload.to_id,
            )
            .first()
        )
        if duplicate:
            raise ServiceError(
                status_code=409,
                code="DUPLICATE_CONVERSION",
                message=f"A conversion from '{payload.from_id}' to '{payload.to_id}' already exists.",
                details={"conversion_id": duplicate.id},
            )

        conversion = ConversionRecord(
            from_id=payload.from_id,
            to_id=payload.to_id,
            rate=payload.rate,
            bonus=payload.bonus,
            bonus_rate=payload.bonus_rate,
            bonus_end_date=_to_db_datetime(payload.bonus_end_date),
            instant_transfer=payload.instant_transfer,
            min_amount=payload.min_amount,
            max_amount=payload.max_amount,
            note=payload.note,
            source=payload.source,
            last_updated=datetime.utcnow(),
        )
        try:
            self.db.add(conversion)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise

        self.db.refresh(conversion)
        self._touch()
        logger.info("Added conversion %s -> %s at %s", conversion.from_id, conversion.to_id, conversion.rate)
        return conversion

    def import_document(self, document: Mapping[str, Any]) -> int:
        """
        Load a conversions document into the database.

        The document is parsed first so malformed data never reaches the
        tables. Orphaned and duplicate edges are stored as-is.

        Returns:
            Number of conversions imported

        Raises:
            CatalogFormatError: If the document is not a valid catalog
        """
        build_catalog(document)

        for program_id, raw in document["programs"].items():
            program = parse_program(program_id, raw or {})
            self.db.merge(
                ProgramRecord(
                    id=program.id,
                    name=program.name,
                    short_name=program.short_name,
                    type=program.type,
                    dollar_value=program.dollar_value,
                )
            )

        count = 0
        for raw in document["conversions"]:
            self.db.add(
                ConversionRecord(
                    from_id=str(raw.get("from", "")),
                    to_id=str(raw.get("to", "")),
                    rate=float(raw["rate"]),
                    bonus=bool(raw.get("bonus", False)),
                    bonus_rate=_optional_float(raw.get("bonusRate")),
                    bonus_end_date=_to_db_datetime(raw.get("bonusEndDate")),
                    instant_transfer=bool(raw.get("instantTransfer", False)),
                    min_amount=_optional_float(raw.get("minAmount")),
                    max_amount=_optional_float(raw.get("maxAmount")),
                    note=raw.get("note"),
                    source=raw.get("source"),
                    last_updated=_to_db_datetime(raw.get("lastUpdated")),
                )
            )
            count += 1

        info = self.db.get(CatalogInfo, 1) or CatalogInfo(id=1)
        info.data_source = document.get("dataSource") or ""
        info.last_updated = _to_db_datetime(document.get("lastUpdated"))
        self.db.add(info)

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise
        return count

    def get_document(self) -> Dict[str, Any]:
        """Export the stored catalog in the conversions JSON layout."""
        programs = {
            p.id: {
                "name": p.name,
                "shortName": p.short_name,
                "type": p.type.value if hasattr(p.type, "value") else p.type,
                "dollarValue": p.dollar_value,
            }
            for p in self.list_programs()
        }

        conversions = []
        for c in self.list_conversions():
            raw: Dict[str, Any] = {
                "from": c.from_id,
                "to": c.to_id,
                "rate": c.rate,
                "bonus": bool(c.bonus),
                "instantTransfer": bool(c.instant_transfer),
            }
            optional = {
                "bonusRate": c.bonus_rate,
                "bonusEndDate": _to_iso(c.bonus_end_date),
                "minAmount": c.min_amount,
                "maxAmount": c.max_amount,
                "note": c.note,
                "source": c.source,
                "lastUpdated": _to_iso(c.last_updated),
            }
            raw.update({k: v for k, v in optional.items() if v is not None})
            conversions.append(raw)

        info = self.db.get(CatalogInfo, 1)
        return {
            "lastUpdated": _to_iso(info.last_updated) if info else None,
            "dataSource": info.data_source if info else "",
            "programs": programs,
            "conversions": conversions,
        }

    def get_catalog(self) -> Catalog:
        return build_catalog(self.get_document())

    def integrity_report(self, now: Optional[datetime] = None) -> ValidationReport:
        return generate_report(self.get_document(), now=now)

    def _touch(self) -> None:
        info = self.db.get(CatalogInfo, 1) or CatalogInfo(id=1, data_source="api")
        info.last_updated = datetime.utcnow()
        self.db.add(info)
        self.db.commit()
