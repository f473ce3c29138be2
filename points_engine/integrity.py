"""
Data-quality checks and repairs for a conversions document.

This layer is optional pre-processing: the routing engine tolerates every
defect reported here. Bonus expiry is applied only by `auto_repair`, never
at query time.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from points_engine.catalog import parse_timestamp
from points_engine.schema import CatalogDocumentSchema

logger = logging.getLogger(__name__)

# Applied when a bonus is flagged but no bonus rate was recorded.
DEFAULT_BONUS_MULTIPLIER = 1.25

ISSUE_BONUS_INCONSISTENCY = "bonus_inconsistency"
ISSUE_EXPIRED_BONUS = "expired_bonus"
ISSUE_DUPLICATE_CONVERSION = "duplicate_conversion"
ISSUE_INVALID_AFFILIATE_PROGRAM = "invalid_affiliate_program"
ISSUE_INVALID_ENTRY = "invalid_entry"


@dataclass
class SchemaValidation:
    valid: bool
    errors: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class OrphanedConversion:
    index: int
    conversion: dict[str, Any]
    issue: str


@dataclass
class IntegrityIssue:
    type: str
    message: str
    index: Optional[int] = None


@dataclass
class IntegrityReport:
    """
    Result of a referential integrity pass.

    Fields:
    - orphaned_conversions: edges with an unknown endpoint or a self-reference
    - missing_programs: program ids referenced by edges but not defined
    - issues: non-critical defects (bonus, expiry, duplicates, affiliates)
    - stats: counters for display
    """
    orphaned_conversions: list[OrphanedConversion] = field(default_factory=list)
    missing_programs: list[str] = field(default_factory=list)
    issues: list[IntegrityIssue] = field(default_factory=list)
    stats: dict[str, int] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.orphaned_conversions and not self.issues


@dataclass
class RepairResult:
    document: dict[str, Any]
    repairs: list[str] = field(default_factory=list)

    @property
    def repair_count(self) -> int:
        return len(self.repairs)


@dataclass
class ValidationReport:
    timestamp: datetime
    schema: SchemaValidation
    integrity: IntegrityReport

    @property
    def valid(self) -> bool:
        return self.schema.valid and self.integrity.valid

    @property
    def total_issues(self) -> int:
        return len(self.schema.errors) + len(self.integrity.issues)

    @property
    def critical_issues(self) -> int:
        return len(self.integrity.orphaned_conversions)

    @property
    def warnings(self) -> int:
        return sum(1 for issue in self.integrity.issues if issue.type == ISSUE_EXPIRED_BONUS)

    def summary(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "total_issues": self.total_issues,
            "critical_issues": self.critical_issues,
            "warnings": self.warnings,
        }


def _program_ids(document: Mapping[str, Any]) -> set[str]:
    programs = document.get("programs")
    return set(programs.keys()) if isinstance(programs, Mapping) else set()


def _entries(document: Mapping[str, Any], key: str) -> list[Any]:
    entries = document.get(key)
    return entries if isinstance(entries, list) else []


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_bonus_expired(conversion: Mapping[str, Any], now: datetime) -> bool:
    """
    Return True when a flagged bonus has an end date before `now`.

    Naive timestamps are treated as UTC. Unparseable end dates never expire.
    """
    if not conversion.get("bonus") or not conversion.get("bonusEndDate"):
        return False
    try:
        end_date = parse_timestamp(conversion["bonusEndDate"])
    except ValueError:
        return False
    return _utc(end_date) < _utc(now)


def validate_document(document: Mapping[str, Any]) -> SchemaValidation:
    """Check the document shape against CatalogDocumentSchema."""
    try:
        CatalogDocumentSchema.model_validate(document)
    except ValidationError as exc:
        errors = [
            {
                "path": "/".join(str(part) for part in err["loc"]),
                "message": err["msg"],
            }
            for err in exc.errors()
        ]
        return SchemaValidation(valid=False, errors=errors)
    return SchemaValidation(valid=True)


def check_referential_integrity(document: Mapping[str, Any], now: Optional[datetime] = None) -> IntegrityReport:
    """
    Check that every conversion references defined programs and is consistent.

    Args:
        document: Raw conversions document
        now: Reference time for bonus expiry (defaults to the current UTC time)

    Returns:
        IntegrityReport
    """
    now = now or datetime.now(timezone.utc)
    program_ids = _program_ids(document)
    conversions = _entries(document, "conversions")

    report = IntegrityReport()
    missing: set[str] = set()
    seen: dict[str, int] = {}

    for index, conversion in enumerate(conversions):
        if not isinstance(conversion, Mapping):
            report.issues.append(IntegrityIssue(
                ISSUE_INVALID_ENTRY,
                f"Conversion {index + 1}: expected an object, got {type(conversion).__name__}",
                index,
            ))
            continue

        from_id = conversion.get("from")
        to_id = conversion.get("to")

        if from_id not in program_ids:
            report.orphaned_conversions.append(
                OrphanedConversion(index, dict(conversion), f"Unknown 'from' program: {from_id}")
            )
            missing.add(str(from_id))
        if to_id not in program_ids:
            report.orphaned_conversions.append(
                OrphanedConversion(index, dict(conversion), f"Unknown 'to' program: {to_id}")
            )
            missing.add(str(to_id))
        if from_id == to_id:
            report.orphaned_conversions.append(
                OrphanedConversion(index, dict(conversion), "Self-referencing conversion")
            )

        if conversion.get("bonus") and not conversion.get("bonusRate"):
            report.issues.append(IntegrityIssue(
                ISSUE_BONUS_INCONSISTENCY,
                f"Conversion {index + 1}: bonus=true but no bonusRate specified",
                index,
            ))
        if not conversion.get("bonus") and conversion.get("bonusRate"):
            report.issues.append(IntegrityIssue(
                ISSUE_BONUS_INCONSISTENCY,
                f"Conversion {index + 1}: bonus=false but bonusRate specified",
                index,
            ))
        if is_bonus_expired(conversion, now):
            report.issues.append(IntegrityIssue(
                ISSUE_EXPIRED_BONUS,
                f"Conversion {index + 1}: bonus expired on {conversion['bonusEndDate']}",
                index,
            ))

        key = f"{from_id}->{to_id}"
        if key in seen:
            report.issues.append(IntegrityIssue(
                ISSUE_DUPLICATE_CONVERSION,
                f"Duplicate conversion found: {key} (indices {seen[key]} and {index})",
                index,
            ))
        else:
            seen[key] = index

    for index, link in enumerate(_entries(document, "affiliateLinks")):
        if not isinstance(link, Mapping):
            report.issues.append(IntegrityIssue(
                ISSUE_INVALID_ENTRY,
                f"Affiliate link {index + 1}: expected an object, got {type(link).__name__}",
                index,
            ))
            continue
        if link.get("program") not in program_ids:
            report.issues.append(IntegrityIssue(
                ISSUE_INVALID_AFFILIATE_PROGRAM,
                f"Affiliate link {index + 1}: references unknown program '{link.get('program')}'",
                index,
            ))

    report.missing_programs = sorted(missing)
    report.stats = {
        "total_programs": len(program_ids),
        "total_conversions": len(conversions),
        "orphaned_count": len(report.orphaned_conversions),
        "issue_count": len(report.issues),
    }
    return report


def auto_repair(document: Mapping[str, Any], now: Optional[datetime] = None) -> RepairResult:
    """
    Return a repaired copy of the document; the input is left untouched.

    Repairs:
    - drop conversions whose endpoints are not defined programs
    - fill a missing bonusRate with rate * DEFAULT_BONUS_MULTIPLIER
    - clear a bonusRate left on a non-bonus conversion
    - turn expired bonuses off
    - refresh metadata counters
    """
    now = now or datetime.now(timezone.utc)
    repaired = copy.deepcopy(dict(document))
    program_ids = _program_ids(repaired)
    repairs: list[str] = []
    kept = []

    for index, conversion in enumerate(_entries(repaired, "conversions")):
        if not isinstance(conversion, Mapping):
            repairs.append(f"Removed invalid conversion {index + 1}: not an object")
            continue
        from_id = conversion.get("from")
        to_id = conversion.get("to")
        if from_id not in program_ids or to_id not in program_ids:
            repairs.append(f"Removed orphaned conversion {index + 1}: {from_id} -> {to_id}")
            continue

        if conversion.get("bonus") and not conversion.get("bonusRate"):
            conversion["bonusRate"] = conversion["rate"] * DEFAULT_BONUS_MULTIPLIER
            repairs.append(f"Fixed missing bonusRate for conversion {index + 1}")

        if not conversion.get("bonus") and conversion.get("bonusRate"):
            conversion["bonusRate"] = None
            repairs.append(f"Removed bonusRate for non-bonus conversion {index + 1}")

        if is_bonus_expired(conversion, now):
            conversion["bonus"] = False
            conversion["bonusRate"] = None
            conversion.pop("bonusEndDate", None)
            repairs.append(f"Removed expired bonus for conversion {index + 1}")

        kept.append(conversion)

    repaired["conversions"] = kept

    metadata = repaired.setdefault("metadata", {}) or {}
    repaired["metadata"] = metadata
    metadata.setdefault("integrityChecks", {})["lastReferentialCheck"] = now.isoformat()
    metadata["totalPrograms"] = len(program_ids)
    metadata["totalConversions"] = len(kept)

    if repairs:
        logger.info("Applied %d repair(s) to catalog document", len(repairs))
    return RepairResult(document=repaired, repairs=repairs)


def generate_report(document: Mapping[str, Any], now: Optional[datetime] = None) -> ValidationReport:
    """Run schema validation and the integrity pass together."""
    now = now or datetime.now(timezone.utc)
    return ValidationReport(
        timestamp=now,
        schema=validate_document(document),
        integrity=check_referential_integrity(document, now=now),
    )
