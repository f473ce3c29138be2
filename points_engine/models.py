"""
Data models for the Points Conversion Engine.
All models are frozen dataclasses so a loaded catalog can be shared safely.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class ProgramType(str, Enum):
    BANK = "bank"
    HOTEL = "hotel"
    AIRLINE = "airline"
    RETAIL = "retail"
    OTHER = "other"


@dataclass(frozen=True)
class Program:
    """
    A loyalty/rewards program (a node in the conversion graph).

    Fields:
    - id: stable slug, unique within a catalog (e.g. 'chase_ur')
    - name: display name
    - short_name: abbreviated display name
    - type: program grouping, irrelevant to routing math
    - dollar_value: estimated USD value per point
    """
    id: str
    name: str
    short_name: str
    type: ProgramType = ProgramType.OTHER
    dollar_value: float = 0.0


@dataclass(frozen=True)
class FlatRate:
    """Regular exchange rate with no promotion configured."""
    rate: float


@dataclass(frozen=True)
class BonusRate:
    """
    Promotional rate configured on top of the regular one.

    end_date is advisory only: the engine does not expire bonuses itself.
    """
    rate: float
    bonus_rate: float
    end_date: Optional[datetime] = None


RateTerms = Union[FlatRate, BonusRate]


@dataclass(frozen=True)
class Conversion:
    """
    A directed, rated transfer relationship between two programs.

    Fields:
    - from_id / to_id: program ids (may be unknown in malformed data)
    - terms: FlatRate or BonusRate
    - instant_transfer, min_amount, max_amount, note, source, last_updated:
      informational, not used by the routing math
    """
    from_id: str
    to_id: str
    terms: RateTerms
    instant_transfer: bool = False
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    note: Optional[str] = None
    source: Optional[str] = None
    last_updated: Optional[datetime] = None

    @property
    def rate(self) -> float:
        return self.terms.rate

    @property
    def bonus(self) -> bool:
        return isinstance(self.terms, BonusRate)

    @property
    def bonus_rate(self) -> Optional[float]:
        if isinstance(self.terms, BonusRate):
            return self.terms.bonus_rate
        return None

    @property
    def bonus_end_date(self) -> Optional[datetime]:
        if isinstance(self.terms, BonusRate):
            return self.terms.end_date
        return None

    @property
    def key(self) -> tuple[str, str]:
        return (self.from_id, self.to_id)


@dataclass(frozen=True)
class Route:
    """
    A two-edge path between programs.

    Fields:
    - steps: (first, second) where first.to_id == second.from_id
    - total_rate: product of both effective rates
    """
    steps: tuple[Conversion, Conversion]
    total_rate: float

    @property
    def via(self) -> str:
        return self.steps[0].to_id


@dataclass(frozen=True)
class OutboundRoute(Route):
    """Two-step route leaving a program, tagged with its final destination."""
    to_id: str = ""


@dataclass(frozen=True)
class InboundRoute(Route):
    """Two-step route arriving at a program, tagged with its origin."""
    from_id: str = ""


@dataclass(frozen=True)
class TransferSummary:
    """Direct edges plus two-step routes touching one program."""
    direct: list[Conversion] = field(default_factory=list)
    two_step: list[Route] = field(default_factory=list)
