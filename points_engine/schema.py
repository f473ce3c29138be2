"""
Pydantic models describing the conversions document.
Used by the validation layer and the HTTP service; the routing engine
itself never requires a document to pass these checks.
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from points_engine.models import ProgramType

PROGRAM_ID_PATTERN = re.compile(r"^[a-z_]+$")


class ProgramSchema(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str = Field(min_length=1)
    short_name: str = Field(alias="shortName", min_length=1)
    type: ProgramType
    dollar_value: float = Field(alias="dollarValue", ge=0)
    icon: Optional[str] = None
    website: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name", "short_name")
    @classmethod
    def not_blank(cls, v: str):
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class ConversionSchema(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    from_id: str = Field(alias="from", min_length=1)
    to_id: str = Field(alias="to", min_length=1)
    rate: float = Field(gt=0)
    bonus: bool
    bonus_rate: Optional[float] = Field(default=None, alias="bonusRate", gt=0)
    bonus_end_date: Optional[datetime] = Field(default=None, alias="bonusEndDate")
    instant_transfer: bool = Field(alias="instantTransfer")
    min_amount: Optional[float] = Field(default=None, alias="minAmount", ge=0)
    max_amount: Optional[float] = Field(default=None, alias="maxAmount", ge=0)
    note: Optional[str] = None
    source: Optional[str] = None
    last_updated: datetime = Field(alias="lastUpdated")

    @model_validator(mode="after")
    def amounts_ordered(self):
        if (
            self.min_amount is not None
            and self.max_amount is not None
            and self.min_amount > self.max_amount
        ):
            raise ValueError("minAmount must not exceed maxAmount")
        return self


class AffiliateLinkSchema(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str = Field(min_length=1)
    program: str = Field(min_length=1)
    bonus: str
    url: str
    annual_fee: str = Field(alias="annualFee")
    expiration_date: Optional[datetime] = Field(default=None, alias="expirationDate")


class CatalogDocumentSchema(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    last_updated: datetime = Field(alias="lastUpdated")
    data_source: str = Field(alias="dataSource")
    version: Optional[str] = None
    config: Optional[dict] = None
    programs: dict[str, ProgramSchema]
    conversions: list[ConversionSchema]
    affiliate_links: list[AffiliateLinkSchema] = Field(default_factory=list, alias="affiliateLinks")
    metadata: Optional[dict] = None

    @field_validator("programs")
    @classmethod
    def program_ids_are_slugs(cls, v: dict[str, ProgramSchema]):
        bad = [pid for pid in v if not PROGRAM_ID_PATTERN.match(pid)]
        if bad:
            raise ValueError(f"Program ids must match ^[a-z_]+$: {', '.join(sorted(bad))}")
        return v
