from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text, CheckConstraint
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.db.db import Base


# SQLAlchemy ORM Model
class ConversionRecord(Base):
    """
    A directed transfer edge. Rows are read back in id order, which is the
    catalog order the routing engine relies on for first-match-wins lookups.
    Endpoints are not foreign keys: orphaned edges are tolerated downstream.
    """
    __tablename__ = "conversions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    from_id = Column(String(64), nullable=False, index=True)
    to_id = Column(String(64), nullable=False, index=True)
    rate = Column(Float, nullable=False)
    bonus = Column(Boolean, nullable=False, default=False)
    bonus_rate = Column(Float, nullable=True)
    bonus_end_date = Column(DateTime, nullable=True)
    instant_transfer = Column(Boolean, nullable=False, default=False)
    min_amount = Column(Float, nullable=True)
    max_amount = Column(Float, nullable=True)
    note = Column(Text, nullable=True)
    source = Column(String(512), nullable=True)
    last_updated = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("rate > 0", name="ck_conversion_rate_positive"),
    )


# Pydantic Models for Request/Response
class ConversionBase(BaseModel):
    from_id: str
    to_id: str
    rate: float = Field(..., gt=0)
    bonus: bool = False
    bonus_rate: Optional[float] = Field(None, gt=0)
    bonus_end_date: Optional[datetime] = None
    instant_transfer: bool = False
    min_amount: Optional[float] = Field(None, ge=0)
    max_amount: Optional[float] = Field(None, ge=0)
    note: Optional[str] = None
    source: Optional[str] = None


class ConversionCreate(ConversionBase):
    """Schema for adding a conversion; enforces bonus consistency up front"""

    @field_validator("from_id", "to_id")
    @classmethod
    def program_id_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError("Program id cannot be empty")
        return v.strip()

    @model_validator(mode="after")
    def check_consistency(self):
        if self.from_id == self.to_id:
            raise ValueError("A program cannot convert to itself")
        if self.bonus and self.bonus_rate is None:
            raise ValueError("bonus_rate is required when bonus is true")
        if not self.bonus and self.bonus_rate is not None:
            raise ValueError("bonus_rate must be omitted when bonus is false")
        if self.min_amount is not None and self.max_amount is not None and self.min_amount > self.max_amount:
            raise ValueError("min_amount must not exceed max_amount")
        return self


class ConversionResponse(ConversionBase):
    """Schema for API responses"""
    model_config = ConfigDict(from_attributes=True)
    id: int
    last_updated: Optional[datetime] = None
