from sqlalchemy import Column, Float, String, Enum as SAEnum, CheckConstraint
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.db.db import Base
from points_engine.models import ProgramType
from points_engine.schema import PROGRAM_ID_PATTERN


# SQLAlchemy ORM Model
class ProgramRecord(Base):
    __tablename__ = "programs"

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    short_name = Column(String(64), nullable=False)
    type = Column(SAEnum(ProgramType), nullable=False, default=ProgramType.OTHER)
    dollar_value = Column(Float, nullable=False, default=0.0)

    __table_args__ = (
        CheckConstraint("dollar_value >= 0", name="ck_program_dollar_value_non_negative"),
    )


# Pydantic Models for Request/Response
class ProgramBase(BaseModel):
    name: str
    short_name: str
    type: ProgramType = ProgramType.OTHER
    dollar_value: float = Field(0.0, ge=0)

    @field_validator("name", "short_name")
    @classmethod
    def not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError("Program names cannot be empty")
        return v.strip()


class ProgramCreate(ProgramBase):
    """Schema for adding a program to the catalog"""
    id: str

    @field_validator("id")
    @classmethod
    def id_is_slug(cls, v):
        if not PROGRAM_ID_PATTERN.match(v):
            raise ValueError("Program id must contain only lowercase letters and underscores")
        return v


class ProgramResponse(ProgramBase):
    """Schema for API responses"""
    model_config = ConfigDict(from_attributes=True)
    id: str
