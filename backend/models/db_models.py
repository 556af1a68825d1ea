from sqlmodel import SQLModel, Field, Column
from sqlalchemy import JSON, ForeignKey, String
from typing import Optional
from datetime import datetime, timezone
import uuid

from models.enums import AuditStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Audit(SQLModel, table=True):
    __tablename__ = "audits"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    # Owning user; identity is managed by the upstream auth gateway
    user_id: int = Field(index=True)
    status: str = Field(default=AuditStatus.draft.value, index=True, max_length=20)

    customer_first_name: Optional[str] = Field(default=None, max_length=255)
    customer_last_name: Optional[str] = Field(default=None, max_length=255)
    customer_email: Optional[str] = Field(default=None, max_length=255)
    customer_phone: Optional[str] = Field(default=None, max_length=64)
    customer_address: Optional[str] = Field(default=None, max_length=255)
    customer_city: Optional[str] = Field(default=None, max_length=255)
    customer_province: Optional[str] = Field(default=None, max_length=64)
    customer_postal_code: Optional[str] = Field(default=None, max_length=16)
    audit_type: Optional[str] = Field(default=None, max_length=32)
    home_type: Optional[str] = Field(default=None, max_length=32)
    audit_date: Optional[str] = Field(default=None, max_length=32)

    # Pre-audit information
    eligibility_criteria: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    pre_audit_discussion: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    atypical_loads: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # House information
    house_info: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    foundation_info: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    walls_info: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    ceiling_info: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    windows_info: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    doors_info: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    ventilation_info: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    heating_info: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    domestic_hot_water_info: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    renewables_info: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Tests
    blower_door_test: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    depressurization_test: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    # Set when the depressurization section is explicitly saved; gates completion
    depressurization_saved_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class AuditPhoto(SQLModel, table=True):
    __tablename__ = "audit_photos"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    audit_id: str = Field(
        sa_column=Column(String, ForeignKey("audits.id", ondelete="CASCADE"), index=True, nullable=False)
    )
    category: str = Field(max_length=32, index=True)
    filename: str = Field(max_length=255)
    original_name: str = Field(max_length=255)
    mime_type: str = Field(max_length=100)
    size: int
    uploaded_at: datetime = Field(default_factory=utcnow)
