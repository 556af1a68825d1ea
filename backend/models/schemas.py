from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.enums import AuditStatus, PhotoCategory


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuditCreate(ApiModel):
    customer_first_name: Optional[str] = None
    customer_last_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    customer_city: Optional[str] = None
    customer_province: Optional[str] = None
    customer_postal_code: Optional[str] = None
    audit_type: Optional[str] = None
    home_type: Optional[str] = None
    audit_date: Optional[str] = None


class AuditSummary(ApiModel):
    id: str
    status: AuditStatus
    customer_first_name: Optional[str] = None
    customer_last_name: Optional[str] = None
    customer_address: Optional[str] = None
    customer_city: Optional[str] = None
    audit_type: Optional[str] = None
    home_type: Optional[str] = None
    audit_date: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class AuditListResponse(ApiModel):
    audits: List[AuditSummary]
    total: int


class AutosaveRequest(ApiModel):
    """Snapshot the field UI sends on its autosave timer"""
    status: Optional[AuditStatus] = None
    fields: Dict[str, Any] = Field(default_factory=dict)
    sections: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class FloorCreate(ApiModel):
    name: Optional[str] = None


class StatusResponse(ApiModel):
    id: str
    status: AuditStatus


class PhotoResponse(ApiModel):
    id: str
    audit_id: str
    category: PhotoCategory
    filename: str
    original_name: str
    mime_type: str
    size: int
    uploaded_at: datetime
    url: str


class PhotoUploadResult(ApiModel):
    original_name: str
    photo: Optional[PhotoResponse] = None
    error: Optional[str] = None


class PhotoUploadResponse(ApiModel):
    uploaded: List[PhotoResponse]
    errors: List[PhotoUploadResult]


class ProgramSummaryResponse(ApiModel):
    total_audits: int
    by_status: Dict[str, int]
    completion_rate: float
    by_audit_type: Dict[str, int]
    by_home_type: Dict[str, int]
    by_province: Dict[str, int]
    by_heating_fuel: Dict[str, int]
    by_foundation_type: Dict[str, int]
