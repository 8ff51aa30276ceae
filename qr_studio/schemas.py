from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from .models import QRCodeType


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def is_absolute_url(value: str) -> bool:
    """Return True when ``value`` carries a scheme and a network location."""
    if not value or any(ch.isspace() for ch in value):
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


class GenerateRequest(BaseModel):
    url: Optional[str] = None

    @field_validator("url")
    @classmethod
    def strip_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip()


class ShareRequest(CamelModel):
    qr_code_id: int
    email: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip()
        if not cleaned:
            return None
        if "@" not in cleaned:
            raise ValueError("Invalid email address.")
        return cleaned


class ScanRequest(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def validate_content(cls, value: str) -> str:
        if not value:
            raise ValueError("Scanned content cannot be empty.")
        return value


class QRCodeRecord(CamelModel):
    id: int
    content: str
    image_url: str
    type: QRCodeType
    csv_data: Optional[List[Dict[str, Any]]] = None
    csv_headers: Optional[List[str]] = None
    scan_count: int = 0
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        # SQLite hands timestamps back without their offset.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class GeneratedCode(CamelModel):
    id: int
    qr_code: str


class GenerateResponse(CamelModel):
    success: bool = True
    id: int
    qr_code: str
    message: str


class GenerateCsvResponse(CamelModel):
    success: bool = True
    qr_codes: List[GeneratedCode]
    message: str


class HistoryResponse(CamelModel):
    success: bool = True
    qr_codes: List[QRCodeRecord]
    total: int
    page: int
    limit: int


class ScanResponse(CamelModel):
    success: bool = True
    matched: int
    content: str
    is_url: bool


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error: Optional[str] = None
