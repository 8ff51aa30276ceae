import enum
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Enum, Integer, String, Text

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QRCodeType(str, enum.Enum):
    url = "url"
    csv = "csv"


class QRCode(Base):
    __tablename__ = "qr_codes"

    id = Column(Integer, primary_key=True, index=True)
    owner = Column(String, index=True, nullable=False)
    content = Column(Text, nullable=False)
    image_url = Column(Text, nullable=False)
    type = Column(
        Enum(QRCodeType, name="qr_code_type", native_enum=False),
        nullable=False,
    )
    csv_data = Column(JSON)
    csv_headers = Column(JSON)
    scan_count = Column(Integer, nullable=False, default=0)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, index=True
    )
