from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..csv_ingest import Row

# SQLite INTEGER and most SQL BIGINT columns are signed 64-bit.
SQL_INT_MAX = 2**63 - 1


def fits_sql_integer(value: int) -> bool:
    return -SQL_INT_MAX - 1 <= value <= SQL_INT_MAX


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def create_qr_code(
    db: Session,
    owner: str,
    content: str,
    image_url: str,
    qr_type: models.QRCodeType = models.QRCodeType.url,
) -> models.QRCode:
    qr = models.QRCode(owner=owner, content=content, image_url=image_url, type=qr_type)
    db.add(qr)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(qr)
    return qr


def create_csv_qr_codes(
    db: Session,
    owner: str,
    encoded: Sequence[Tuple[str, str]],
    rows: List[Row],
    headers: List[str],
) -> List[models.QRCode]:
    """Persist one record per (content, image) pair in a single transaction."""
    qrs = [
        models.QRCode(
            owner=owner,
            content=content,
            image_url=image_url,
            type=models.QRCodeType.csv,
            csv_data=rows,
            csv_headers=headers,
        )
        for content, image_url in encoded
    ]
    db.add_all(qrs)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    for qr in qrs:
        db.refresh(qr)
    return qrs


def list_qr_codes(
    db: Session,
    owner: str,
    page: int = 1,
    limit: int = 10,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> Tuple[List[models.QRCode], int]:
    query = db.query(models.QRCode).filter(models.QRCode.owner == owner)
    start, end = as_utc(start), as_utc(end)
    if start is not None:
        query = query.filter(models.QRCode.created_at >= start)
    if end is not None:
        query = query.filter(models.QRCode.created_at <= end)
    total = query.count()
    offset = (page - 1) * limit
    if not fits_sql_integer(offset):
        return [], total
    qrs = (
        query.order_by(models.QRCode.created_at.desc(), models.QRCode.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return qrs, total


def get_qr_code(db: Session, owner: str, qr_id: int) -> Optional[models.QRCode]:
    if not fits_sql_integer(qr_id):
        return None
    return (
        db.query(models.QRCode)
        .filter(models.QRCode.id == qr_id, models.QRCode.owner == owner)
        .first()
    )


def delete_qr_code(db: Session, owner: str, qr_id: int) -> bool:
    qr = get_qr_code(db, owner, qr_id)
    if qr is None:
        return False
    db.delete(qr)
    db.commit()
    return True


def record_scan(db: Session, owner: str, content: str) -> int:
    """Increment the scan counter of every record carrying ``content``."""
    result = db.execute(
        update(models.QRCode)
        .where(models.QRCode.owner == owner, models.QRCode.content == content)
        .values(scan_count=models.QRCode.scan_count + 1)
    )
    db.commit()
    return result.rowcount or 0
