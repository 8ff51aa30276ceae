import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Query, Request, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..auth import Identity, get_current_user
from ..csv_ingest import CsvParseError, CsvRows, row_content
from ..database import get_db
from ..email import send_share_email
from ..encoder import EncodingError, render_data_uri
from ..errors import InternalError, InvalidInput, NotFound
from ..uploads import require_csv_upload, stored_upload

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/qr",
    tags=["qr"],
    dependencies=[Depends(get_current_user)],
    responses={
        400: {"model": schemas.ErrorResponse},
        401: {"model": schemas.ErrorResponse},
        500: {"model": schemas.ErrorResponse},
    },
)


def _encode_row(content: str) -> tuple[str, str]:
    return content, render_data_uri(content)


@router.post("/generate", response_model=schemas.GenerateResponse)
def generate_from_url(
    payload: schemas.GenerateRequest,
    db: Session = Depends(get_db),
    current_user: Identity = Depends(get_current_user),
):
    url = payload.url
    if not url:
        raise InvalidInput("URL is required")
    if not schemas.is_absolute_url(url):
        logger.info("Invalid URL format: %r", url)
        raise InvalidInput("Invalid URL format")

    try:
        image_url = render_data_uri(url)
        qr = crud.create_qr_code(db, current_user.subject, url, image_url)
    except (EncodingError, SQLAlchemyError) as exc:
        logger.exception("QR generation failed for %r", url)
        raise InternalError("Failed to generate QR Code", detail=str(exc))

    logger.info("Generated QR code %s for %s", qr.id, current_user.subject)
    return schemas.GenerateResponse(
        id=qr.id, qr_code=image_url, message="QR Code generated successfully"
    )


@router.post("/generate/csv", response_model=schemas.GenerateCsvResponse)
def generate_from_csv(
    request: Request,
    csv_file: Optional[UploadFile] = File(None, alias="csvFile"),
    db: Session = Depends(get_db),
    current_user: Identity = Depends(get_current_user),
):
    settings = request.app.state.settings
    upload = require_csv_upload(csv_file)

    try:
        with stored_upload(upload, settings.UPLOAD_DIR) as path:
            source = CsvRows(path)
            rows = source.read()
            headers = source.headers
            contents = [row_content(row) for row in rows]
            # map() keeps input order and re-raises the first failing row.
            with ThreadPoolExecutor(max_workers=settings.CSV_WORKERS) as ex:
                encoded = list(ex.map(_encode_row, contents))
            qrs = crud.create_csv_qr_codes(
                db, current_user.subject, encoded, rows, headers
            )
    except (CsvParseError, EncodingError, SQLAlchemyError, OSError) as exc:
        logger.exception("CSV batch from %r failed", upload.filename)
        raise InternalError("Failed to generate QR Codes from CSV", detail=str(exc))

    logger.info(
        "Generated %d QR codes from %r for %s",
        len(qrs),
        upload.filename,
        current_user.subject,
    )
    return schemas.GenerateCsvResponse(
        qr_codes=[schemas.GeneratedCode(id=qr.id, qr_code=qr.image_url) for qr in qrs],
        message="QR Codes generated successfully from CSV",
    )


@router.get("/history", response_model=schemas.HistoryResponse)
def history(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    current_user: Identity = Depends(get_current_user),
):
    limit = min(limit, request.app.state.settings.HISTORY_MAX_LIMIT)
    start_date, end_date = crud.as_utc(start_date), crud.as_utc(end_date)
    if start_date and end_date and start_date > end_date:
        raise InvalidInput("startDate must not be after endDate")
    try:
        qrs, total = crud.list_qr_codes(
            db, current_user.subject, page=page, limit=limit, start=start_date, end=end_date
        )
    except SQLAlchemyError as exc:
        logger.exception("Failed to fetch QR code history")
        raise InternalError("Failed to fetch QR code history", detail=str(exc))
    return schemas.HistoryResponse(
        qr_codes=[schemas.QRCodeRecord.model_validate(qr) for qr in qrs],
        total=total,
        page=page,
        limit=limit,
    )


@router.post(
    "/share",
    response_model=schemas.MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={404: {"model": schemas.ErrorResponse}},
)
def share(
    request: Request,
    payload: schemas.ShareRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: Identity = Depends(get_current_user),
):
    qr = crud.get_qr_code(db, current_user.subject, payload.qr_code_id)
    if qr is None:
        raise NotFound("QR Code not found")
    if payload.email:
        background_tasks.add_task(
            send_share_email,
            request.app.state.settings,
            payload.email,
            current_user.subject,
            qr.content,
            qr.image_url,
        )
    logger.info(
        "QR code %s shared by %s%s",
        qr.id,
        current_user.subject,
        f" with {payload.email}" if payload.email else "",
    )
    return schemas.MessageResponse(message="QR Code shared")


@router.post("/scan", response_model=schemas.ScanResponse)
def scan(
    payload: schemas.ScanRequest,
    db: Session = Depends(get_db),
    current_user: Identity = Depends(get_current_user),
):
    try:
        matched = crud.record_scan(db, current_user.subject, payload.content)
    except SQLAlchemyError as exc:
        logger.exception("Failed to record scan")
        raise InternalError("Failed to record scan", detail=str(exc))
    logger.info("Scan by %s matched %d record(s)", current_user.subject, matched)
    return schemas.ScanResponse(
        matched=matched,
        content=payload.content,
        is_url=payload.content.startswith(("http://", "https://")),
    )


@router.delete(
    "/{qr_id}",
    response_model=schemas.MessageResponse,
    responses={404: {"model": schemas.ErrorResponse}},
)
def delete(
    qr_id: int,
    db: Session = Depends(get_db),
    current_user: Identity = Depends(get_current_user),
):
    try:
        deleted = crud.delete_qr_code(db, current_user.subject, qr_id)
    except SQLAlchemyError as exc:
        logger.exception("Failed to delete QR code %s", qr_id)
        raise InternalError("Failed to delete QR Code", detail=str(exc))
    if not deleted:
        raise NotFound("QR Code not found")
    logger.info("Deleted QR code %s for %s", qr_id, current_user.subject)
    return schemas.MessageResponse(message="QR Code deleted")
