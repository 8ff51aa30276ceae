import logging
import shutil
import time
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Tuple

from fastapi import UploadFile

from .errors import InvalidInput, UnsupportedMediaType

logger = logging.getLogger(__name__)

CSV_CONTENT_TYPES = {"text/csv", "application/csv", "text/x-csv"}


def is_csv_upload(upload: UploadFile) -> bool:
    content_type = (upload.content_type or "").split(";", 1)[0].strip().lower()
    return content_type in CSV_CONTENT_TYPES


def require_csv_upload(upload: Optional[UploadFile]) -> UploadFile:
    if upload is None or not upload.filename:
        raise InvalidInput("No CSV file uploaded")
    if not is_csv_upload(upload):
        logger.info(
            "Rejected upload %r with content type %r", upload.filename, upload.content_type
        )
        raise UnsupportedMediaType("Only CSV files are allowed")
    return upload


def _create_target(directory: Path, filename: str) -> Tuple[Path, BinaryIO]:
    """Create a fresh file named after the current millisecond."""
    suffix = Path(filename).suffix.lower() or ".csv"
    stamp = int(time.time() * 1000)
    counter = 0
    while True:
        name = f"{stamp}-{counter}{suffix}" if counter else f"{stamp}{suffix}"
        path = directory / name
        try:
            return path, path.open("xb")
        except FileExistsError:
            counter += 1


def remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.warning("Failed to remove uploaded file %s", path, exc_info=True)


@contextmanager
def stored_upload(upload: UploadFile, directory: Path) -> Iterator[Path]:
    """Store an upload on disk for the duration of the block, then delete it."""
    directory.mkdir(parents=True, exist_ok=True)
    path, out = _create_target(directory, upload.filename or "upload.csv")
    try:
        with out:
            shutil.copyfileobj(upload.file, out)
        logger.debug("Stored upload %r at %s", upload.filename, path)
        yield path
    finally:
        remove_quietly(path)
