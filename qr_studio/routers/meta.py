from fastapi import APIRouter
from ..version import __version__

router = APIRouter(prefix="/api", tags=["meta"])


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/version")
def get_version():
    return {"version": __version__}
