import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request
from jose import JWTError, jwt

from .errors import Unauthenticated

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
SUBJECT_CLAIMS = ("sub", "id", "userId")


@dataclass(frozen=True)
class Identity:
    subject: str
    claims: dict = field(default_factory=dict, compare=False)


def _get_token_from_request(request: Request) -> Optional[str]:
    authorization = request.headers.get("Authorization")
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
    return None


def create_access_token(data: dict, secret_key: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret_key, algorithm=ALGORITHM)


def decode_identity(token: str, secret_key: str) -> Identity:
    """Verify signature and expiry, returning the identity the token carries."""
    try:
        payload = jwt.decode(token, secret_key, algorithms=[ALGORITHM])
    except JWTError as exc:
        logger.info("Token verification failed: %s", exc)
        raise Unauthenticated("Token is not valid")
    for claim in SUBJECT_CLAIMS:
        subject = payload.get(claim)
        if subject not in (None, ""):
            return Identity(subject=str(subject), claims=payload)
    logger.info("Token verification failed: no subject claim")
    raise Unauthenticated("Token is not valid")


def get_current_user(request: Request) -> Identity:
    token = _get_token_from_request(request)
    if token is None:
        logger.info("Rejected %s %s: no token", request.method, request.url.path)
        raise Unauthenticated("No authentication token, authorization denied")
    identity = decode_identity(token, request.app.state.settings.SECRET_KEY)
    request.state.user = identity
    return identity
