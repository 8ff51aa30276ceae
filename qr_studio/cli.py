"""Command line entry points: run the server or mint development tokens."""
from __future__ import annotations

import argparse
import errno
import logging
import socket
import sys
from datetime import timedelta
from typing import Optional, Sequence

from pydantic import ValidationError

from .auth import create_access_token
from .config import Settings

logger = logging.getLogger(__name__)


class NoFreePortError(RuntimeError):
    pass


def port_is_free(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError as exc:
            if exc.errno == errno.EADDRINUSE:
                return False
            raise
    return True


def find_available_port(host: str, start: int, attempts: int = 10) -> int:
    """Return the first free port in ``start .. start + attempts - 1``."""
    for port in range(start, start + max(1, attempts)):
        if port_is_free(host, port):
            return port
        logger.warning("Port %d is busy, trying %d", port, port + 1)
    raise NoFreePortError(f"No free port in {start}-{start + attempts - 1}")


def serve(settings: Settings, host: Optional[str] = None, port: Optional[int] = None) -> None:
    import uvicorn

    from .main import create_app, install_fault_logging

    install_fault_logging()
    app = create_app(settings)
    host = host or settings.HOST
    chosen = find_available_port(host, port or settings.PORT, settings.PORT_RETRIES)
    logger.info("Server is running on port %d", chosen)
    uvicorn.run(app, host=host, port=chosen, log_level=settings.LOG_LEVEL.lower())


def issue_token(settings: Settings, subject: str, minutes: Optional[int] = None) -> str:
    expires = timedelta(minutes=minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return create_access_token({"sub": subject}, settings.SECRET_KEY, expires)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qr-studio", description="QR Studio server tools")
    sub = parser.add_subparsers(dest="command", required=True)

    serve_cmd = sub.add_parser("serve", help="Run the HTTP server")
    serve_cmd.add_argument("--host", default=None, help="Bind address (default: HOST)")
    serve_cmd.add_argument(
        "--port",
        type=int,
        default=None,
        help="First port to try; busy ports are skipped (default: PORT)",
    )

    token_cmd = sub.add_parser("issue-token", help="Print a signed bearer token")
    token_cmd.add_argument("subject", help="User identifier stored in the sub claim")
    token_cmd.add_argument(
        "--minutes",
        type=int,
        default=None,
        help="Token lifetime (default: ACCESS_TOKEN_EXPIRE_MINUTES)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = Settings()
    except ValidationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    if args.command == "issue-token":
        print(issue_token(settings, args.subject, args.minutes))
        return 0

    try:
        serve(settings, host=args.host, port=args.port)
    except NoFreePortError as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
