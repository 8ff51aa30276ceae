import base64
import logging
import os
from typing import Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from .config import Settings
from .encoder import decode_data_uri

BREVO_URL = "https://api.brevo.com/v3/smtp/email"

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "email_templates")
template_env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
)

logger = logging.getLogger(__name__)


def send_email(
    settings: Settings,
    to: str,
    subject: str,
    text: str,
    html: Optional[str] = None,
    attachments: Optional[list] = None,
) -> bool:
    """Send an email using Brevo if credentials are configured."""
    if not settings.BREVO_API_KEY:
        logger.info("Email to %s skipped: BREVO_API_KEY not set", to)
        return False
    data = {
        "sender": {"email": settings.BREVO_SENDER_EMAIL},
        "to": [{"email": to}],
        "subject": subject,
    }
    if text:
        data["textContent"] = text
    if html:
        data["htmlContent"] = html
    if attachments:
        data["attachment"] = attachments
    try:
        response = httpx.post(
            BREVO_URL,
            json=data,
            headers={"api-key": settings.BREVO_API_KEY, "accept": "application/json"},
            timeout=10,
        )
        response.raise_for_status()
    except httpx.HTTPError:
        logger.exception("Failed to send email to %s", to)
        return False
    logger.info("Sent email to %s", to)
    return True


def _render_template(name: str, **context) -> str:
    return template_env.get_template(name).render(**context)


def send_share_email(
    settings: Settings, to: str, sender: str, content: str, image_url: str
) -> bool:
    """Email a QR code image to ``to`` on behalf of ``sender``."""
    png = decode_data_uri(image_url)
    context = {"sender": sender, "content": content}
    text = _render_template("share_email.jinja", **context)
    html = _render_template("share_email.html", **context)
    attachment = {
        "name": "qr-code.png",
        "content": base64.b64encode(png).decode("ascii"),
    }
    return send_email(
        settings,
        to,
        f"{sender} shared a QR code with you",
        text,
        html,
        attachments=[attachment],
    )
