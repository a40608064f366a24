import logging
import re
from typing import List, Union

import requests

from framel.config import settings

logger = logging.getLogger(__name__)

BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"
BREVO_TIMEOUT_SECONDS = 10

_EMAIL_PATTERN = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")


def is_valid_email(email) -> bool:
    return bool(email) and _EMAIL_PATTERN.fullmatch(email) is not None


def _recipients(to: Union[str, List[str]]) -> List[str]:
    candidates = to if isinstance(to, list) else [to]
    return [e for e in candidates if is_valid_email(e)]


def send_email(to: Union[str, List[str]], subject: str, html: str) -> bool:
    """
    Send one transactional email through Brevo.

    Returns False instead of raising; an unsent email never fails the order
    operation that triggered it.
    """
    recipients = _recipients(to)
    if not recipients:
        logger.warning(f"No valid recipients for '{subject}': {to}")
        return False

    if not settings.BREVO_API_KEY:
        logger.warning(f"BREVO_API_KEY not set, skipping email '{subject}'")
        return False

    try:
        response = requests.post(
            BREVO_API_URL,
            json={
                "sender": {"email": settings.MAIL_FROM, "name": settings.STORE_NAME},
                "to": [{"email": e} for e in recipients],
                "subject": subject,
                "htmlContent": html,
            },
            headers={
                "api-key": settings.BREVO_API_KEY,
                "Content-Type": "application/json",
            },
            timeout=BREVO_TIMEOUT_SECONDS,
        )
    except requests.RequestException:
        logger.exception(f"Brevo request failed for '{subject}'")
        return False

    if response.status_code >= 400:
        logger.error(f"Brevo email failed ({response.status_code}): {response.text}")
        return False

    logger.info(f"Email '{subject}' sent to {recipients}")
    return True
