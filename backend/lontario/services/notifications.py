from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from lontario.core.config import settings
from lontario.services import email as email_service
from lontario.services.email_templates import EmailTemplateData, EmailType, render_email

logger = logging.getLogger(__name__)

EMAIL_DISABLED_MESSAGE = "Email delivery is disabled"


@dataclass(frozen=True)
class NotificationResult:
    success: bool
    message_id: str | None = None
    error: str | None = None
    skipped: bool = False


# (to, subject, text, html) -> provider message id
SendFn = Callable[..., "str | None"]


class Notifier:
    """
    Sends templated transactional emails. `send` never raises: every failure
    is reported in the returned `NotificationResult` so callers can decide
    whether it matters.
    """

    def __init__(self, *, send_fn: SendFn | None = None) -> None:
        self._send_fn = send_fn

    def send(self, email_type: EmailType | str, to: str, data: EmailTemplateData) -> NotificationResult:
        kind = str(getattr(email_type, "value", email_type))
        if self._send_fn is None and not settings.EMAIL_ENABLED:
            logger.info("Notification skipped (email disabled): type=%s to=%s", kind, to)
            return NotificationResult(success=False, error=EMAIL_DISABLED_MESSAGE, skipped=True)

        try:
            rendered = render_email(email_type, data)
            sender = self._send_fn or email_service.send_email
            message_id = sender(to, rendered.subject, rendered.text, rendered.html)
        except (email_service.EmailNotConfiguredError, email_service.EmailDeliveryError) as exc:
            logger.warning("Notification failed: type=%s to=%s error=%s", kind, to, exc)
            return NotificationResult(success=False, error=str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected notification failure: type=%s to=%s", kind, to)
            return NotificationResult(success=False, error=str(exc) or "Unknown error")

        logger.info("Notification sent: type=%s to=%s msg_id=%s", kind, to, message_id)
        return NotificationResult(success=True, message_id=message_id)