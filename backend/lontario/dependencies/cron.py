from __future__ import annotations

import hmac
import logging

from fastapi import Header, HTTPException, status

from lontario.core.config import settings

logger = logging.getLogger(__name__)


def require_cron_secret(authorization: str | None = Header(None)) -> None:
    expected = settings.CRON_SECRET
    if not expected:
        if settings.is_prod:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Cron secret is not configured")
        # Dev without a secret: allow so sweeps can be triggered by hand.
        return

    token = ""
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    if not hmac.compare_digest(token.encode(), expected.encode()):
        logger.warning("Rejected cron call with invalid secret")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
