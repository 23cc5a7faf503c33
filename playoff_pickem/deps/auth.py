from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

from playoff_pickem.core.config import get_settings

logger = logging.getLogger(__name__)


def require_admin(
    x_admin_token: Optional[str] = Header(default=None),
    x_admin_actor: Optional[str] = Header(default=None),
) -> str:
    """Check the admin token header and return the acting admin's name.

    Admin routes are disabled entirely when no token is configured.
    """
    expected = get_settings().ADMIN_TOKEN
    if not expected:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin API is disabled")
    if not x_admin_token or not secrets.compare_digest(x_admin_token, expected):
        logger.warning("Rejected admin request with bad token")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin token")
    return (x_admin_actor or "admin").strip() or "admin"
