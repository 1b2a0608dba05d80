"""FastAPI identity dependency.

Authentication and role resolution happen upstream; the gateway forwards
the acting coach's id in the X-Coach-Id header.
"""

from __future__ import annotations

from fastapi import Header, HTTPException, Request, status
from loguru import logger


def get_current_coach_id(request: Request, x_coach_id: str | None = Header(default=None)) -> str:
    """Return the acting coach id.

    Raises:
        HTTPException: 401 if the header is missing or blank
    """
    if not x_coach_id or not x_coach_id.strip():
        logger.warning("Request without coach identity", path=request.url.path, method=request.method)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Coach-Id header",
        )
    return x_coach_id.strip()
