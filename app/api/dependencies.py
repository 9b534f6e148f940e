"""Shared route dependencies."""
import logging
from typing import Optional
from uuid import UUID

from fastapi import Header, HTTPException

logger = logging.getLogger(__name__)


async def get_organization_id(
    x_organization_id: Optional[str] = Header(default=None),
) -> UUID:
    """Organization the request is scoped to, from the ``X-Organization-Id`` header.

    The header is set by the authenticating gateway in front of this service.
    """
    if not x_organization_id:
        raise HTTPException(status_code=403, detail="Organization context required")
    try:
        return UUID(x_organization_id.strip())
    except ValueError:
        logger.warning(f"Rejected malformed organization id: {x_organization_id!r}")
        raise HTTPException(status_code=403, detail="Invalid organization context")
