"""
Authentication

Trivial shared-token check for simulation controls. The admin API forwards
the operator's token in the x-admin-auth header. When no token is
configured, controls are open (local development).
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader

logger = logging.getLogger(__name__)

# Security scheme
admin_token_header = APIKeyHeader(name="x-admin-auth", auto_error=False)


async def verify_admin_token(
    request: Request,
    token: Optional[str] = Depends(admin_token_header),
) -> bool:
    """
    Verify the admin token for mutating simulation endpoints.

    Returns:
        True if valid or no token is configured, raises HTTPException otherwise
    """
    expected = request.app.state.settings.admin_token
    if not expected:
        return True

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": {
                    "code": "AUTH_001",
                    "message": "Admin token missing",
                    "details": "Provide the x-admin-auth header"
                }
            }
        )

    if token != expected:
        logger.warning(f"Invalid admin token for path: {request.url.path}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": {
                    "code": "AUTH_002",
                    "message": "Invalid admin token",
                    "details": "The provided token is not valid"
                }
            }
        )

    return True
