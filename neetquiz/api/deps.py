"""
Account context resolved by the upstream gateway
"""
from fastapi import Header
from typing import Optional
from uuid import UUID

from neetquiz.errors import Forbidden, InputValidationError, Unauthorized


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> UUID:
    """User id forwarded as X-User-Id; this service never checks credentials"""
    if not x_user_id:
        raise Unauthorized("Missing user context")
    try:
        return UUID(x_user_id)
    except ValueError:
        raise InputValidationError("X-User-Id must be a UUID")


def get_admin_user_id(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None)
) -> UUID:
    user_id = get_current_user_id(x_user_id)
    if (x_user_role or "").lower() != "admin":
        raise Forbidden("Admin role required")
    return user_id
