import hmac

from fastapi import Depends, Header, Request

from qa_portal.records.exceptions import ForbiddenError
from qa_portal.records.models import ADMIN, ANONYMOUS, CallerContext


def get_caller(request: Request, x_api_key: str | None = Header(None)) -> CallerContext:
    """Resolve the caller's privilege from the X-Api-Key header.

    A caller is privileged only when an admin key is configured and the
    header matches it.
    """
    expected_key = request.app.state.settings.admin_api_key
    if not expected_key or not x_api_key:
        return ANONYMOUS
    if hmac.compare_digest(x_api_key.encode(), expected_key.encode()):
        return ADMIN
    return ANONYMOUS


def require_admin(caller: CallerContext = Depends(get_caller)) -> CallerContext:
    """Raises ForbiddenError unless the caller is privileged."""
    if not caller.is_privileged:
        raise ForbiddenError("Admin access required")
    return caller
