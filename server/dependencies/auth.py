"""Access gate: bearer-token authentication followed by per-operation role checks.

resolve_role authenticates every request on a router. require_role /
require_writer then authorise individual operations, optionally only for some
HTTP methods, so one route can serve readers on GET and writers on DELETE.
"""

from fastapi import Depends, HTTPException, Request

from shared.auth.KeyRegistry import KeyRegistry
from shared.auth.Role import Role

UNAUTHORIZED_DETAIL = "Unauthorized"
BEARER_SCHEME = "Bearer"


def extract_bearer_token(header_value: str | None) -> str | None:
    """Return the token of an "Authorization: Bearer <token>" header, or None if malformed."""
    if not header_value:
        return None
    parts = header_value.split(" ")
    if len(parts) != 2:
        return None
    scheme, token = parts
    if scheme != BEARER_SCHEME or not token:
        return None
    return token


async def resolve_role(request: Request) -> Role:
    """Authenticate the request and record its role on ``request.state.auth_role``.

    Args:
        request (Request): The incoming request (provides app.state.key_registry).

    Returns:
        Role: READER or WRITER.

    Raises:
        HTTPException: 401 if the header is missing or malformed, or the token is unknown.
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise HTTPException(status_code=401, detail=UNAUTHORIZED_DETAIL)

    key_registry: KeyRegistry = request.app.state.key_registry
    role = key_registry.classify(token)
    if role is Role.NONE:
        raise HTTPException(status_code=401, detail=UNAUTHORIZED_DETAIL)

    request.state.auth_role = role
    return role


def require_role(required: Role, methods: list[str] | None = None):
    """Build a dependency that rejects callers whose role does not grant ``required``.

    Args:
        required (Role): The minimum role.
        methods (list[str] | None): Only check these HTTP methods; None checks all.

    Returns:
        Callable: A FastAPI dependency returning the caller's role.
    """
    checked_methods = {method.upper() for method in methods} if methods else None
    detail = f"{required.value.capitalize()} key required for this endpoint"

    async def _check_role(request: Request, role: Role = Depends(resolve_role)) -> Role:
        if checked_methods is not None and request.method.upper() not in checked_methods:
            return role
        if not role.grants(required):
            raise HTTPException(status_code=403, detail=detail)
        return role

    return _check_role


def require_writer(methods: list[str] | None = None):
    """Restrict mutating operations to writer keys (403 for readers)."""
    return require_role(Role.WRITER, methods=methods)
