"""
Authentication

Bearer tokens issued by the identity provider resolve to a Caller
(user id + role) through the API_TOKENS registry.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from fastapi import Depends, Request, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from internhub.config import API_TOKENS, parse_api_tokens
from internhub.errors import ForbiddenError
from internhub.models.user import Role
from internhub.services.events import RequestMeta

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)

_token_registry: Optional[Dict[str, Tuple[str, int]]] = None


@dataclass(frozen=True)
class Caller:
    """Authenticated identity of a request"""
    user_id: int
    role: Role


def get_token_registry() -> Dict[str, Tuple[str, int]]:
    """Get or parse the global token registry."""
    global _token_registry
    if _token_registry is None:
        _token_registry = parse_api_tokens(API_TOKENS)
        logger.info(f"Loaded {len(_token_registry)} API tokens")
    return _token_registry


def _unauthorized(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": {"code": code, "message": message, "details": None}},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Caller:
    """
    Resolve the bearer token to a Caller.

    Raises:
        HTTPException 401: Missing or unknown token
    """
    if credentials is None:
        raise _unauthorized("UNAUTHORIZED", "Authorization header missing")

    identity = get_token_registry().get(credentials.credentials)
    if identity is None:
        logger.warning(f"Invalid token attempt: {credentials.credentials[:6]}...")
        raise _unauthorized("UNAUTHORIZED", "Invalid or expired token")

    role, user_id = identity
    try:
        return Caller(user_id=user_id, role=Role(role))
    except ValueError:
        logger.error(f"Token registry entry has unknown role '{role}'")
        raise _unauthorized("UNAUTHORIZED", "Invalid or expired token")


def require_role(*roles: Role):
    """Dependency factory restricting an endpoint to the given roles."""

    async def dependency(caller: Caller = Depends(get_current_caller)) -> Caller:
        if caller.role not in roles:
            allowed = ", ".join(role.value for role in roles)
            raise ForbiddenError(f"This operation requires one of the roles: {allowed}")
        return caller

    return dependency


def request_meta(request: Request) -> RequestMeta:
    """Network details of the request for the audit trail."""
    forwarded = request.headers.get("x-forwarded-for")
    ip_address = forwarded.split(",")[0].strip() if forwarded else (request.client.host if request.client else None)
    return RequestMeta(ip_address=ip_address, user_agent=request.headers.get("user-agent"))
