"""Signed-request authentication dependency."""

from typing import Optional

from fastapi import Request

from connect_engine.common.exceptions import AuthenticationError
from connect_engine.verification.schemas import (
    MALFORMED_TOKEN,
    RequestContext,
    VerifiedClaims,
)
from connect_engine.verification.tokens import TOKEN_QUERY_PARAM

_AUTH_SCHEMES = ("jwt", "bearer")


def extract_token(request: Request) -> Optional[str]:
    """Read the token from the Authorization header or the `jwt` query param."""
    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() in _AUTH_SCHEMES and credentials.strip():
        return credentials.strip()
    return request.query_params.get(TOKEN_QUERY_PARAM) or None


def request_context(request: Request, addon_path: str = "") -> RequestContext:
    """Describe a request relative to the add-on path for qsh checks."""
    path = request.url.path
    if addon_path and (path == addon_path or path.startswith(addon_path + "/")):
        path = path[len(addon_path):]
    return RequestContext(
        method=request.method,
        path=path,
        query=tuple(request.query_params.multi_items()),
    )


async def require_signed_request(request: Request) -> VerifiedClaims:
    """FastAPI dependency that admits only requests signed by an installed tenant."""
    from connect_engine.common.config import get_settings
    from connect_engine.deps import get_token_verifier

    token = extract_token(request)
    if not token:
        raise AuthenticationError("Missing signed token", reason=MALFORMED_TOKEN)

    settings = get_settings()
    result = await get_token_verifier().verify(
        token, request_context(request, settings.normalized_addon_path)
    )
    if not result.valid:
        raise AuthenticationError(result.message, reason=result.code)
    return result.claims
