"""
Query string hash and token minting for the Connect signed-token scheme.

A query string hash (qsh) binds a token to one request:

    sha256_hex("{METHOD}&{canonical path}&{canonical query}")

- METHOD is upper-cased.
- The path is relative to the add-on base URL, starts with "/", has no
  trailing "/" (unless it is "/" itself) and has "&" escaped as "%26".
- The query drops the `jwt` parameter, percent-encodes names and values
  (RFC 3986), sorts by name, joins repeated values with "," after sorting
  them, and joins pairs with "&".
"""

import hashlib
import time
from typing import Any, Iterable, Optional
from urllib.parse import quote

from jose import jwt

from connect_engine.verification.schemas import RequestContext

ALLOWED_ALGORITHMS = frozenset({"HS256", "HS384", "HS512"})
DEFAULT_ALGORITHM = "HS256"
TOKEN_QUERY_PARAM = "jwt"


def _encode(value: str) -> str:
    return quote(value, safe="")


def canonical_method(method: str) -> str:
    return method.upper()


def canonical_path(path: str) -> str:
    if not path:
        return "/"
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"
    return path.replace("&", "%26")


def canonical_query(query: Iterable[tuple[str, str]]) -> str:
    grouped: dict[str, list[str]] = {}
    for name, value in query:
        if name == TOKEN_QUERY_PARAM:
            continue
        grouped.setdefault(_encode(name), []).append(_encode(value))

    parts = []
    for name in sorted(grouped):
        parts.append(f"{name}={','.join(sorted(grouped[name]))}")
    return "&".join(parts)


def canonical_request(request: RequestContext) -> str:
    return "&".join((
        canonical_method(request.method),
        canonical_path(request.path),
        canonical_query(request.query),
    ))


def create_query_string_hash(request: RequestContext) -> str:
    return hashlib.sha256(canonical_request(request).encode("utf-8")).hexdigest()


def encode_token(
    tenant_key: str,
    shared_secret: str,
    request: Optional[RequestContext] = None,
    ttl_seconds: int = 900,
    algorithm: str = DEFAULT_ALGORITHM,
    extra_claims: Optional[dict[str, Any]] = None,
    issued_at: Optional[int] = None,
) -> str:
    """
    Mint a signed token the way the remote product does.

    Args:
        tenant_key: Value of the `iss` claim
        shared_secret: The tenant's shared secret
        request: When given, a `qsh` claim is bound to this request
        ttl_seconds: Lifetime of the token
        algorithm: One of ALLOWED_ALGORITHMS
        extra_claims: Additional claims (`sub`, `context`, ...)
        issued_at: Override for `iat`, in epoch seconds

    Returns:
        Compact serialized token
    """
    if algorithm not in ALLOWED_ALGORITHMS:
        raise ValueError(f"Unsupported signing algorithm: {algorithm}")

    now = int(time.time()) if issued_at is None else issued_at
    claims: dict[str, Any] = {
        "iss": tenant_key,
        "iat": now,
        "exp": now + ttl_seconds,
    }
    if request is not None:
        claims["qsh"] = create_query_string_hash(request)
    if extra_claims:
        claims.update(extra_claims)
    return jwt.encode(claims, shared_secret, algorithm=algorithm)
