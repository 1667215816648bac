"""Template parameters for pages rendered inside the remote product.

Verified token claims are authoritative; URL parameters (then POST body
fields) are only used for what the token does not carry (license status,
legacy locale hints).
"""

import json
import logging
from typing import Any, Optional
from urllib.parse import urlsplit

from fastapi import Depends, Request

from connect_engine.common.config import ConnectSettings
from connect_engine.common.security import require_signed_request
from connect_engine.verification.schemas import VerifiedClaims

logger = logging.getLogger(__name__)

HOST_SCRIPT_URL = "https://connect-cdn.atl-paas.net/all.js"
DEPRECATED_PARAMS = ("tz", "loc", "user_id")


def host_resource_url(host_base_url: str, ext: str, environment: str) -> str:
    resource = f"all-debug.{ext}" if environment == "development" else f"all.{ext}"
    return f"{host_base_url}/atlassian-connect/{resource}"


def extract_host(uri: str) -> str:
    """Scheme and authority of a URL, without its path."""
    parts = urlsplit(uri)
    if not parts.netloc:
        return uri.split("/", 1)[0]
    return f"{parts.scheme}://{parts.netloc}" if parts.scheme else parts.netloc


def _param(request: Request, body: dict[str, Any], key: str) -> Optional[str]:
    value = request.query_params.get(key)
    if value is None:
        value = body.get(key)
    return value


def build_context_params(
    request: Request,
    settings: ConnectSettings,
    claims: Optional[VerifiedClaims] = None,
    body: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    body = body or {}
    host_url = _param(request, body, "xdm_e")
    params: dict[str, Any] = {
        "title": settings.addon_name,
        "addonKey": settings.addon_key,
        "localBaseUrl": settings.addon_base_url,
        "license": _param(request, body, "lic"),
        "clientKey": "",
        "token": "",
        "hostBaseUrl": (host_url + (_param(request, body, "cp") or "")) if host_url else "",
    }

    deprecated = {
        "timezone": _param(request, body, "tz"),
        "locale": _param(request, body, "loc"),
        "userId": _param(request, body, "user_id"),
    }
    if any(deprecated.values()):
        logger.info(
            "Context parameters %s are deprecated and will be removed by the host product",
            ", ".join(DEPRECATED_PARAMS),
        )
    params.update({k: v for k, v in deprecated.items() if v})

    if claims is not None:
        if claims.user_key:
            params["userId"] = claims.user_key
        params["userAccountId"] = claims.user_account_id
        params["clientKey"] = claims.tenant_key
        params["hostBaseUrl"] = claims.host_base_url
        params["token"] = claims.token
        if claims.context:
            params["context"] = claims.context

    params["hostUrl"] = extract_host(params["hostBaseUrl"])
    params["hostStylesheetUrl"] = host_resource_url(
        params["hostBaseUrl"], "css", settings.environment
    )
    params["hostScriptUrl"] = HOST_SCRIPT_URL
    return params


FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def request_body_params(request: Request) -> dict[str, Any]:
    """String fields of a form or JSON object body; empty for anything else."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        return {k: v for k, v in form.items() if isinstance(v, str)}
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return {}
        return body if isinstance(body, dict) else {}
    return {}


async def get_context_params(
    request: Request,
    claims: VerifiedClaims = Depends(require_signed_request),
) -> dict[str, Any]:
    """FastAPI dependency for host routes that render add-on pages."""
    from connect_engine.common.config import get_settings

    body = await request_body_params(request)
    return build_context_params(request, get_settings(), claims, body)
