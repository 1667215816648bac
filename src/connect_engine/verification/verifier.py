"""Verification of inbound tenant-signed tokens."""

import hmac
import logging
import time
from typing import Any, Optional

from jose import JWTError, jwt
from jose.exceptions import JOSEError

from connect_engine.tenants.store import SHARED_SECRET_FIELD, TenantStore
from connect_engine.verification.schemas import (
    EXPIRED_TOKEN,
    INVALID_QSH,
    INVALID_SIGNATURE,
    MALFORMED_TOKEN,
    UNKNOWN_TENANT,
    VERIFIED,
    RequestContext,
    VerificationResult,
    VerifiedClaims,
)
from connect_engine.verification.tokens import (
    ALLOWED_ALGORITHMS,
    create_query_string_hash,
)

logger = logging.getLogger(__name__)

# Signature and expiry are checked here rather than inside jose so each
# failure maps to its own outcome code.
_DECODE_OPTIONS = {
    "verify_signature": True,
    "verify_aud": False,
    "verify_iat": False,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_sub": False,
    "verify_jti": False,
}


def _reject(code: str, message: str) -> VerificationResult:
    logger.info("Token rejected: %s (%s)", code, message, extra={"reason": code})
    return VerificationResult(False, code, message)


class TokenVerifier:
    """Checks a token against the claimed tenant's shared secret.

    verify() never raises for a rejected token; it returns a
    VerificationResult. StorageError from the tenant store does propagate.
    """

    def __init__(
        self,
        store: TenantStore,
        leeway: int = 180,
        skip_qsh_verification: bool = False,
    ):
        self.store = store
        self.leeway = leeway
        self.skip_qsh_verification = skip_qsh_verification

    async def verify(
        self,
        raw_token: str,
        request: Optional[RequestContext] = None,
    ) -> VerificationResult:
        # 1. Claimed tenant, unverified
        if not raw_token or not isinstance(raw_token, str):
            return _reject(MALFORMED_TOKEN, "Token is empty")
        try:
            header = jwt.get_unverified_header(raw_token)
            unverified = jwt.get_unverified_claims(raw_token)
        except JWTError as exc:
            return _reject(MALFORMED_TOKEN, f"Token could not be parsed: {exc}")

        tenant_key = unverified.get("iss")
        if not tenant_key or not isinstance(tenant_key, str):
            return _reject(MALFORMED_TOKEN, "Token has no issuer claim")

        # 2. Tenant lookup, fail closed
        record = await self.store.get(tenant_key)
        shared_secret = record.get(SHARED_SECRET_FIELD) if record else None
        if not shared_secret:
            return _reject(UNKNOWN_TENANT, f"No installation for tenant '{tenant_key}'")

        # 3. Signature with the declared algorithm
        algorithm = header.get("alg")
        if algorithm not in ALLOWED_ALGORITHMS:
            return _reject(INVALID_SIGNATURE, f"Algorithm {algorithm!r} is not accepted")
        try:
            claims = jwt.decode(
                raw_token,
                shared_secret,
                algorithms=[algorithm],
                options=_DECODE_OPTIONS,
            )
        except JOSEError as exc:
            # Covers secrets jose refuses to treat as HMAC keys (PEM, ssh-rsa)
            return _reject(INVALID_SIGNATURE, f"Signature verification failed: {exc}")

        # 4. Query string hash
        if self.skip_qsh_verification:
            logger.warning(
                "Query string hash verification is disabled; "
                "accepting token for tenant %s without request binding",
                tenant_key,
            )
        else:
            provided = claims.get("qsh")
            if request is None or not isinstance(provided, str):
                return _reject(INVALID_QSH, "Token is not bound to this request")
            expected = create_query_string_hash(request)
            if not hmac.compare_digest(provided, expected):
                return _reject(INVALID_QSH, "Query string hash does not match the request")

        # 5. Expiry with clock skew
        expires_at = claims.get("exp")
        if not isinstance(expires_at, (int, float)) or isinstance(expires_at, bool):
            return _reject(EXPIRED_TOKEN, "Token has no expiry")
        if time.time() > expires_at + self.leeway:
            return _reject(EXPIRED_TOKEN, "Token has expired")

        return VerificationResult(
            True,
            VERIFIED,
            "Token verified",
            claims=self._build_claims(raw_token, claims, record),
        )

    @staticmethod
    def _build_claims(
        raw_token: str, claims: dict[str, Any], record: dict[str, Any]
    ) -> VerifiedClaims:
        context = claims.get("context") if isinstance(claims.get("context"), dict) else None
        user_key = None
        if context and isinstance(context.get("user"), dict):
            user_key = context["user"].get("userKey")

        return VerifiedClaims(
            tenant_key=claims["iss"],
            token=raw_token,
            host_base_url=record.get("baseUrl") or "",
            user_account_id=claims.get("sub"),
            user_key=user_key,
            context=context,
            claims=dict(claims),
        )
