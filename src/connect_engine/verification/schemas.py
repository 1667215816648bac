"""Request-scoped types produced and consumed by the token verifier."""

from dataclasses import dataclass, field
from typing import Any, Optional

MALFORMED_TOKEN = "MALFORMED_TOKEN"
UNKNOWN_TENANT = "UNKNOWN_TENANT"
INVALID_SIGNATURE = "INVALID_SIGNATURE"
INVALID_QSH = "INVALID_QSH"
EXPIRED_TOKEN = "EXPIRED_TOKEN"
VERIFIED = "VERIFIED"


@dataclass(frozen=True)
class RequestContext:
    """The parts of an inbound request covered by the query string hash.

    `path` is relative to the add-on path; `query` keeps repeated parameters
    as separate pairs.
    """

    method: str
    path: str
    query: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class VerifiedClaims:
    """Identity established by a successfully verified token."""

    tenant_key: str
    token: str
    host_base_url: str = ""
    user_account_id: Optional[str] = None
    user_key: Optional[str] = None
    context: Optional[dict[str, Any]] = None
    claims: dict[str, Any] = field(default_factory=dict)


class VerificationResult:
    """Outcome of TokenVerifier.verify()."""

    __slots__ = ("valid", "code", "message", "claims")

    def __init__(
        self,
        valid: bool,
        code: str = "",
        message: str = "",
        claims: Optional[VerifiedClaims] = None,
    ):
        self.valid = valid
        self.code = code
        self.message = message
        self.claims = claims

    def __repr__(self) -> str:
        return f"VerificationResult(valid={self.valid!r}, code={self.code!r})"
