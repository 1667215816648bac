"""Connect-Engine: lifecycle, signed-request verification and webhook dispatch for Connect add-ons."""

from connect_engine.app import create_app
from connect_engine.registration.client import RegistrationClient
from connect_engine.verification.schemas import RequestContext, VerificationResult, VerifiedClaims
from connect_engine.verification.tokens import create_query_string_hash, encode_token
from connect_engine.webhooks.schemas import WebhookConfiguration, WebhookDefinition, WebhookEvent

__all__ = [
    "create_app",
    "RegistrationClient",
    "RequestContext",
    "VerificationResult",
    "VerifiedClaims",
    "create_query_string_hash",
    "encode_token",
    "WebhookConfiguration",
    "WebhookDefinition",
    "WebhookEvent",
]
__version__ = "0.1.0"
