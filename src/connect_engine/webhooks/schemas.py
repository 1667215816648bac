"""Webhook registration and dispatch types."""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from connect_engine.verification.schemas import VerifiedClaims

HANDLED = "HANDLED"
NOT_FOUND = "NOT_FOUND"
FAILED = "FAILED"
MALFORMED = "MALFORMED"

_STATUS_CODES = {
    HANDLED: 200,
    NOT_FOUND: 404,
    FAILED: 500,
    MALFORMED: 500,
}


class WebhookDefinition(BaseModel):
    """The webhook module entry published in the descriptor."""

    model_config = ConfigDict(populate_by_name=True)

    event: str = Field(..., min_length=1)
    url: Optional[str] = None
    key: Optional[str] = None
    description: Optional[str] = None
    exclude_body: Optional[bool] = Field(None, alias="excludeBody")
    filter: Optional[str] = None
    property_keys: Optional[list[str]] = Field(None, alias="propertyKeys")

    def to_module(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class WebhookEvent:
    """What a handler receives: the verbatim payload plus who sent it."""

    name: str
    payload: dict[str, Any]
    claims: VerifiedClaims


WebhookHandler = Callable[[WebhookEvent], Awaitable[Optional[bool]]]


@dataclass
class WebhookConfiguration:
    definition: WebhookDefinition
    handler: WebhookHandler


@dataclass(frozen=True)
class DispatchOutcome:
    code: str
    message: str
    event: Optional[str] = None

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self.code]

    @property
    def ok(self) -> bool:
        return self.code == HANDLED
