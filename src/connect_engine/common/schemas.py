"""Shared Pydantic schemas for Connect-Engine."""

from typing import Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    service: str = "connect-engine"


class StatusResponse(BaseModel):
    """The `{code, msg}` body returned by every lifecycle and webhook route."""

    code: int
    msg: str
    reason: Optional[str] = None
