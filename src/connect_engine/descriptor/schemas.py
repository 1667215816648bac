"""Pydantic schemas for the add-on descriptor document."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Vendor(BaseModel):
    name: str
    url: str = ""


class Authentication(BaseModel):
    type: str = "jwt"


class AddonDescriptor(BaseModel):
    """Identity part of the descriptor; lifecycle and modules come from fragments."""

    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(..., min_length=1)
    name: str
    description: str = ""
    vendor: Optional[Vendor] = None
    authentication: Authentication = Authentication()
    base_url: str = Field(..., alias="baseUrl")
    scopes: list[str] = ["read", "write"]
    enable_licensing: bool = Field(False, alias="enableLicensing")
    links: dict[str, str] = {}
    modules: dict[str, list[dict[str, Any]]] = {}

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
