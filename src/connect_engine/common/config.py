"""Connect-Engine configuration via pydantic-settings."""

import warnings
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class ConnectSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CONNECT_")

    environment: str = "development"
    log_level: str = "INFO"

    # Add-on identity (feeds the descriptor)
    addon_key: str = "connect-engine-addon"
    addon_name: str = "Connect-Engine Add-on"
    addon_description: str = "An add-on served by Connect-Engine"
    vendor_name: str = ""
    vendor_url: str = ""
    base_url: str = "http://localhost:8080"
    addon_path: str = ""
    authentication_type: str = "jwt"
    scopes: list[str] = ["read", "write"]
    enable_licensing: bool = False

    # Database; tenant records are namespaced by addon_key
    db_url: str = "sqlite+aiosqlite:///./data/addon.db"

    # Token verification
    token_leeway: int = 180  # seconds of clock skew tolerated on exp
    max_token_age: int = 900  # default lifetime of tokens we mint
    skip_qsh_verification: bool = False

    # HTTP status for malformed install/uninstall payloads
    lifecycle_error_status: int = 400

    # API
    api_title: str = "Connect-Engine"
    api_version: str = "0.1.0"
    host: str = "0.0.0.0"
    port: int = 8080

    # Remote product (registration client)
    product_host: Optional[str] = None
    product_username: Optional[str] = None
    product_api_token: Optional[str] = None

    @property
    def addon_base_url(self) -> str:
        """Base URL published in the descriptor: base_url + addon_path."""
        return self.base_url.rstrip("/") + self.normalized_addon_path

    @property
    def normalized_addon_path(self) -> str:
        path = self.addon_path.strip()
        if not path or path == "/":
            return ""
        return "/" + path.strip("/")

    @property
    def descriptor_url(self) -> str:
        return f"{self.addon_base_url}/meta/descriptor"

    def validate_for_production(self) -> None:
        """Raise if insecure settings are used in non-development environments."""
        problems = []
        if not self.base_url.startswith("https://"):
            problems.append("CONNECT_BASE_URL must use https")
        if self.skip_qsh_verification:
            problems.append("CONNECT_SKIP_QSH_VERIFICATION must be false")

        if self.environment != "development" and problems:
            raise RuntimeError(
                f"Insecure configuration detected in '{self.environment}' environment: "
                + "; ".join(problems)
            )

        if problems:
            warnings.warn(
                "Insecure add-on configuration (" + "; ".join(problems) + ") "
                "is acceptable for local development only",
                UserWarning,
                stacklevel=2,
            )


@lru_cache
def get_settings() -> ConnectSettings:
    settings = ConnectSettings()
    settings.validate_for_production()
    return settings
