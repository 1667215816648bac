"""Install/uninstall handling for remote tenants."""

import logging
from typing import Any, Optional

from fastapi import FastAPI

from connect_engine.common.exceptions import MalformedRequestError
from connect_engine.tenants.store import TenantStore

logger = logging.getLogger(__name__)

INSTALLED_PATH = "/meta/installed"
UNINSTALLED_PATH = "/meta/uninstalled"
DESCRIPTOR_PATH = "/meta/descriptor"

# Set on app.state once the routes are mounted on that app.
LIFECYCLE_MOUNTED_FLAG = "connect_lifecycle_mounted"

# The remote product sends the tenant key as `clientKey`.
TENANT_KEY_FIELDS = ("clientKey", "tenantKey")


def extract_tenant_key(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    for field in TENANT_KEY_FIELDS:
        value = payload.get(field)
        if isinstance(value, str) and value:
            return value
    return None


class LifecycleManager:
    """Moves tenants between Uninstalled (no record) and Installed (record)."""

    def __init__(self, store: TenantStore, malformed_status: int = 400):
        self.store = store
        self.malformed_status = malformed_status

    def _require_tenant_key(self, payload: Any, action: str) -> str:
        tenant_key = extract_tenant_key(payload)
        if tenant_key is None:
            logger.warning("Rejected malformed %s payload: no tenant key", action)
            raise MalformedRequestError(
                f"Received malformed {action} payload",
                status_code=self.malformed_status,
            )
        return tenant_key

    async def install(self, payload: Any) -> str:
        """Store (or replace) the installation record. Returns the tenant key."""
        tenant_key = self._require_tenant_key(payload, "installation")
        previous = await self.store.get(tenant_key)
        await self.store.put(tenant_key, payload)
        if previous is None:
            logger.info("Tenant %s installed", tenant_key, extra={"tenant_key": tenant_key})
        else:
            logger.info("Tenant %s reinstalled; installation record replaced", tenant_key)
        return tenant_key

    async def uninstall(self, payload: Any) -> str:
        """Remove the installation record; unknown tenants are a no-op."""
        tenant_key = self._require_tenant_key(payload, "uninstallation")
        removed = await self.store.delete(tenant_key)
        if removed:
            logger.info("Tenant %s uninstalled", tenant_key)
        else:
            logger.info("Uninstall for unknown tenant %s ignored", tenant_key)
        return tenant_key

    async def get_shared_secret(self, tenant_key: str) -> Optional[str]:
        return await self.store.get_shared_secret(tenant_key)

    def descriptor_fragment(self) -> dict[str, Any]:
        return {
            "lifecycle": {
                "installed": INSTALLED_PATH,
                "uninstalled": UNINSTALLED_PATH,
            }
        }

    def add_lifecycle_endpoints(self, app: FastAPI, addon_path: str = "") -> bool:
        """Mount the lifecycle and descriptor routes on `app`.

        Returns False (and does nothing) if `app` already has them.
        """
        if getattr(app.state, LIFECYCLE_MOUNTED_FLAG, False):
            logger.warning("Lifecycle endpoints already registered; skipping")
            return False

        from connect_engine.lifecycle.router import create_lifecycle_router

        app.include_router(
            create_lifecycle_router(self),
            prefix=addon_path,
            tags=["lifecycle"],
        )
        setattr(app.state, LIFECYCLE_MOUNTED_FLAG, True)
        return True
