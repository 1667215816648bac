"""Dependency injection singletons for Connect-Engine."""

from connect_engine.common.config import get_settings
from connect_engine.common.database import DatabaseManager
from connect_engine.lifecycle.service import LifecycleManager
from connect_engine.tenants.store import TenantStore
from connect_engine.verification.verifier import TokenVerifier

_db: DatabaseManager | None = None
_store: TenantStore | None = None
_verifier: TokenVerifier | None = None
_lifecycle: LifecycleManager | None = None


def get_db() -> DatabaseManager:
    global _db
    if _db is None:
        _db = DatabaseManager(get_settings())
    return _db


def get_tenant_store() -> TenantStore:
    global _store
    if _store is None:
        _store = TenantStore(get_db(), namespace=get_settings().addon_key)
    return _store


def get_token_verifier() -> TokenVerifier:
    global _verifier
    if _verifier is None:
        settings = get_settings()
        _verifier = TokenVerifier(
            get_tenant_store(),
            leeway=settings.token_leeway,
            skip_qsh_verification=settings.skip_qsh_verification,
        )
    return _verifier


def get_lifecycle_manager() -> LifecycleManager:
    global _lifecycle
    if _lifecycle is None:
        _lifecycle = LifecycleManager(
            get_tenant_store(),
            malformed_status=get_settings().lifecycle_error_status,
        )
    return _lifecycle


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _db, _store, _verifier, _lifecycle
    _db = None
    _store = None
    _verifier = None
    _lifecycle = None
