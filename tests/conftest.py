"""Shared test fixtures for Connect-Engine."""

import pytest
from httpx import ASGITransport, AsyncClient

from connect_engine.verification.schemas import RequestContext
from connect_engine.verification.tokens import encode_token
from connect_engine.webhooks.schemas import WebhookConfiguration, WebhookDefinition

ADDON_KEY = "test-addon"
BASE_URL = "https://addon.example.com"
TENANT_KEY = "T1"
SHARED_SECRET = "S1-shared-secret-for-tests"


class RecordingHandler:
    """Async webhook handler that remembers every event it was given."""

    def __init__(self, result=True, error: Exception | None = None):
        self.result = result
        self.error = error
        self.events = []

    async def __call__(self, event):
        self.events.append(event)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def handlers():
    return {
        "jira:issue_created": RecordingHandler(),
        "jira:issue_updated": RecordingHandler(result=False),
        "jira:issue_deleted": RecordingHandler(error=RuntimeError("boom")),
    }


@pytest.fixture
def webhook_configs(handlers):
    return [
        WebhookConfiguration(definition=WebhookDefinition(event=name), handler=handler)
        for name, handler in handlers.items()
    ]


def _configure_env(monkeypatch, **extra: str) -> None:
    monkeypatch.setenv("CONNECT_DB_URL", "sqlite+aiosqlite://")
    monkeypatch.setenv("CONNECT_ADDON_KEY", ADDON_KEY)
    monkeypatch.setenv("CONNECT_BASE_URL", BASE_URL)
    for name, value in extra.items():
        monkeypatch.setenv(name, value)

    # Clear caches and singletons so new env vars take effect
    from connect_engine.common.config import get_settings
    get_settings.cache_clear()

    from connect_engine.deps import reset_singletons
    reset_singletons()


@pytest.fixture
def app_env():
    return {}


@pytest.fixture
def app(webhook_configs, app_env, monkeypatch):
    """Create a test app with in-memory DB and the recording handlers."""
    _configure_env(monkeypatch, **app_env)

    from connect_engine.app import create_app
    return create_app(webhook_configs)


@pytest.fixture
async def client(app):
    # Manually init DB since ASGITransport doesn't run lifespan
    from connect_engine.deps import get_db
    db = get_db()
    await db.init()
    await db.create_all()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await db.close()


@pytest.fixture
def install_payload():
    return {
        "clientKey": TENANT_KEY,
        "sharedSecret": SHARED_SECRET,
        "baseUrl": "https://tenant-one.atlassian.net",
        "productType": "jira",
        "key": ADDON_KEY,
    }


@pytest.fixture
def sign():
    """Build an Authorization header the way the remote product signs requests."""

    def _sign(path: str, method: str = "POST", tenant_key: str = TENANT_KEY,
              secret: str = SHARED_SECRET, **kwargs):
        token = encode_token(
            tenant_key, secret, RequestContext(method=method, path=path), **kwargs
        )
        return {"Authorization": f"JWT {token}"}

    return _sign
