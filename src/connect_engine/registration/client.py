"""
RegistrationClient: sync client for the remote product's plugin manager.

Registers or removes the add-on on a remote instance by pointing the
plugin manager at our descriptor URL. Authenticates with basic auth
(username + API token).
"""

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

PLUGINS_PATH = "/rest/plugins/1.0"
UPM_TOKEN_HEADER = "upm-token"
INSTALLED_MIME = "application/vnd.atl.plugins.installed+json"
INSTALL_URI_MIME = "application/vnd.atl.plugins.install.uri+json"


class RegistrationClient:
    def __init__(
        self,
        host: str,
        username: str,
        api_token: str,
        timeout: int = 30,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.host = host.rstrip("/")
        self.username = username
        self._http = httpx.Client(
            base_url=self.host + PLUGINS_PATH,
            auth=(username, api_token),
            timeout=timeout,
            transport=transport,
        )

    def _send(self, method: str, path: str, **kwargs: Any) -> Optional[httpx.Response]:
        """Issue a request; transport failures are logged and return None."""
        try:
            return self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("Plugin manager request %s %s failed: %s", method, path, e)
            return None

    def get_upm_token(self) -> Optional[str]:
        """Fetch the token the plugin manager requires before an install."""
        resp = self._send(
            "GET", "/",
            params={"os_authType": "basic"},
            headers={"Accept": INSTALLED_MIME},
        )
        if resp is None or not resp.is_success:
            return None
        return resp.headers.get(UPM_TOKEN_HEADER)

    def install_app(self, upm_token: str, descriptor_url: str, name: str) -> bool:
        """Ask the remote product to install the add-on from its descriptor URL."""
        resp = self._send(
            "POST", "/",
            params={"token": upm_token},
            json={"pluginUri": descriptor_url, "pluginName": name},
            headers={"Accept": "application/json", "Content-Type": INSTALL_URI_MIME},
        )
        if resp is None:
            return False
        if not resp.is_success:
            logger.warning(
                "Failed to install add-on on %s. Status: %s", self.host, resp.status_code
            )
            return False
        return True

    def remove_app(self, addon_key: str) -> bool:
        resp = self._send("DELETE", f"/{addon_key}-key", headers={"Accept": "application/json"})
        if resp is None:
            return False
        if not resp.is_success:
            logger.warning(
                "Failed to remove add-on %s from %s. Status: %s",
                addon_key, self.host, resp.status_code,
            )
            return False
        return True

    def is_installed(self, addon_key: str) -> Optional[bool]:
        """True/False when the plugin manager answers, None when it cannot be asked."""
        resp = self._send("GET", f"/{addon_key}-key", headers={"Accept": "application/json"})
        if resp is None:
            return None
        if resp.status_code == 404:
            return False
        if resp.is_success:
            return True
        logger.warning("Unexpected status %s checking add-on %s", resp.status_code, addon_key)
        return None

    def register(self, descriptor_url: str, name: str) -> bool:
        """Token + install in one step."""
        token = self.get_upm_token()
        if not token:
            logger.warning("No UPM token returned by %s; cannot install add-on", self.host)
            return False
        return self.install_app(token, descriptor_url, name)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "RegistrationClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
