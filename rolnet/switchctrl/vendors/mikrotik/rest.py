"""MikroTik RouterOS REST API transport (RouterOS v7+)."""

from __future__ import annotations

import logging
from typing import Any

import requests

from rolnet.switchctrl.base.transport import DEFAULT_TIMEOUT, BaseTransport
from rolnet.switchctrl.exceptions import APIError, AuthenticationError

logger = logging.getLogger(__name__)


class MikroTikRESTTransport(BaseTransport):
    """HTTP REST transport using Basic Auth for RouterOS v7+.

    RouterOS maps PUT to "add", PATCH to "set" and DELETE to "remove" on the
    menu paths under ``/rest/``.
    """

    def __init__(
        self,
        host: str,
        username: str = "admin",
        password: str = "",
        port: int = 443,
        verify_ssl: bool = False,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        super().__init__(host, username, password, port, timeout)
        self.verify_ssl = verify_ssl
        self.base_url = f"https://{host}:{port}"
        self._session: requests.Session | None = None

    def connect(self) -> None:
        """Establish REST session with Basic Auth and verify the credentials."""
        session = requests.Session()
        session.verify = self.verify_ssl
        session.auth = (self.username, self.password)

        try:
            resp = session.get(f"{self.base_url}/rest/system/identity", timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            session.close()
            raise AuthenticationError(f"MikroTik REST authentication failed: {e}") from e

        self._session = session
        logger.info("MikroTik REST connected to %s", self.host)

    def disconnect(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def is_connected(self) -> bool:
        return self._session is not None

    def get(self, endpoint: str, params: dict[str, str] | None = None) -> Any:
        """GET a menu path, optionally filtered by property values."""
        return self._request("GET", endpoint, params=params)

    def put(self, endpoint: str, data: dict[str, Any]) -> Any:
        """Add an item to a menu path."""
        return self._request("PUT", endpoint, json=data)

    def patch(self, endpoint: str, item_id: str, data: dict[str, Any]) -> Any:
        """Set properties of an existing item."""
        return self._request("PATCH", f"{endpoint}/{item_id}", json=data)

    def delete(self, endpoint: str, item_id: str) -> None:
        self._request("DELETE", f"{endpoint}/{item_id}")

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        self.ensure_connected()
        assert self._session is not None
        url = f"{self.base_url}/rest/{endpoint}"
        try:
            resp = self._session.request(method, url, timeout=self.timeout, **kwargs)
            resp.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise APIError(f"{method} {endpoint} failed: {e}", status_code=status) from e
        except requests.RequestException as e:
            raise APIError(f"{method} {endpoint} failed: {e}") from e

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise APIError(f"{method} {endpoint} returned invalid JSON: {e}", status_code=resp.status_code) from e
