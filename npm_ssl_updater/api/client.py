"""HTTP client for the Nginx Proxy Manager administration API.

Covers the three calls the updater needs: token login, proxy host listing
and full proxy host replacement. Transport and HTTP errors are raised as
the matching ``ApiError`` subclass; a malformed address raises
``ConfigError``.
"""

from __future__ import annotations

from typing import Any

import httpx

from npm_ssl_updater.errors import (
    ApiError,
    AuthenticationError,
    ConfigError,
    ListingError,
    UpdateError,
)
from npm_ssl_updater.models.host import HostRecord

TOKENS_PATH = "/api/tokens"
PROXY_HOSTS_PATH = "/api/nginx/proxy-hosts"

DEFAULT_TIMEOUT = 30.0


def normalize_base_url(url: str) -> str:
    """Strip trailing slashes and default to ``http://`` when no scheme is given."""
    url = url.strip().rstrip("/")
    if "://" not in url:
        url = f"http://{url}"
    return url


def _error_message(resp: httpx.Response) -> str:
    """Prefer the API's ``{"error": {"message": ...}}`` body over the reason phrase."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
    return resp.reason_phrase or "request failed"


class ProxyManagerClient:
    """Synchronous client for one Nginx Proxy Manager instance.

    Parameters
    ----------
    base_url : str
        Address of the admin interface, e.g. ``http://localhost:81``.
    timeout : float
        Per-request timeout in seconds.
    transport : httpx.BaseTransport | None
        Optional transport override (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = normalize_base_url(base_url)
        self._token: str | None = None
        try:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=timeout,
                transport=transport,
                headers={"Accept": "application/json"},
            )
        except httpx.InvalidURL as e:
            raise ConfigError(f"Invalid host address {base_url!r}: {e}") from e

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ProxyManagerClient:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    @property
    def authenticated(self) -> bool:
        return self._token is not None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _auth_headers(self) -> dict[str, str]:
        if self._token is None:
            raise AuthenticationError("Not authenticated; call authenticate() first")
        return {"Authorization": f"Bearer {self._token}"}

    def _request(
        self,
        method: str,
        path: str,
        error_cls: type[ApiError],
        action: str,
        **kwargs: Any,
    ) -> Any:
        try:
            resp = self._client.request(method, path, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise error_cls(f"{action} failed: {e}") from e

        if resp.is_error:
            raise error_cls(f"{action} failed: {_error_message(resp)}", resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            raise error_cls(f"{action} failed: response is not JSON") from e

    # ------------------------------------------------------------------
    # API calls
    # ------------------------------------------------------------------

    def authenticate(self, identity: str, secret: str) -> str:
        """Log in and keep the bearer token for subsequent calls."""
        data = self._request(
            "POST",
            TOKENS_PATH,
            AuthenticationError,
            "Login",
            json={"identity": identity, "secret": secret},
        )
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise AuthenticationError("Login failed: no token in response")
        self._token = token
        return token

    def list_proxy_hosts(self) -> list[HostRecord]:
        """Return every proxy host, in the order the API lists them."""
        data = self._request(
            "GET",
            PROXY_HOSTS_PATH,
            ListingError,
            "Listing proxy hosts",
            headers=self._auth_headers(),
        )
        if not isinstance(data, list):
            raise ListingError("Listing proxy hosts failed: expected a JSON array")
        try:
            return [HostRecord.from_api(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise ListingError(f"Listing proxy hosts failed: malformed host entry ({e})") from e

    def update_proxy_host(self, host_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        """Replace a proxy host with *payload*. Returns the updated entry."""
        return self._request(
            "PUT",
            f"{PROXY_HOSTS_PATH}/{host_id}",
            UpdateError,
            f"Updating proxy host {host_id}",
            headers=self._auth_headers(),
            json=payload,
        )
