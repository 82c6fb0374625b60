"""Client for the Nginx Proxy Manager administration API."""

from npm_ssl_updater.api.client import ProxyManagerClient

__all__ = ["ProxyManagerClient"]
