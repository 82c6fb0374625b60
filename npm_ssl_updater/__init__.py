"""npm-ssl-updater — bulk hardening of Nginx Proxy Manager proxy hosts.

Forces SSL, HTTP/2 and HSTS on every proxy host and optionally enables
exploit blocking, asset caching and websocket upgrades, showing a diff and
asking for confirmation before each change.
"""

__version__ = "1.0.0"
