"""Exception hierarchy for npm-ssl-updater.

Fatal errors (configuration, authentication, listing) abort the run.
``UpdateError`` is recovered per host by the reconciliation driver.
"""

from __future__ import annotations


class UpdaterError(Exception):
    """Base class for all npm-ssl-updater errors."""


class ConfigError(UpdaterError):
    """Missing credentials or an unreadable policy file."""


class ApiError(UpdaterError):
    """An administration API call failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


class AuthenticationError(ApiError):
    """Login failed or a call was made without a token."""


class ListingError(ApiError):
    """The proxy host listing could not be fetched."""


class UpdateError(ApiError):
    """A single proxy host update was rejected."""
