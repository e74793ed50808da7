"""Exceptions raised by the cache, fetcher and provider layers."""

from typing import Optional


class ScraperError(Exception):
    """Base class for every error raised by the scraper service."""


class HttpError(ScraperError):
    """An outbound request failed and will not be retried any further.

    ``status`` is ``None`` when no response was received at all (DNS,
    connection reset, timeout).
    """

    def __init__(self, message: str, status: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.url = url

    @property
    def is_not_found(self) -> bool:
        return self.status == 404


class ProviderUnavailableError(ScraperError):
    """Provider is unknown or disabled."""

    def __init__(self, provider: str):
        super().__init__(f"Provider '{provider}' is not available")
        self.provider = provider


class UnsupportedOperationError(ScraperError):
    """Provider is registered but does not implement the operation."""

    def __init__(self, provider: str, operation: str):
        super().__init__(f"Provider '{provider}' does not support {operation}")
        self.provider = provider
        self.operation = operation


class UpstreamPayloadError(ScraperError):
    """Upstream answered 2xx with a body we could not validate."""

    def __init__(self, provider: str, detail: str):
        super().__init__(f"Unexpected response from {provider}: {detail}")
        self.provider = provider
