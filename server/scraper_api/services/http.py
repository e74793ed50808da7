"""HTTP utilities with retry logic and polite per-host delays."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urlparse

import httpx

from ..errors import HttpError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Shujia/1.0 (+https://shujia.dev; Manga Tracker)"
DEFAULT_ACCEPT = "application/json,text/html;q=0.9,application/xhtml+xml;q=0.9,*/*;q=0.8"
DEFAULT_ACCEPT_LANGUAGE = "en-US,en;q=0.9"
DEFAULT_TIMEOUT = 30.0

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff. Delays are in seconds."""
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0

    def backoff(self, attempt: int) -> float:
        """Delay after the given (1-based) failed attempt."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a ``Retry-After`` header holding whole seconds.

    HTTP-date values and anything else unparseable return ``None``.
    """
    if value is None:
        return None
    try:
        seconds = int(value.strip())
    except ValueError:
        return None
    if seconds < 0:
        return None
    return float(seconds)


def get_origin(url: str) -> str:
    """Host part of a URL, used to key per-host politeness."""
    try:
        return urlparse(url).hostname or "unknown"
    except ValueError:
        return "unknown"


class RateGate:
    """Minimum spacing between requests to the same host.

    Each call reserves the next free slot for its host before sleeping, so
    concurrent callers queue up behind each other instead of all waking at
    once. Reserved instants per host never decrease.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        self._clock = clock
        self._sleep = sleep
        self._last_request: dict[str, float] = {}

    def last_request(self, origin: str) -> Optional[float]:
        return self._last_request.get(origin)

    async def wait(self, origin: str, delay: float) -> float:
        """Sleep until ``origin`` may be hit again; returns the reserved instant."""
        # No await between the read and the write below.
        now = self._clock()
        last = self._last_request.get(origin)
        slot = now if last is None else max(now, last + delay)
        self._last_request[origin] = slot

        wait_for = slot - now
        if wait_for > 0:
            logger.info("Polite delay: waiting %.0fms for %s", wait_for * 1000, origin)
            try:
                await self._sleep(wait_for)
            except asyncio.CancelledError:
                # Hand the slot back unless a later caller already queued behind it
                if self._last_request.get(origin) == slot:
                    if last is None:
                        del self._last_request[origin]
                    else:
                        self._last_request[origin] = last
                raise
        return slot


class PoliteFetcher:
    """Outbound HTTP with per-host spacing, retries and fixed identification.

    4xx responses other than 429 fail straight away. 429, 5xx, timeouts and
    connection errors are retried up to ``retry.max_attempts`` times, waiting
    for ``Retry-After`` when the upstream sends one and exponential backoff
    otherwise.
    """

    def __init__(
        self,
        *,
        client: Optional[httpx.AsyncClient] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT,
        polite_delay: float = 1.0,
        retry: Optional[RetryPolicy] = None,
        rate_gate: Optional[RateGate] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=True)
        self.timeout = timeout
        self.polite_delay = polite_delay
        self.retry = retry or RetryPolicy()
        self.rate_gate = rate_gate or RateGate(sleep=sleep)
        self._sleep = sleep
        self.headers = {
            "User-Agent": user_agent,
            "Accept": DEFAULT_ACCEPT,
            "Accept-Language": DEFAULT_ACCEPT_LANGUAGE,
        }

    @classmethod
    def from_settings(cls, settings, client: Optional[httpx.AsyncClient] = None) -> "PoliteFetcher":
        return cls(
            client=client,
            user_agent=settings.user_agent,
            timeout=settings.request_timeout,
            polite_delay=settings.polite_delay,
            retry=RetryPolicy(
                max_attempts=settings.retry_max_attempts,
                base_delay=settings.retry_base_delay,
                max_delay=settings.retry_max_delay,
            ),
        )

    async def fetch_text(
        self,
        url: str,
        *,
        method: str = "GET",
        params: Optional[dict] = None,
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
        polite_delay: Optional[float] = None,
        retry: Optional[RetryPolicy] = None,
    ) -> str:
        """Fetch ``url`` and return the response body as text."""
        policy = retry or self.retry
        delay = self.polite_delay if polite_delay is None else polite_delay
        origin = get_origin(url)
        request_headers = {**self.headers, **(headers or {})}

        last_status: Optional[int] = None
        last_error: Optional[Exception] = None

        for attempt in range(1, policy.max_attempts + 1):
            await self.rate_gate.wait(origin, delay)
            logger.debug("%s %s (attempt %d/%d)", method, url, attempt, policy.max_attempts)

            retry_after: Optional[float] = None
            try:
                response = await self._client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=request_headers,
                    timeout=self.timeout,
                )
            except httpx.TransportError as e:
                last_status, last_error = None, e
                logger.warning("%s %s failed: %s", method, url, e.__class__.__name__)
            else:
                if response.is_success:
                    return response.text

                status = response.status_code
                if status != 429 and status < 500:
                    logger.error("Client error %d for %s, not retrying", status, url)
                    raise HttpError(f"Upstream returned {status}", status=status, url=url)

                last_status, last_error = status, None
                retry_after = parse_retry_after(response.headers.get("retry-after"))

            if attempt >= policy.max_attempts:
                break

            wait_for = retry_after if retry_after is not None else policy.backoff(attempt)
            logger.warning(
                "Request failed (status=%s, attempt %d/%d), retrying in %.0fms",
                last_status, attempt, policy.max_attempts, wait_for * 1000,
            )
            await self._sleep(wait_for)

        logger.error("All retry attempts failed for %s", url)
        message = f"Upstream returned {last_status}" if last_status else "Upstream request failed"
        raise HttpError(message, status=last_status, url=url) from last_error

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
