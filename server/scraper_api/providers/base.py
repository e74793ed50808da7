"""Provider descriptors and the interface every upstream integration implements."""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import UnsupportedOperationError, UpstreamPayloadError
from ..models import BrowseOptions, BrowsePage, ContentFilters, Manga, ProviderInfo, SearchResult
from ..services.http import PoliteFetcher

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

YEAR_PATTERN = re.compile(r"\b(?:19|20)\d{2}\b")


class ProviderId(str, Enum):
    """Supported upstream catalogs."""
    MANGAUPDATES = "mangaupdates"
    MANGADEX = "mangadex"

    @classmethod
    def parse(cls, value: str) -> Optional["ProviderId"]:
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class Timeframe(str, Enum):
    """Trending window selector."""
    WEEK = "7d"
    MONTH = "1m"
    QUARTER = "3m"
    MIXED = "mixed"


@dataclass(frozen=True)
class ProviderConfig:
    """Capability descriptor for one provider."""
    id: ProviderId
    name: str
    base_url: str
    api_base: str
    enabled: bool
    polite_delay: float
    id_url_pattern: Optional[re.Pattern] = None
    id_from_url: Optional[Callable[[str], str]] = None

    @property
    def requests_per_second(self) -> float:
        return round(1 / self.polite_delay, 3) if self.polite_delay > 0 else 0.0

    def extract_id(self, url: Optional[str]) -> Optional[str]:
        """Pull the canonical series id out of a provider URL, if it has one."""
        if not url or self.id_url_pattern is None:
            return None
        match = self.id_url_pattern.search(url)
        if not match:
            return None
        raw = match.group(1)
        return self.id_from_url(raw) if self.id_from_url else raw

    def info(self) -> ProviderInfo:
        return ProviderInfo(
            id=self.id.value,
            name=self.name,
            base_url=self.base_url,
            enabled=self.enabled,
            polite_delay=self.polite_delay,
            requests_per_second=self.requests_per_second,
        )


def parse_year(value) -> Optional[int]:
    """Parse a year out of free text ("2019", "2019-2021", 2019)."""
    if value is None:
        return None
    match = YEAR_PATTERN.search(str(value))
    return int(match.group(0)) if match else None


class MangaProvider:
    """Base class for upstream integrations.

    Subclasses override the operations their API supports; everything else
    raises ``UnsupportedOperationError``.
    """

    def __init__(self, config: ProviderConfig, fetcher: PoliteFetcher):
        self.config = config
        self.fetcher = fetcher

    @property
    def name(self) -> str:
        return self.config.id.value

    def _unsupported(self, operation: str) -> UnsupportedOperationError:
        return UnsupportedOperationError(self.name, operation)

    async def get_by_id(self, provider_id: str) -> Manga:
        raise self._unsupported("lookup by id")

    async def search(
        self, query: str, *, limit: int, page: int, filters: ContentFilters
    ) -> list[SearchResult]:
        raise self._unsupported("search")

    async def recently_updated(self, limit: int) -> list[SearchResult]:
        raise self._unsupported("recently updated")

    async def browse(self, options: BrowseOptions) -> BrowsePage:
        raise self._unsupported("browse")

    async def demographic_highlights(
        self, demographic: str, limit: int, filters: ContentFilters
    ) -> list[SearchResult]:
        raise self._unsupported("demographic highlights")

    async def popular_new_titles(self, limit: int, filters: ContentFilters) -> list[SearchResult]:
        raise self._unsupported("popular new titles")

    async def trending_by_language(
        self, language: str, limit: int, filters: ContentFilters, timeframe: Timeframe
    ) -> list[SearchResult]:
        raise self._unsupported("trending by language")

    # -- upstream helpers -------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self.config.api_base.rstrip('/')}/{path.lstrip('/')}"

    async def _get(self, path: str, model: type[M], params: Optional[dict] = None) -> M:
        text = await self.fetcher.fetch_text(
            self._url(path),
            params=params,
            polite_delay=self.config.polite_delay,
        )
        return self._parse(model, text)

    async def _post(self, path: str, model: type[M], body: dict) -> M:
        text = await self.fetcher.fetch_text(
            self._url(path),
            method="POST",
            json=body,
            headers={"Content-Type": "application/json"},
            polite_delay=self.config.polite_delay,
        )
        return self._parse(model, text)

    def _parse(self, model: type[M], text: str) -> M:
        try:
            return model.model_validate_json(text)
        except ValidationError as e:
            logger.error("[%s] Invalid %s payload: %s", self.name, model.__name__, e)
            raise UpstreamPayloadError(self.name, model.__name__) from e
