"""MangaUpdates provider - uses the official MangaUpdates API.

API documentation: https://api.mangaupdates.com/v1/docs

Series lookup is a GET; search, browse and the ranked listings all go
through ``POST /series/search`` with a JSON body.
"""

import asyncio
import logging
import math
import re
from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, Field

from ..models import (
    Author,
    BrowseOptions,
    BrowsePage,
    ContentFilters,
    Manga,
    PartialResults,
    Rating,
    SearchResult,
)
from ..services.content_filter import excluded_genres, trending_excluded_genres
from .base import MangaProvider, ProviderConfig, ProviderId, Timeframe, parse_year

logger = logging.getLogger(__name__)

SITE_URL = "https://www.mangaupdates.com"
API_BASE = "https://api.mangaupdates.com/v1"

# New-style series URLs carry the id in base 36: /series/<id36>/<slug>
SERIES_URL_PATTERN = re.compile(r"mangaupdates\.com/series/([0-9a-z]+)", re.I)

LANGUAGE_TYPES = {
    "ja": "Manga",
    "ko": "Manhwa",
    "zh": "Manhua",
}

# (orderby, weight) per trending window; heavier windows rank first
TIMEFRAME_ORDERINGS = {
    Timeframe.WEEK: [("week_pos", 1)],
    Timeframe.MONTH: [("month1_pos", 1)],
    Timeframe.QUARTER: [("month3_pos", 1)],
    Timeframe.MIXED: [
        ("week_pos", 3),
        ("month1_pos", 2),
        ("month3_pos", 1),
    ],
}

RECENT_YEARS = 5
NEW_TITLE_YEARS = 3


# -- response shapes ------------------------------------------------------

class _ImageUrls(BaseModel):
    original: Optional[str] = None
    thumb: Optional[str] = None


class _Image(BaseModel):
    url: Optional[_ImageUrls] = None

    @property
    def best(self) -> Optional[str]:
        if self.url is None:
            return None
        return self.url.original or self.url.thumb


class _Associated(BaseModel):
    title: Optional[str] = None


class _Author(BaseModel):
    name: str
    author_id: Optional[int] = None
    type: Optional[str] = None


class _Genre(BaseModel):
    genre: Optional[str] = None


class _Category(BaseModel):
    category: Optional[str] = None


class SeriesRecord(BaseModel):
    series_id: int
    title: str
    url: Optional[str] = None
    type: Optional[str] = None
    year: Optional[Union[str, int]] = None
    image: Optional[_Image] = None

    def to_result(self, match_score: Optional[float] = None) -> SearchResult:
        return SearchResult(
            provider=ProviderId.MANGAUPDATES.value,
            provider_id=str(self.series_id),
            title=self.title,
            type=self.type,
            year=parse_year(self.year),
            cover_image=self.image.best if self.image else None,
            match_score=match_score,
        )


class Series(SeriesRecord):
    associated: list[_Associated] = Field(default_factory=list)
    description: Optional[str] = None
    completed: Optional[bool] = None
    authors: list[_Author] = Field(default_factory=list)
    genres: list[_Genre] = Field(default_factory=list)
    categories: list[_Category] = Field(default_factory=list)
    bayesian_rating: Optional[float] = None
    rating_votes: Optional[int] = None
    latest_chapter: Optional[Union[int, str]] = None


class _SearchHit(BaseModel):
    record: SeriesRecord
    hit_title: Optional[str] = None


class SeriesSearchResponse(BaseModel):
    total_hits: int = 0
    results: list[_SearchHit] = Field(default_factory=list)


class _ReleaseRecord(BaseModel):
    series: Optional[SeriesRecord] = None


class _ReleaseHit(BaseModel):
    record: _ReleaseRecord


class ReleaseSearchResponse(BaseModel):
    results: list[_ReleaseHit] = Field(default_factory=list)


def series_id_from_url(raw: str) -> str:
    return str(int(raw, 36))


def default_config(
    *,
    enabled: bool = True,
    api_base: str = API_BASE,
    polite_delay: float = 2.0,
) -> ProviderConfig:
    return ProviderConfig(
        id=ProviderId.MANGAUPDATES,
        name="MangaUpdates",
        base_url=SITE_URL,
        api_base=api_base,
        enabled=enabled,
        polite_delay=polite_delay,
        id_url_pattern=SERIES_URL_PATTERN,
        id_from_url=series_id_from_url,
    )


class MangaUpdatesProvider(MangaProvider):
    """MangaUpdates integration (0.5 req/s by default)."""

    async def get_by_id(self, provider_id: str) -> Manga:
        logger.info("[MangaUpdates] Fetching series %s", provider_id)
        series = await self._get(f"series/{provider_id}", Series)

        title = series.title or "Unknown Title"
        people = [
            Author(name=a.name, id=str(a.author_id or ""), role=a.type)
            for a in series.authors
        ]
        rating = None
        if series.bayesian_rating or series.rating_votes:
            rating = Rating(bayesian=series.bayesian_rating, votes=series.rating_votes)

        return Manga(
            provider=self.name,
            provider_id=str(series.series_id),
            title=title,
            alternative_titles=[
                a.title for a in series.associated if a.title and a.title != title
            ],
            description=series.description,
            type=series.type,
            status="Completed" if series.completed else "Ongoing",
            year=parse_year(series.year),
            authors=[p for p in people if p.role == "Author"],
            artists=[p for p in people if p.role == "Artist"],
            genres=[g.genre for g in series.genres if g.genre],
            tags=[c.category for c in series.categories if c.category],
            rating=rating,
            latest_chapter=str(series.latest_chapter) if series.latest_chapter else None,
            cover_image=series.image.best if series.image else None,
            source_url=series.url or f"{SITE_URL}/series/{provider_id}",
        )

    async def search(
        self, query: str, *, limit: int, page: int, filters: ContentFilters
    ) -> list[SearchResult]:
        logger.info("[MangaUpdates] Searching for %r (limit: %d, page: %d)", query, limit, page)
        body = self._with_filters(
            {"search": query, "stype": "title", "perpage": limit, "page": page},
            excluded_genres(filters),
        )
        response = await self._post("series/search", SeriesSearchResponse, body)
        return [
            hit.record.to_result(match_score=self._match_score(hit))
            for hit in response.results
        ]

    async def recently_updated(self, limit: int) -> list[SearchResult]:
        logger.info("[MangaUpdates] Fetching %d recently updated series", limit)
        response = await self._post(
            "releases/search",
            ReleaseSearchResponse,
            {"perpage": limit, "page": 1, "include_metadata": True},
        )

        # One release per chapter; keep the first per series
        seen: set[str] = set()
        results = []
        for hit in response.results:
            series = hit.record.series
            if series is None:
                continue
            result = series.to_result()
            if result.provider_id in seen:
                continue
            seen.add(result.provider_id)
            results.append(result)
        return results

    async def browse(self, options: BrowseOptions) -> BrowsePage:
        logger.info("[MangaUpdates] Browsing (limit: %d, page: %d)", options.limit, options.page)
        body: dict = {"perpage": options.limit, "page": options.page}
        if options.types:
            body["type"] = options.types
        if options.genres:
            body["genre"] = options.genres
        if options.orderby:
            body["orderby"] = options.orderby

        response = await self._post(
            "series/search",
            SeriesSearchResponse,
            self._with_filters(body, excluded_genres(options.filters)),
        )
        return BrowsePage(
            items=[hit.record.to_result() for hit in response.results],
            total=response.total_hits,
        )

    async def demographic_highlights(
        self, demographic: str, limit: int, filters: ContentFilters
    ) -> list[SearchResult]:
        logger.info("[MangaUpdates] Fetching %s highlights (limit: %d)", demographic, limit)
        body = self._with_filters(
            {"type": [demographic], "perpage": limit, "page": 1, "orderby": "rating"},
            excluded_genres(filters),
        )
        response = await self._post("series/search", SeriesSearchResponse, body)
        return [hit.record.to_result() for hit in response.results]

    async def popular_new_titles(self, limit: int, filters: ContentFilters) -> list[SearchResult]:
        """What is popular this month among titles from the last few years."""
        logger.info("[MangaUpdates] Fetching popular new titles (limit: %d)", limit)
        start_year = datetime.now().year - NEW_TITLE_YEARS

        # Over-fetch, the year filter drops most rows
        body = self._with_filters(
            {"perpage": limit * 3, "page": 1, "orderby": "month1_pos"},
            excluded_genres(filters),
        )
        response = await self._post("series/search", SeriesSearchResponse, body)

        results = [hit.record.to_result() for hit in response.results]
        return [r for r in results if r.year is not None and r.year >= start_year][:limit]

    async def trending_by_language(
        self, language: str, limit: int, filters: ContentFilters, timeframe: Timeframe
    ) -> list[SearchResult]:
        """Trending titles for an original language, ranked across windows.

        Each window is a separate ranked query. Titles from the last few
        years go first, then heavier (shorter) windows; duplicates keep
        their best-ranked occurrence.
        """
        series_type = LANGUAGE_TYPES.get(language.lower())
        if series_type is None:
            logger.warning("[MangaUpdates] Unknown language code: %s", language)
            return []

        logger.info("[MangaUpdates] Fetching trending %s [%s] (limit: %d)", series_type, timeframe.value, limit)
        recent_threshold = datetime.now().year - RECENT_YEARS
        genres = trending_excluded_genres(filters)
        per_window = math.ceil(limit / 2)

        async def fetch_window(orderby: str, weight: int) -> Optional[list[tuple[SearchResult, int]]]:
            body = self._with_filters(
                {"type": [series_type], "perpage": per_window, "page": 1, "orderby": orderby},
                genres,
            )
            try:
                response = await self._post("series/search", SeriesSearchResponse, body)
            except Exception as e:
                logger.warning("[MangaUpdates] Trending window %s failed: %s", orderby, e)
                return None
            return [(hit.record.to_result(), weight) for hit in response.results]

        orderings = TIMEFRAME_ORDERINGS[timeframe]
        fetched = await asyncio.gather(*(fetch_window(orderby, weight) for orderby, weight in orderings))
        windows = [rows for rows in fetched if rows is not None]
        failed = [orderby for (orderby, _), rows in zip(orderings, fetched) if rows is None]

        ranked = rank_trending([row for window in windows for row in window], recent_threshold, limit)
        logger.info(
            "[MangaUpdates] Trending %s: %d unique results from %d total",
            series_type, len(ranked), sum(len(w) for w in windows),
        )
        return PartialResults(ranked, failed) if failed else ranked

    @staticmethod
    def _with_filters(body: dict, excluded: list[str]) -> dict:
        if excluded:
            body["exclude_genre"] = excluded
        return body

    @staticmethod
    def _match_score(hit: _SearchHit) -> float:
        if hit.hit_title and hit.hit_title.strip().lower() == hit.record.title.strip().lower():
            return 1.0
        return 0.5


def rank_trending(
    rows: list[tuple[SearchResult, int]], recent_threshold: int, limit: int
) -> list[SearchResult]:
    """Order weighted rows (recent first, then weight), dedupe by id, cap."""

    def sort_key(row: tuple[SearchResult, int]) -> tuple[bool, int]:
        result, weight = row
        is_recent = result.year is not None and result.year >= recent_threshold
        return (not is_recent, -weight)

    seen: set[str] = set()
    ranked: list[SearchResult] = []
    for result, _ in sorted(rows, key=sort_key):
        if result.provider_id in seen:
            continue
        seen.add(result.provider_id)
        ranked.append(result)
        if len(ranked) >= limit:
            break
    return ranked
