"""MangaDex provider - public JSON API at https://api.mangadex.org."""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field

from ..models import Author, ContentFilters, Manga, SearchResult
from ..services.content_filter import allowed_content_ratings
from .base import MangaProvider, ProviderConfig, ProviderId

logger = logging.getLogger(__name__)

SITE_URL = "https://mangadex.org"
API_BASE = "https://api.mangadex.org"
COVER_ART_BASE_URL = "https://uploads.mangadex.org/covers"

TITLE_URL_PATTERN = re.compile(r"title/([0-9a-f-]{6,})", re.I)

PREFERRED_LOCALES = ("en", "en-us", "en-gb")
NEW_TITLE_YEARS = 3
DEMOGRAPHICS = {"shounen", "shoujo", "seinen", "josei", "none"}


# -- response shapes ------------------------------------------------------

class _Relationship(BaseModel):
    id: str
    type: str
    attributes: Optional[dict[str, Any]] = None


class _TagAttributes(BaseModel):
    name: dict[str, str] = Field(default_factory=dict)


class _Tag(BaseModel):
    attributes: _TagAttributes = Field(default_factory=_TagAttributes)


class _MangaAttributes(BaseModel):
    title: dict[str, str] = Field(default_factory=dict)
    altTitles: list[dict[str, str]] = Field(default_factory=list)
    description: dict[str, str] = Field(default_factory=dict)
    status: Optional[str] = None
    year: Optional[int] = None
    contentRating: Optional[str] = None
    publicationDemographic: Optional[str] = None
    latestUploadedChapter: Optional[str] = None
    lastChapter: Optional[str] = None
    originalLanguage: Optional[str] = None
    tags: list[_Tag] = Field(default_factory=list)


class MangaDexManga(BaseModel):
    id: str
    attributes: _MangaAttributes
    relationships: list[_Relationship] = Field(default_factory=list)

    def localized_title(self) -> str:
        attrs = self.attributes
        return (
            preferred_text(attrs.title, PREFERRED_LOCALES)
            or next(
                (t for t in (preferred_text(r, PREFERRED_LOCALES) for r in attrs.altTitles) if t),
                None,
            )
            or preferred_text(attrs.title)
            or "Untitled series"
        )

    def cover_url(self) -> Optional[str]:
        for rel in self.relationships:
            if rel.type == "cover_art" and rel.attributes and rel.attributes.get("fileName"):
                return f"{COVER_ART_BASE_URL}/{self.id}/{rel.attributes['fileName']}.256.jpg"
        return None

    def people(self, kind: str) -> list[Author]:
        role = kind.capitalize()
        return [
            Author(name=rel.attributes["name"], id=rel.id, role=role)
            for rel in self.relationships
            if rel.type == kind and rel.attributes and rel.attributes.get("name")
        ]

    def to_result(self) -> SearchResult:
        return SearchResult(
            provider=ProviderId.MANGADEX.value,
            provider_id=self.id,
            title=self.localized_title(),
            type=_demographic_label(self.attributes.publicationDemographic),
            year=self.attributes.year,
            cover_image=self.cover_url(),
        )


class MangaCollection(BaseModel):
    data: list[MangaDexManga] = Field(default_factory=list)
    total: int = 0


class MangaEntity(BaseModel):
    data: MangaDexManga


def preferred_text(record: dict[str, str], locales: tuple[str, ...] = ()) -> Optional[str]:
    """Pick the first non-empty text in ``locales``, else any locale."""
    for locale in locales:
        value = record.get(locale) or record.get(locale.lower())
        if value and value.strip():
            return value.strip()
    if locales:
        return None
    return next((v.strip() for v in record.values() if v and v.strip()), None)


def _demographic_label(value: Optional[str]) -> Optional[str]:
    return value.capitalize() if value else None


def default_config(
    *,
    enabled: bool = True,
    api_base: str = API_BASE,
    polite_delay: float = 1.0,
) -> ProviderConfig:
    return ProviderConfig(
        id=ProviderId.MANGADEX,
        name="MangaDex",
        base_url=SITE_URL,
        api_base=api_base,
        enabled=enabled,
        polite_delay=polite_delay,
        id_url_pattern=TITLE_URL_PATTERN,
    )


class MangaDexProvider(MangaProvider):
    """MangaDex integration. No browse or trending windows upstream."""

    def _list_params(self, limit: int, filters: ContentFilters, **extra) -> dict:
        params = {
            "limit": limit,
            "includes[]": ["cover_art"],
            "contentRating[]": allowed_content_ratings(filters),
        }
        params.update(extra)
        return params

    async def _list(self, params: dict) -> list[SearchResult]:
        collection = await self._get("manga", MangaCollection, params=params)
        return [manga.to_result() for manga in collection.data]

    async def get_by_id(self, provider_id: str) -> Manga:
        logger.info("[MangaDex] Fetching manga %s", provider_id)
        entity = await self._get(
            f"manga/{provider_id}",
            MangaEntity,
            params={"includes[]": ["cover_art", "author", "artist"]},
        )
        manga = entity.data
        attrs = manga.attributes
        title = manga.localized_title()

        alt_titles = []
        for record in attrs.altTitles:
            alt = preferred_text(record, PREFERRED_LOCALES) or preferred_text(record)
            if alt and alt != title and alt not in alt_titles:
                alt_titles.append(alt)

        return Manga(
            provider=self.name,
            provider_id=manga.id,
            title=title,
            alternative_titles=alt_titles,
            description=preferred_text(attrs.description, PREFERRED_LOCALES) or preferred_text(attrs.description),
            type=_demographic_label(attrs.publicationDemographic),
            status=attrs.status.capitalize() if attrs.status else None,
            year=attrs.year,
            authors=manga.people("author"),
            artists=manga.people("artist"),
            tags=[t for t in (preferred_text(tag.attributes.name) for tag in attrs.tags) if t],
            latest_chapter=attrs.lastChapter or None,
            cover_image=manga.cover_url(),
            source_url=f"{SITE_URL}/title/{manga.id}",
        )

    async def search(
        self, query: str, *, limit: int, page: int, filters: ContentFilters
    ) -> list[SearchResult]:
        if not query.strip():
            return []
        logger.info("[MangaDex] Searching for %r (limit: %d, page: %d)", query, limit, page)
        params = self._list_params(
            limit,
            filters,
            title=query.strip(),
            offset=max(page - 1, 0) * limit,
            **{"order[relevance]": "desc"},
        )
        return await self._list(params)

    async def recently_updated(self, limit: int) -> list[SearchResult]:
        logger.info("[MangaDex] Fetching %d recently updated titles", limit)
        params = self._list_params(
            limit,
            ContentFilters(show_mature_content=True),
            hasAvailableChapters="true",
            **{"order[latestUploadedChapter]": "desc"},
        )
        return await self._list(params)

    async def demographic_highlights(
        self, demographic: str, limit: int, filters: ContentFilters
    ) -> list[SearchResult]:
        key = demographic.strip().lower()
        if key not in DEMOGRAPHICS:
            logger.warning("[MangaDex] Unknown demographic: %s", demographic)
            return []
        logger.info("[MangaDex] Fetching %s highlights (limit: %d)", key, limit)
        params = self._list_params(
            limit,
            filters,
            **{"publicationDemographic[]": [key], "order[followedCount]": "desc"},
        )
        return await self._list(params)

    async def popular_new_titles(self, limit: int, filters: ContentFilters) -> list[SearchResult]:
        logger.info("[MangaDex] Fetching popular new titles (limit: %d)", limit)
        since = datetime.now(timezone.utc) - timedelta(days=365 * NEW_TITLE_YEARS)
        params = self._list_params(
            limit,
            filters,
            createdAtSince=since.strftime("%Y-%m-%dT%H:%M:%S"),
            **{"order[followedCount]": "desc"},
        )
        return await self._list(params)
