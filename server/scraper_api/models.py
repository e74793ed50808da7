"""Normalized manga data structures shared by every provider."""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model serialised with camelCase keys for the web client."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ContentFilters(ApiModel):
    """User content preferences, least to most explicit."""
    show_mature_content: bool = False
    show_explicit_content: bool = False
    show_pornographic_content: bool = False

    @classmethod
    def allow_all(cls) -> "ContentFilters":
        return cls(
            show_mature_content=True,
            show_explicit_content=True,
            show_pornographic_content=True,
        )

    def key_parts(self) -> tuple[bool, bool, bool]:
        return (
            self.show_mature_content,
            self.show_explicit_content,
            self.show_pornographic_content,
        )


class Author(ApiModel):
    name: str
    id: Optional[str] = None
    role: Optional[str] = None


class Rating(ApiModel):
    average: Optional[float] = None
    bayesian: Optional[float] = None
    votes: Optional[int] = None


class SearchResult(ApiModel):
    """One row of a list-shaped lookup (search, browse, trending...)."""
    provider: str
    provider_id: str
    title: str
    type: Optional[str] = None
    year: Optional[int] = None
    cover_image: Optional[str] = None
    match_score: Optional[float] = None


class Manga(ApiModel):
    """Full detail record for a single series."""
    provider: str
    provider_id: str
    title: str
    alternative_titles: list[str] = Field(default_factory=list)
    description: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None
    year: Optional[int] = None
    authors: list[Author] = Field(default_factory=list)
    artists: list[Author] = Field(default_factory=list)
    genres: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    rating: Optional[Rating] = None
    latest_chapter: Optional[str] = None
    cover_image: Optional[str] = None
    source_url: str
    scraped_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class BrowseOptions(ApiModel):
    limit: int = 30
    page: int = 1
    types: list[str] = Field(default_factory=list)
    genres: list[str] = Field(default_factory=list)
    orderby: Optional[str] = None
    filters: ContentFilters = Field(default_factory=ContentFilters)


class BrowsePage(ApiModel):
    items: list[SearchResult] = Field(default_factory=list)
    total: int = 0


class ProviderInfo(ApiModel):
    """Public view of a provider's capability descriptor."""
    id: str
    name: str
    base_url: str
    enabled: bool
    polite_delay: float
    requests_per_second: float


class ResolveItem(ApiModel):
    """A free-text title (and optional source link) to map to a provider id."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    title: Optional[str] = None
    url: Optional[str] = None
    alt_titles: list[str] = Field(default_factory=list)


class ResolvedTitle(ApiModel):
    index: int
    title: Optional[str] = None
    resolved_id: Optional[str] = None


class PartialResults(list):
    """Results assembled while some sub-queries failed. Never cached.

    ``failed`` names what failed: providers for a fan-out search, ranking
    windows for trending.
    """

    def __init__(self, rows=(), failed=()):
        super().__init__(rows)
        self.failed = list(failed)
