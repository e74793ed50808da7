"""Manga catalog endpoints."""

from typing import Optional
from pydantic import BaseModel, Field
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..context import ScraperContext
from ..models import BrowseOptions, ContentFilters, ResolveItem
from ..providers import Timeframe

router = APIRouter(prefix="/manga", tags=["manga"])


def get_context(request: Request) -> ScraperContext:
    """Service context created by the application lifespan."""
    return request.app.state.context


def content_filters(
    show_mature: bool = Query(False, alias="showMatureContent"),
    show_explicit: bool = Query(False, alias="showExplicitContent"),
    show_pornographic: bool = Query(False, alias="showPornographicContent"),
) -> ContentFilters:
    """Level 1 (Ecchi, Mature), level 2 (Smut, Adult), level 3 (Hentai, Doujinshi)."""
    return ContentFilters(
        show_mature_content=show_mature,
        show_explicit_content=show_explicit,
        show_pornographic_content=show_pornographic,
    )


class ResolveRequest(BaseModel):
    """Batch of titles to resolve."""
    items: list[ResolveItem] = Field(..., min_length=1)


# Specific routes must come before /{provider}/{id}

@router.get("/search")
async def search_manga(
    q: str = Query(..., min_length=1, description="Search query"),
    providers: Optional[str] = Query(None, description="Comma-separated provider list"),
    limit: int = Query(10, ge=1, le=100),
    page: int = Query(1, ge=1),
    filters: ContentFilters = Depends(content_filters),
    cache: bool = Query(True),
    context: ScraperContext = Depends(get_context),
):
    """Search across multiple providers."""
    provider_list = [p.strip() for p in providers.split(",") if p.strip()] if providers else ["mangaupdates"]

    results = await context.aggregator.search(
        q, provider_list, limit, filters, page=page, use_cache=cache
    )
    return {
        "success": True,
        "data": results,
        "count": len(results),
        "query": q,
        "providers": provider_list,
    }


@router.get("/providers")
async def list_providers(context: ScraperContext = Depends(get_context)):
    """Get list of enabled providers."""
    return {"success": True, "data": context.aggregator.list_providers()}


@router.get("/recent")
async def recently_updated(
    provider: str = Query("mangaupdates"),
    limit: int = Query(20, ge=1, le=100),
    cache: bool = Query(True),
    context: ScraperContext = Depends(get_context),
):
    """Get recently updated manga."""
    results = await context.aggregator.recently_updated(provider, limit, use_cache=cache)
    return {"success": True, "data": results, "count": len(results)}


@router.get("/browse")
async def browse_manga(
    provider: str = Query("mangaupdates"),
    limit: int = Query(30, ge=1, le=100),
    page: int = Query(1, ge=1),
    types: Optional[list[str]] = Query(None, alias="types[]"),
    genres: Optional[list[str]] = Query(None, alias="genres[]"),
    orderby: Optional[str] = Query(None),
    filters: ContentFilters = Depends(content_filters),
    cache: bool = Query(True),
    context: ScraperContext = Depends(get_context),
):
    """Browse manga with filters."""
    options = BrowseOptions(
        limit=limit,
        page=page,
        types=types or [],
        genres=genres or [],
        orderby=orderby,
        filters=filters,
    )
    result = await context.aggregator.browse(provider, options, use_cache=cache)
    return {
        "success": True,
        "data": result.items,
        "total": result.total,
        "limit": limit,
        "page": page,
    }


@router.get("/highlights/{demographic}")
async def demographic_highlights(
    demographic: str,
    provider: str = Query("mangaupdates"),
    limit: int = Query(50, ge=1, le=100),
    filters: ContentFilters = Depends(content_filters),
    cache: bool = Query(True),
    context: ScraperContext = Depends(get_context),
):
    """Get demographic highlights (top rated by type)."""
    results = await context.aggregator.demographic_highlights(
        provider, demographic, limit, filters, use_cache=cache
    )
    return {"success": True, "data": results, "count": len(results)}


@router.get("/popular-new")
async def popular_new_titles(
    provider: str = Query("mangaupdates"),
    limit: int = Query(50, ge=1, le=100),
    filters: ContentFilters = Depends(content_filters),
    cache: bool = Query(True),
    context: ScraperContext = Depends(get_context),
):
    """Get popular new titles."""
    results = await context.aggregator.popular_new_titles(provider, limit, filters, use_cache=cache)
    return {"success": True, "data": results, "count": len(results)}


@router.get("/trending/{language}")
async def trending_by_language(
    language: str,
    provider: str = Query("mangaupdates"),
    limit: int = Query(50, ge=1, le=100),
    timeframe: str = Query("mixed"),
    filters: ContentFilters = Depends(content_filters),
    cache: bool = Query(True),
    context: ScraperContext = Depends(get_context),
):
    """Get trending manga by language/region."""
    try:
        window = Timeframe(timeframe)
    except ValueError:
        window = Timeframe.MIXED

    results = await context.aggregator.trending_by_language(
        provider, language, limit, filters, window, use_cache=cache
    )
    return {"success": True, "data": results, "count": len(results), "timeframe": window.value}


@router.post("/resolve")
async def resolve_titles(request: ResolveRequest, context: ScraperContext = Depends(get_context)):
    """Resolve free-text titles (and source links) to provider ids."""
    max_items = context.settings.resolve_max_items
    if len(request.items) > max_items:
        raise HTTPException(status_code=422, detail=f"At most {max_items} items per request")

    results = await context.resolver.resolve_bulk(request.items)
    return {"success": True, "data": results}


@router.delete("/cache")
async def clear_cache(context: ScraperContext = Depends(get_context)):
    """Drop every cached catalog response and title resolution."""
    context.clear_caches()
    return {"success": True}


@router.get("/{provider}/{manga_id}")
async def get_manga(
    provider: str,
    manga_id: str,
    cache: bool = Query(True),
    context: ScraperContext = Depends(get_context),
):
    """Get manga details from a specific provider."""
    manga = await context.aggregator.get_by_provider_id(provider, manga_id, use_cache=cache)
    return {"success": True, "data": manga}
