"""Adult content filtering.

Three nested tiers. Turning a tier off also turns off every tier above it,
so ``show_mature_content=False`` hides all three no matter what the other two
flags say.
"""

from ..models import ContentFilters

# Level 1: mild nudity, suggestive situations
MATURE_GENRES = ("Ecchi", "Mature")

# Level 2: frequent nudity or sexual content
EXPLICIT_GENRES = ("Smut", "Adult")

# Level 3: adult-only sexual content
PORNOGRAPHIC_GENRES = ("Hentai", "Doujinshi")

# Always hidden from trending sections regardless of user filters
TRENDING_EXCLUDED_GENRES = ("Yaoi", "Shounen Ai")

# MangaDex content ratings, same nesting as the genre tiers
MANGADEX_RATING_TIERS = (
    ("show_mature_content", "suggestive"),
    ("show_explicit_content", "erotica"),
    ("show_pornographic_content", "pornographic"),
)


def _dedupe(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def excluded_genres(filters: ContentFilters) -> list[str]:
    """Genres to pass upstream as ``exclude_genre``."""
    excluded: list[str] = []

    if not filters.show_pornographic_content:
        excluded.extend(PORNOGRAPHIC_GENRES)

    if not filters.show_explicit_content:
        excluded.extend(EXPLICIT_GENRES)
        excluded.extend(PORNOGRAPHIC_GENRES)

    if not filters.show_mature_content:
        excluded.extend(MATURE_GENRES)
        excluded.extend(EXPLICIT_GENRES)
        excluded.extend(PORNOGRAPHIC_GENRES)

    return _dedupe(excluded)


def trending_excluded_genres(filters: ContentFilters) -> list[str]:
    return _dedupe(excluded_genres(filters) + list(TRENDING_EXCLUDED_GENRES))


def allowed_content_ratings(filters: ContentFilters) -> list[str]:
    """MangaDex ``contentRating[]`` values the filters allow."""
    allowed = ["safe"]
    for flag, rating in MANGADEX_RATING_TIERS:
        if not getattr(filters, flag):
            break
        allowed.append(rating)
    return allowed
