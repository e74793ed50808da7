from __future__ import annotations

import pytest

from scraper_api.models import ContentFilters
from scraper_api.services.content_filter import (
    EXPLICIT_GENRES,
    MATURE_GENRES,
    PORNOGRAPHIC_GENRES,
    allowed_content_ratings,
    excluded_genres,
    trending_excluded_genres,
)

ALL_ADULT = set(MATURE_GENRES + EXPLICIT_GENRES + PORNOGRAPHIC_GENRES)


def filters(mature=False, explicit=False, porn=False) -> ContentFilters:
    return ContentFilters(
        show_mature_content=mature,
        show_explicit_content=explicit,
        show_pornographic_content=porn,
    )


def test_defaults_hide_every_tier():
    assert set(excluded_genres(ContentFilters())) == ALL_ADULT


def test_allow_all_hides_nothing():
    assert excluded_genres(ContentFilters.allow_all()) == []


def test_lower_tier_off_hides_higher_tiers():
    assert set(excluded_genres(filters(mature=False, explicit=True, porn=True))) == ALL_ADULT


def test_only_pornographic_hidden():
    assert excluded_genres(filters(mature=True, explicit=True)) == ["Hentai", "Doujinshi"]


def test_explicit_off_keeps_mature():
    excluded = excluded_genres(filters(mature=True, porn=True))
    assert set(excluded) == set(EXPLICIT_GENRES + PORNOGRAPHIC_GENRES)
    assert "Ecchi" not in excluded


def test_exclusions_are_deduplicated():
    excluded = excluded_genres(ContentFilters())
    assert len(excluded) == len(set(excluded))


def test_trending_always_hides_boys_love():
    excluded = trending_excluded_genres(ContentFilters.allow_all())
    assert excluded == ["Yaoi", "Shounen Ai"]

    with_defaults = trending_excluded_genres(ContentFilters())
    assert set(with_defaults) == ALL_ADULT | {"Yaoi", "Shounen Ai"}


@pytest.mark.parametrize(
    "flags, expected",
    [
        ({}, ["safe"]),
        ({"mature": True}, ["safe", "suggestive"]),
        ({"mature": True, "explicit": True}, ["safe", "suggestive", "erotica"]),
        ({"mature": True, "explicit": True, "porn": True}, ["safe", "suggestive", "erotica", "pornographic"]),
        ({"explicit": True, "porn": True}, ["safe"]),
    ],
)
def test_mangadex_ratings_follow_tiers(flags, expected):
    assert allowed_content_ratings(filters(**flags)) == expected
