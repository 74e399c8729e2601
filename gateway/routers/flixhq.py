# gateway/routers/flixhq.py

from typing import Any, Mapping, Optional

from fastapi import APIRouter, Depends, Query

from gateway.providers import FlixHQProvider, provider
from gateway.services.cache import CacheStore
from gateway.services.cache_factory import get_cache
from gateway.services.params import (
    FLIX_CATEGORIES,
    FLIX_FILTER_TYPES,
    FLIX_QUALITIES,
    FLIX_SERVERS,
    choose,
    parse_page,
    require_id,
    sanitize_query,
)
from gateway.services.policy import HOUR, CachePolicy, serve
from gateway.services.result import field_is_empty, is_blank

router = APIRouter(prefix="/api/flixhq", tags=["flixhq"])


def _media_not_cacheable(result: Mapping[str, Any]) -> bool:
    # A single listed episode usually means the upstream page was cut short.
    episodes = result.get("providerEpisodes")
    return is_blank(result.get("data")) or not isinstance(episodes, list) or len(episodes) < 2


HOME = CachePolicy("flix-home", s_maxage=HOUR, ttl_hours=48, is_empty=field_is_empty("upcoming"))
SEARCH = CachePolicy("flix-search", s_maxage=148 * HOUR)
SUGGESTIONS = CachePolicy("flix-suggestions", s_maxage=148 * HOUR)
MOVIE_CATEGORY = CachePolicy("flix-movie", s_maxage=24 * HOUR, ttl_hours=168)
TV_CATEGORY = CachePolicy("flix-tv", s_maxage=24 * HOUR, ttl_hours=168)
UPCOMING = CachePolicy("flix-upcoming", s_maxage=24 * HOUR, ttl_hours=168)
FILTER = CachePolicy("flix-advanced-search", s_maxage=148 * HOUR, ttl_hours=720)
MEDIA_INFO = CachePolicy("flix-media-info", s_maxage=72 * HOUR, ttl_hours=168, is_empty=_media_not_cacheable)
GENRE = CachePolicy("flix-genre", s_maxage=24 * HOUR, ttl_hours=336)
COUNTRY = CachePolicy("flix-country", s_maxage=24 * HOUR, ttl_hours=336)
SERVERS = CachePolicy("flix-servers", s_maxage=24 * HOUR, ttl_hours=148)
SOURCES = CachePolicy("flix-sources", s_maxage=1200)


@router.get("/home")
async def home(
    policy: CachePolicy = Depends(HOME.engage),
    flixhq: FlixHQProvider = Depends(provider("flixhq")),
    cache: CacheStore = Depends(get_cache),
):
    return await serve(policy, cache, policy.key(), flixhq.fetch_home)


@router.get("/media/search")
async def search(
    q: Optional[str] = None,
    page: Optional[str] = None,
    policy: CachePolicy = Depends(SEARCH.engage),
    flixhq: FlixHQProvider = Depends(provider("flixhq")),
    cache: CacheStore = Depends(get_cache),
):
    query, page_no = sanitize_query(q), parse_page(page)
    return await serve(policy, cache, None, lambda: flixhq.search(query, page_no), {"q": query, "page": page_no})


@router.get("/media/suggestions")
async def suggestions(
    q: Optional[str] = None,
    policy: CachePolicy = Depends(SUGGESTIONS.engage),
    flixhq: FlixHQProvider = Depends(provider("flixhq")),
    cache: CacheStore = Depends(get_cache),
):
    query = sanitize_query(q)
    return await serve(policy, cache, None, lambda: flixhq.search_suggestions(query), {"q": query})


@router.get("/movies/category/{category}")
async def movies_by_category(
    category: str,
    page: Optional[str] = None,
    policy: CachePolicy = Depends(MOVIE_CATEGORY.engage),
    flixhq: FlixHQProvider = Depends(provider("flixhq")),
    cache: CacheStore = Depends(get_cache),
):
    category = choose(category, FLIX_CATEGORIES, "category")
    page_no = parse_page(page)
    fetch = flixhq.fetch_popular_movies if category == "popular" else flixhq.fetch_top_movies
    return await serve(
        policy, cache, policy.key(category, page_no),
        lambda: fetch(page_no),
        {"category": category, "page": page_no},
    )


@router.get("/tv/category/{category}")
async def tv_by_category(
    category: str,
    page: Optional[str] = None,
    policy: CachePolicy = Depends(TV_CATEGORY.engage),
    flixhq: FlixHQProvider = Depends(provider("flixhq")),
    cache: CacheStore = Depends(get_cache),
):
    category = choose(category, FLIX_CATEGORIES, "category")
    page_no = parse_page(page)
    fetch = flixhq.fetch_popular_tv if category == "popular" else flixhq.fetch_top_tv
    return await serve(
        policy, cache, policy.key(category, page_no),
        lambda: fetch(page_no),
        {"category": category, "page": page_no},
    )


@router.get("/media/upcoming")
async def upcoming(
    page: Optional[str] = None,
    policy: CachePolicy = Depends(UPCOMING.engage),
    flixhq: FlixHQProvider = Depends(provider("flixhq")),
    cache: CacheStore = Depends(get_cache),
):
    page_no = parse_page(page)
    return await serve(policy, cache, policy.key(page_no), lambda: flixhq.fetch_upcoming(page_no), {"page": page_no})


@router.get("/media/filter")
async def advanced_search(
    media_type: Optional[str] = Query(None, alias="type"),
    quality: Optional[str] = None,
    genre: Optional[str] = None,
    country: Optional[str] = None,
    page: Optional[str] = None,
    policy: CachePolicy = Depends(FILTER.engage),
    flixhq: FlixHQProvider = Depends(provider("flixhq")),
    cache: CacheStore = Depends(get_cache),
):
    kind = choose(media_type, FLIX_FILTER_TYPES, "type", default="all")
    chosen_quality = choose(quality, FLIX_QUALITIES, "quality", default="all")
    genre = (genre or "").strip().lower() or None
    country = (country or "").strip().lower() or "all"
    page_no = parse_page(page)
    return await serve(
        policy, cache, policy.key(kind, chosen_quality, genre, country, page_no),
        lambda: flixhq.advanced_search(kind, chosen_quality, genre, country, page_no),
        {"type": kind, "quality": chosen_quality, "genre": genre, "country": country, "page": page_no},
    )


@router.get("/media/{id}")
async def media_info(
    id: str,
    policy: CachePolicy = Depends(MEDIA_INFO.engage),
    flixhq: FlixHQProvider = Depends(provider("flixhq")),
    cache: CacheStore = Depends(get_cache),
):
    media_id = require_id(id, "mediaId")
    return await serve(policy, cache, policy.key(media_id), lambda: flixhq.fetch_media_info(media_id), {"mediaId": media_id})


@router.get("/media/{episodeId}/servers")
async def servers(
    episodeId: str,
    policy: CachePolicy = Depends(SERVERS.engage),
    flixhq: FlixHQProvider = Depends(provider("flixhq")),
    cache: CacheStore = Depends(get_cache),
):
    episode_id = require_id(episodeId, "episodeId")
    return await serve(
        policy, cache, policy.key(episode_id),
        lambda: flixhq.fetch_servers(episode_id),
        {"episodeId": episode_id},
    )


@router.get("/genres/{genre}")
async def by_genre(
    genre: str,
    page: Optional[str] = None,
    policy: CachePolicy = Depends(GENRE.engage),
    flixhq: FlixHQProvider = Depends(provider("flixhq")),
    cache: CacheStore = Depends(get_cache),
):
    genre = require_id(genre, "genre").lower()
    page_no = parse_page(page)
    return await serve(
        policy, cache, policy.key(genre, page_no),
        lambda: flixhq.fetch_genre(genre, page_no),
        {"genre": genre, "page": page_no},
    )


@router.get("/countries/{country}")
async def by_country(
    country: str,
    page: Optional[str] = None,
    policy: CachePolicy = Depends(COUNTRY.engage),
    flixhq: FlixHQProvider = Depends(provider("flixhq")),
    cache: CacheStore = Depends(get_cache),
):
    country = require_id(country, "country").lower()
    page_no = parse_page(page)
    return await serve(
        policy, cache, policy.key(country, page_no),
        lambda: flixhq.fetch_by_country(country, page_no),
        {"country": country, "page": page_no},
    )


@router.get("/sources/{episodeId}")
async def sources(
    episodeId: str,
    server: Optional[str] = None,
    policy: CachePolicy = Depends(SOURCES.engage),
    flixhq: FlixHQProvider = Depends(provider("flixhq")),
    cache: CacheStore = Depends(get_cache),
):
    episode_id = require_id(episodeId, "episodeId")
    chosen = choose(server, FLIX_SERVERS, "server", default="vidcloud")
    return await serve(
        policy, cache, None,
        lambda: flixhq.fetch_sources(episode_id, chosen),
        {"episodeId": episode_id, "server": chosen},
    )
