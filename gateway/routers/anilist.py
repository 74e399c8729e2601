# gateway/routers/anilist.py

from typing import Any, Mapping, Optional

from fastapi import APIRouter, Depends, Query

from gateway.providers import AnilistProvider, provider
from gateway.services.cache import CacheStore
from gateway.services.cache_factory import get_cache
from gateway.services.params import (
    ANILIST_PROVIDERS,
    ANILIST_SEASONS,
    FORMATS,
    HIANIME_SERVERS,
    SUB_OR_DUB,
    choose,
    parse_page,
    parse_per_page,
    optional_int,
    require_id,
    sanitize_query,
)
from gateway.services.policy import HOUR, PAGINATION_FIELDS, CachePolicy, serve, status_ttl
from gateway.services.result import field_is_empty, is_blank, never_empty

router = APIRouter(prefix="/api/anilist", tags=["anilist"])

MAX_PER_PAGE = 50


def _episodes_not_cacheable(result: Mapping[str, Any]) -> bool:
    return is_blank(result.get("data")) or is_blank(result.get("providerEpisodes"))


def _paginated(namespace: str, s_maxage: int, ttl_hours: Optional[int] = None) -> CachePolicy:
    return CachePolicy(namespace, s_maxage=s_maxage, ttl_hours=ttl_hours, fields=PAGINATION_FIELDS)


SEARCH = _paginated("anilist-search", 48 * HOUR)
INFO = CachePolicy("anilist-info", s_maxage=48 * HOUR, ttl_hours=24, fields=("data",))
TOP_AIRING = _paginated("anilist-top-airing", 6 * HOUR, ttl_hours=6)
MOST_POPULAR = _paginated("anilist-most-popular", 148 * HOUR, ttl_hours=148)
TOP_ANIME = _paginated("anilist-top-anime", 48 * HOUR, ttl_hours=24)
UPCOMING = _paginated("anilist-upcoming", 48 * HOUR, ttl_hours=12)
TRENDING = _paginated("anilist-trending", HOUR, ttl_hours=2)
SEASON = _paginated("anilist-season", 24 * HOUR)
CHARACTERS = CachePolicy("anilist-characters", s_maxage=96 * HOUR, fields=("data",))
RELATED = CachePolicy("anilist-related", s_maxage=96 * HOUR, fields=("data",))
PROVIDER_ID = CachePolicy(
    "anilist-provider-id",
    s_maxage=24 * HOUR,
    ttl_hours=2,
    is_empty=field_is_empty("data", "provider"),
    fields=("data", "provider"),
)
PROVIDER_EPISODES = CachePolicy(
    "anilist-provider-episodes",
    s_maxage=24 * HOUR,
    ttl_hours=status_ttl(finished=148, ongoing=24, finished_status="finished"),
    is_empty=_episodes_not_cacheable,
    fields=("data", "providerEpisodes"),
)
WATCH = CachePolicy("anilist-watch", s_maxage=420, stale_while_revalidate=60, is_empty=never_empty)


@router.get("/")
async def welcome():
    return {"message": "Welcome to Anilist Metadata provider"}


@router.get("/search")
async def search(
    q: Optional[str] = None,
    page: Optional[str] = None,
    perPage: Optional[str] = None,
    policy: CachePolicy = Depends(SEARCH.engage),
    anilist: AnilistProvider = Depends(provider("anilist")),
    cache: CacheStore = Depends(get_cache),
):
    query = sanitize_query(q)
    page_no, per_page = parse_page(page), parse_per_page(perPage, MAX_PER_PAGE)
    return await serve(
        policy, cache, None,
        lambda: anilist.search(query, page_no, per_page),
        {"q": query, "page": page_no, "perPage": per_page},
    )


@router.get("/info/{anilistId}")
async def info(
    anilistId: str,
    policy: CachePolicy = Depends(INFO.engage),
    anilist: AnilistProvider = Depends(provider("anilist")),
    cache: CacheStore = Depends(get_cache),
):
    anilist_id = require_id(anilistId, "anilistId", numeric=True)
    return await serve(policy, cache, policy.key(anilist_id), lambda: anilist.fetch_info(anilist_id), {"anilistId": anilist_id})


@router.get("/top-airing")
async def top_airing(
    page: Optional[str] = None,
    perPage: Optional[str] = None,
    policy: CachePolicy = Depends(TOP_AIRING.engage),
    anilist: AnilistProvider = Depends(provider("anilist")),
    cache: CacheStore = Depends(get_cache),
):
    page_no, per_page = parse_page(page), parse_per_page(perPage, MAX_PER_PAGE)
    return await serve(
        policy, cache, policy.key(page_no, per_page),
        lambda: anilist.fetch_top_airing(page_no, per_page),
        {"page": page_no, "perPage": per_page},
    )


@router.get("/most-popular")
async def most_popular(
    format: Optional[str] = None,
    page: Optional[str] = None,
    perPage: Optional[str] = None,
    policy: CachePolicy = Depends(MOST_POPULAR.engage),
    anilist: AnilistProvider = Depends(provider("anilist")),
    cache: CacheStore = Depends(get_cache),
):
    media_format = choose(format, FORMATS, "format", default="TV")
    page_no, per_page = parse_page(page), parse_per_page(perPage, MAX_PER_PAGE)
    return await serve(
        policy, cache, policy.key(page_no, per_page, media_format),
        lambda: anilist.fetch_most_popular(page_no, per_page, media_format),
        {"page": page_no, "perPage": per_page, "format": media_format},
    )


@router.get("/top-anime")
async def top_anime(
    format: Optional[str] = None,
    page: Optional[str] = None,
    perPage: Optional[str] = None,
    policy: CachePolicy = Depends(TOP_ANIME.engage),
    anilist: AnilistProvider = Depends(provider("anilist")),
    cache: CacheStore = Depends(get_cache),
):
    media_format = choose(format, FORMATS, "format", default="TV")
    page_no, per_page = parse_page(page), parse_per_page(perPage, MAX_PER_PAGE)
    return await serve(
        policy, cache, policy.key(page_no, per_page, media_format),
        lambda: anilist.fetch_top_rated_anime(page_no, per_page, media_format),
        {"page": page_no, "perPage": per_page, "format": media_format},
    )


@router.get("/upcoming")
async def upcoming(
    page: Optional[str] = None,
    perPage: Optional[str] = None,
    policy: CachePolicy = Depends(UPCOMING.engage),
    anilist: AnilistProvider = Depends(provider("anilist")),
    cache: CacheStore = Depends(get_cache),
):
    page_no, per_page = parse_page(page), parse_per_page(perPage, MAX_PER_PAGE)
    return await serve(
        policy, cache, policy.key(page_no, per_page),
        lambda: anilist.fetch_top_upcoming(page_no, per_page),
        {"page": page_no, "perPage": per_page},
    )


@router.get("/trending")
async def trending(
    page: Optional[str] = None,
    perPage: Optional[str] = None,
    policy: CachePolicy = Depends(TRENDING.engage),
    anilist: AnilistProvider = Depends(provider("anilist")),
    cache: CacheStore = Depends(get_cache),
):
    page_no, per_page = parse_page(page), parse_per_page(perPage, MAX_PER_PAGE)
    return await serve(
        policy, cache, policy.key(page_no, per_page),
        lambda: anilist.fetch_trending(page_no, per_page),
        {"page": page_no, "perPage": per_page},
    )


@router.get("/characters/{anilistId}")
async def characters(
    anilistId: str,
    policy: CachePolicy = Depends(CHARACTERS.engage),
    anilist: AnilistProvider = Depends(provider("anilist")),
    cache: CacheStore = Depends(get_cache),
):
    anilist_id = require_id(anilistId, "anilistId", numeric=True)
    return await serve(policy, cache, None, lambda: anilist.fetch_characters(anilist_id), {"anilistId": anilist_id})


@router.get("/related/{anilistId}")
async def related(
    anilistId: str,
    policy: CachePolicy = Depends(RELATED.engage),
    anilist: AnilistProvider = Depends(provider("anilist")),
    cache: CacheStore = Depends(get_cache),
):
    anilist_id = require_id(anilistId, "anilistId", numeric=True)
    return await serve(policy, cache, None, lambda: anilist.fetch_related_anime(anilist_id), {"anilistId": anilist_id})


@router.get("/season")
async def season(
    season: Optional[str] = None,
    year: Optional[str] = None,
    format: Optional[str] = None,
    page: Optional[str] = None,
    perPage: Optional[str] = None,
    policy: CachePolicy = Depends(SEASON.engage),
    anilist: AnilistProvider = Depends(provider("anilist")),
    cache: CacheStore = Depends(get_cache),
):
    season_name = choose(season, ANILIST_SEASONS, "season")
    media_format = choose(format, FORMATS, "format", default="TV")
    year_no = optional_int(year)
    page_no, per_page = parse_page(page), parse_per_page(perPage, MAX_PER_PAGE)
    return await serve(
        policy, cache, None,
        lambda: anilist.fetch_seasonal_anime(season_name, year_no, page_no, per_page, media_format),
        {"season": season_name, "year": year_no, "format": media_format, "page": page_no, "perPage": per_page},
    )


@router.get("/get-provider/{anilistId}")
async def get_provider(
    anilistId: str,
    provider_name: Optional[str] = Query(None, alias="provider"),
    policy: CachePolicy = Depends(PROVIDER_ID.engage),
    anilist: AnilistProvider = Depends(provider("anilist")),
    cache: CacheStore = Depends(get_cache),
):
    anilist_id = require_id(anilistId, "anilistId", numeric=True)
    source = choose(provider_name, ANILIST_PROVIDERS, "provider", default="hianime")
    return await serve(
        policy, cache, policy.key(anilist_id, source),
        lambda: anilist.fetch_provider_id(anilist_id, source),
        {"anilistId": anilist_id, "provider": source},
    )


@router.get("/provider-episodes/{anilistId}")
async def provider_episodes(
    anilistId: str,
    provider_name: Optional[str] = Query(None, alias="provider"),
    policy: CachePolicy = Depends(PROVIDER_EPISODES.engage),
    anilist: AnilistProvider = Depends(provider("anilist")),
    cache: CacheStore = Depends(get_cache),
):
    anilist_id = require_id(anilistId, "anilistId", numeric=True)
    source = choose(provider_name, ANILIST_PROVIDERS, "provider", default="hianime")
    return await serve(
        policy, cache, policy.key(anilist_id, source),
        lambda: anilist.fetch_anime_provider_episodes(anilist_id, source),
        {"anilistId": anilist_id, "provider": source},
    )


@router.get("/watch/{episodeId}")
async def watch(
    episodeId: str,
    category: Optional[str] = None,
    server: Optional[str] = None,
    policy: CachePolicy = Depends(WATCH.engage),
    anilist: AnilistProvider = Depends(provider("anilist")),
    cache: CacheStore = Depends(get_cache),
):
    episode_id = require_id(episodeId, "episodeId")
    sub_or_dub = choose(category, SUB_OR_DUB, "category", default="sub")
    chosen = choose(server, HIANIME_SERVERS, "server", default="hd-2")

    if episode_id.startswith("allanime"):
        fetch = lambda: anilist.fetch_allanime_provider_sources(episode_id, sub_or_dub)  # noqa: E731
    else:
        fetch = lambda: anilist.fetch_hianime_provider_sources(episode_id, sub_or_dub, chosen)  # noqa: E731
    return await serve(policy, cache, None, fetch, {"episodeId": episode_id, "category": sub_or_dub, "server": chosen})
