# gateway/routers/jikan.py

from typing import Any, Mapping, Optional

from fastapi import APIRouter, Depends, Query, Request

from gateway.errors import ClientInputError
from gateway.providers import JikanProvider, provider, resolve_provider
from gateway.services.cache import CacheStore
from gateway.services.cache_factory import get_cache
from gateway.services.params import (
    FORMATS,
    HIANIME_SERVERS,
    JIKAN_PROVIDERS,
    JIKAN_SEASONS,
    JIKAN_TOP_CATEGORIES,
    VERSIONS,
    choose,
    parse_page,
    parse_per_page,
    require_id,
    require_int,
    sanitize_query,
)
from gateway.services.policy import HOUR, CachePolicy, serve, status_ttl
from gateway.services.result import field_is_empty, is_blank

router = APIRouter(prefix="/api/jikan", tags=["jikan"])

MAX_PER_PAGE = 25


def _is_movie(result: Mapping[str, Any]) -> bool:
    data = result.get("data")
    return isinstance(data, Mapping) and str(data.get("format") or "").lower() == "movie"


def _mapping_not_cacheable(result: Mapping[str, Any]) -> bool:
    # Movie mappings are served but not kept.
    return field_is_empty("data", "provider")(result) or _is_movie(result)


def _episodes_not_cacheable(result: Mapping[str, Any]) -> bool:
    return is_blank(result.get("data")) or is_blank(result.get("providerEpisodes")) or _is_movie(result)


SEARCH = CachePolicy("mal-search", s_maxage=24 * HOUR)
INFO = CachePolicy("mal-info", s_maxage=24 * HOUR, ttl_hours=status_ttl(finished=0, ongoing=168))
TOP = CachePolicy("mal-top", s_maxage=6 * HOUR, ttl_hours=168)
TOP_AIRING = CachePolicy("mal-top", s_maxage=6 * HOUR, ttl_hours=12)
CHARACTERS = CachePolicy("mal-characters", s_maxage=148 * HOUR, ttl_hours=720)
SEASON = CachePolicy("mal-season", s_maxage=72 * HOUR, ttl_hours=168)
SEASONS_BY_YEAR = CachePolicy("mal-seasons", s_maxage=72 * HOUR, ttl_hours=168)
MAPPINGS = CachePolicy(
    "mal-mappings-id",
    s_maxage=24 * HOUR,
    ttl_hours=status_ttl(finished=0, ongoing=148),
    is_empty=_mapping_not_cacheable,
)
EPISODES = CachePolicy(
    "mal-episodes",
    s_maxage=HOUR // 2,
    ttl_hours=status_ttl(finished=168, ongoing=1),
    is_empty=_episodes_not_cacheable,
)
SOURCES = CachePolicy("mal-sources", s_maxage=600, stale_while_revalidate=60)

# episodeId substring -> registered source provider
SOURCE_ROUTES = (
    ("hianime", "hianime"),
    ("allanime", "allanime"),
    ("pahe", "animepahe"),
    ("anizone", "anizone"),
)


@router.get("/anime/search")
async def search(
    q: Optional[str] = None,
    page: Optional[str] = None,
    perPage: Optional[str] = None,
    policy: CachePolicy = Depends(SEARCH.engage),
    jikan: JikanProvider = Depends(provider("jikan")),
    cache: CacheStore = Depends(get_cache),
):
    query = sanitize_query(q)
    page_no, per_page = parse_page(page), parse_per_page(perPage, MAX_PER_PAGE)
    return await serve(
        policy, cache, None,
        lambda: jikan.search(query, page_no, per_page),
        {"q": query, "page": page_no, "perPage": per_page},
    )


@router.get("/anime/top/{category}")
async def top_anime(
    category: str,
    format: Optional[str] = None,
    page: Optional[str] = None,
    perPage: Optional[str] = None,
    policy: CachePolicy = Depends(TOP.engage),
    jikan: JikanProvider = Depends(provider("jikan")),
    cache: CacheStore = Depends(get_cache),
):
    category = choose(category, JIKAN_TOP_CATEGORIES, "category")
    media_format = choose(format, FORMATS, "format", default="TV")
    page_no, per_page = parse_page(page), parse_per_page(perPage, MAX_PER_PAGE)

    fetchers = {
        "popular": jikan.fetch_most_popular,
        "favorite": jikan.fetch_most_favorite,
        "rating": jikan.fetch_top_anime,
        "airing": jikan.fetch_top_airing,
        "upcoming": jikan.fetch_top_upcoming,
    }
    if category == "airing":
        policy = TOP_AIRING
    return await serve(
        policy, cache, policy.key(category, media_format, page_no, per_page),
        lambda: fetchers[category](page_no, per_page, media_format),
        {"category": category, "format": media_format, "page": page_no, "perPage": per_page},
    )


@router.get("/anime/{id}")
async def anime_info(
    id: str,
    policy: CachePolicy = Depends(INFO.engage),
    jikan: JikanProvider = Depends(provider("jikan")),
    cache: CacheStore = Depends(get_cache),
):
    mal_id = require_id(id, "id", numeric=True)
    return await serve(policy, cache, policy.key(mal_id), lambda: jikan.fetch_info(mal_id), {"id": mal_id})


@router.get("/anime/{id}/characters")
async def anime_characters(
    id: str,
    policy: CachePolicy = Depends(CHARACTERS.engage),
    jikan: JikanProvider = Depends(provider("jikan")),
    cache: CacheStore = Depends(get_cache),
):
    mal_id = require_id(id, "id", numeric=True)
    return await serve(
        policy, cache, policy.key(mal_id),
        lambda: jikan.fetch_anime_characters(mal_id),
        {"id": mal_id},
    )


async def _seasonal(
    request: Request,
    cache: CacheStore,
    season: str,
    year: Optional[str],
    format: Optional[str],
    page: Optional[str],
    perPage: Optional[str],
):
    season = choose(season, JIKAN_SEASONS, "season")
    media_format = choose(format, FORMATS, "format", default="TV")
    page_no, per_page = parse_page(page), parse_per_page(perPage, MAX_PER_PAGE)
    relative = season in ("current", "upcoming")
    if not relative and not year:
        raise ClientInputError("Missing required path parameter: 'year'.")

    jikan: JikanProvider = resolve_provider(request, "jikan")
    context = {"season": season, "year": year, "format": media_format, "page": page_no, "perPage": per_page}

    if relative:
        fetch = jikan.fetch_current_season if season == "current" else jikan.fetch_next_season
        return await serve(
            SEASON, cache, SEASON.key(season, media_format, page_no, per_page),
            lambda: fetch(page_no, per_page, media_format),
            context,
        )

    year_no = require_int(year, "year")
    return await serve(
        SEASONS_BY_YEAR, cache, SEASONS_BY_YEAR.key(year_no, season, media_format, page_no, per_page),
        lambda: jikan.fetch_seasonal_anime(season, year_no, media_format, page_no, per_page),
        context,
    )


@router.get("/seasons/{season}")
async def seasons(
    request: Request,
    season: str,
    format: Optional[str] = None,
    page: Optional[str] = None,
    perPage: Optional[str] = None,
    policy: CachePolicy = Depends(SEASON.engage),
    cache: CacheStore = Depends(get_cache),
):
    return await _seasonal(request, cache, season, None, format, page, perPage)


@router.get("/seasons/{season}/{year}")
async def seasons_by_year(
    request: Request,
    season: str,
    year: str,
    format: Optional[str] = None,
    page: Optional[str] = None,
    perPage: Optional[str] = None,
    policy: CachePolicy = Depends(SEASONS_BY_YEAR.engage),
    cache: CacheStore = Depends(get_cache),
):
    return await _seasonal(request, cache, season, year, format, page, perPage)


@router.get("/mappings/{id}")
async def mappings(
    id: str,
    provider_name: Optional[str] = Query(None, alias="provider"),
    policy: CachePolicy = Depends(MAPPINGS.engage),
    jikan: JikanProvider = Depends(provider("jikan")),
    cache: CacheStore = Depends(get_cache),
):
    mal_id = require_id(id, "id", numeric=True)
    source = choose(provider_name, JIKAN_PROVIDERS, "provider", default="hianime")
    return await serve(
        policy, cache, policy.key(mal_id, source),
        lambda: jikan.fetch_provider_id(mal_id, source),
        {"id": mal_id, "provider": source},
    )


@router.get("/episodes/{id}")
async def episodes(
    id: str,
    provider_name: Optional[str] = Query(None, alias="provider"),
    policy: CachePolicy = Depends(EPISODES.engage),
    jikan: JikanProvider = Depends(provider("jikan")),
    cache: CacheStore = Depends(get_cache),
):
    mal_id = require_id(id, "id", numeric=True)
    source = choose(provider_name, JIKAN_PROVIDERS, "provider", default="hianime")
    return await serve(
        policy, cache, policy.key(mal_id, source),
        lambda: jikan.fetch_anime_provider_episodes(mal_id, source),
        {"id": mal_id, "provider": source},
    )


@router.get("/sources/{episodeId}")
async def sources(
    request: Request,
    episodeId: str,
    version: Optional[str] = None,
    server: Optional[str] = None,
    policy: CachePolicy = Depends(SOURCES.engage),
    cache: CacheStore = Depends(get_cache),
):
    """
    Streaming sources for an episode id returned by /episodes/{id}.
    The id itself names the provider that issued it.
    """
    episode_id = require_id(episodeId, "episodeId")
    category = choose(version, VERSIONS, "version", default="sub")

    source = next((name for marker, name in SOURCE_ROUTES if marker in episode_id), None)
    if source is None:
        raise ClientInputError(
            f"Unsupported episodeId: '{episode_id}'. Fetch the right episodeId from /api/jikan/episodes/{{id}}."
        )

    upstream = resolve_provider(request, source)
    if source == "hianime":
        chosen = choose(server, HIANIME_SERVERS, "server", default="hd-2")
        fetch = lambda: upstream.fetch_sources(episode_id, chosen, category)  # noqa: E731
    elif source == "anizone":
        fetch = lambda: upstream.fetch_sources(episode_id)  # noqa: E731
    else:
        fetch = lambda: upstream.fetch_sources(episode_id, category)  # noqa: E731

    return await serve(policy, cache, None, fetch, {"episodeId": episode_id, "version": category, "provider": source})
