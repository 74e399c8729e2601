# gateway/routers/tmdb.py

from typing import Optional

from fastapi import APIRouter, Depends, Query

from gateway.providers import TMDBProvider, provider
from gateway.services.cache import CacheStore
from gateway.services.cache_factory import get_cache
from gateway.services.params import (
    MEDIA_TYPES,
    TIME_WINDOWS,
    choose,
    optional_int,
    parse_page,
    require_id,
    require_int,
    sanitize_query,
)
from gateway.services.policy import HOUR, CachePolicy, serve
from gateway.services.result import never_empty

router = APIRouter(prefix="/api/tmdb", tags=["tmdb"])

# TMDB answers are relayed without server-side caching; only CDN freshness is set.
DAILY = CachePolicy("tmdb", s_maxage=24 * HOUR)
INFO = CachePolicy("tmdb-info", s_maxage=148 * HOUR)
RELEASING = CachePolicy("tmdb-releasing", s_maxage=48 * HOUR)
WATCH = CachePolicy("tmdb-watch", s_maxage=600, stale_while_revalidate=60, is_empty=never_empty)


def _media_type(media_type: Optional[str]) -> str:
    return choose(media_type, MEDIA_TYPES, "type")


@router.get("/")
async def welcome():
    return {"message": "Welcome to The TheMovieDatabase provider"}


@router.get("/search")
async def search(
    q: Optional[str] = None,
    media_type: Optional[str] = Query(None, alias="type"),
    page: Optional[str] = None,
    policy: CachePolicy = Depends(DAILY.engage),
    tmdb: TMDBProvider = Depends(provider("tmdb")),
    cache: CacheStore = Depends(get_cache),
):
    query, kind, page_no = sanitize_query(q), _media_type(media_type), parse_page(page)
    fetch = tmdb.search_movie if kind == "movie" else tmdb.search_shows
    return await serve(policy, cache, None, lambda: fetch(query, page_no), {"q": query, "type": kind, "page": page_no})


@router.get("/info/{mediaId}")
async def info(
    mediaId: str,
    media_type: Optional[str] = Query(None, alias="type"),
    policy: CachePolicy = Depends(INFO.engage),
    tmdb: TMDBProvider = Depends(provider("tmdb")),
    cache: CacheStore = Depends(get_cache),
):
    media_id = require_id(mediaId, "mediaId", numeric=True)
    kind = _media_type(media_type)
    fetch = tmdb.fetch_movie_info if kind == "movie" else tmdb.fetch_show_info
    return await serve(policy, cache, None, lambda: fetch(media_id), {"mediaId": media_id, "type": kind})


@router.get("/trending")
async def trending(
    media_type: Optional[str] = Query(None, alias="type"),
    timeWindow: Optional[str] = None,
    page: Optional[str] = None,
    policy: CachePolicy = Depends(DAILY.engage),
    tmdb: TMDBProvider = Depends(provider("tmdb")),
    cache: CacheStore = Depends(get_cache),
):
    kind = _media_type(media_type)
    window = choose(timeWindow, TIME_WINDOWS, "timeWindow", default="week")
    page_no = parse_page(page)
    fetch = tmdb.fetch_trending_movies if kind == "movie" else tmdb.fetch_trending_tv
    return await serve(
        policy, cache, None,
        lambda: fetch(window, page_no),
        {"type": kind, "timeWindow": window, "page": page_no},
    )


@router.get("/popular")
async def popular(
    media_type: Optional[str] = Query(None, alias="type"),
    page: Optional[str] = None,
    policy: CachePolicy = Depends(DAILY.engage),
    tmdb: TMDBProvider = Depends(provider("tmdb")),
    cache: CacheStore = Depends(get_cache),
):
    kind, page_no = _media_type(media_type), parse_page(page)
    fetch = tmdb.fetch_popular_movies if kind == "movie" else tmdb.fetch_popular_tv
    return await serve(policy, cache, None, lambda: fetch(page_no), {"type": kind, "page": page_no})


@router.get("/top")
async def top(
    media_type: Optional[str] = Query(None, alias="type"),
    page: Optional[str] = None,
    policy: CachePolicy = Depends(DAILY.engage),
    tmdb: TMDBProvider = Depends(provider("tmdb")),
    cache: CacheStore = Depends(get_cache),
):
    kind, page_no = _media_type(media_type), parse_page(page)
    fetch = tmdb.fetch_top_movies if kind == "movie" else tmdb.fetch_top_shows
    return await serve(policy, cache, None, lambda: fetch(page_no), {"type": kind, "page": page_no})


@router.get("/get-provider/{tmdbId}")
async def get_provider(
    tmdbId: str,
    media_type: Optional[str] = Query(None, alias="type"),
    policy: CachePolicy = Depends(DAILY.engage),
    tmdb: TMDBProvider = Depends(provider("tmdb")),
    cache: CacheStore = Depends(get_cache),
):
    tmdb_id = require_id(tmdbId, "tmdbId")
    kind = _media_type(media_type)
    fetch = tmdb.fetch_movie_provider_id if kind == "movie" else tmdb.fetch_tv_provider_id
    return await serve(policy, cache, None, lambda: fetch(tmdb_id), {"tmdbId": tmdb_id, "type": kind})


@router.get("/airing-tv")
async def airing_tv(
    page: Optional[str] = None,
    policy: CachePolicy = Depends(DAILY.engage),
    tmdb: TMDBProvider = Depends(provider("tmdb")),
    cache: CacheStore = Depends(get_cache),
):
    page_no = parse_page(page)
    return await serve(policy, cache, None, lambda: tmdb.fetch_airing_tv(page_no), {"page": page_no})


@router.get("/episodes/{tmdbId}")
async def episodes(
    tmdbId: str,
    season: Optional[str] = None,
    policy: CachePolicy = Depends(DAILY.engage),
    tmdb: TMDBProvider = Depends(provider("tmdb")),
    cache: CacheStore = Depends(get_cache),
):
    tmdb_id = require_id(tmdbId, "tmdbId", numeric=True)
    season_no = require_int(season, "season")
    return await serve(
        policy, cache, None,
        lambda: tmdb.fetch_tv_episodes(tmdb_id, season_no),
        {"tmdbId": tmdb_id, "season": season_no},
    )


@router.get("/episode-info/{tmdbId}")
async def episode_info(
    tmdbId: str,
    season: Optional[str] = None,
    episode: Optional[str] = None,
    policy: CachePolicy = Depends(DAILY.engage),
    tmdb: TMDBProvider = Depends(provider("tmdb")),
    cache: CacheStore = Depends(get_cache),
):
    episode_no = require_int(episode, "episode")
    tmdb_id = require_id(tmdbId, "tmdbId", numeric=True)
    season_no = require_int(season, "season")
    return await serve(
        policy, cache, None,
        lambda: tmdb.fetch_episode_info(tmdb_id, season_no, episode_no),
        {"tmdbId": tmdb_id, "season": season_no, "episode": episode_no},
    )


@router.get("/releasing")
async def releasing(
    page: Optional[str] = None,
    policy: CachePolicy = Depends(RELEASING.engage),
    tmdb: TMDBProvider = Depends(provider("tmdb")),
    cache: CacheStore = Depends(get_cache),
):
    page_no = parse_page(page)
    return await serve(policy, cache, None, lambda: tmdb.fetch_releasing_movies(page_no), {"page": page_no})


@router.get("/upcoming")
async def upcoming(
    page: Optional[str] = None,
    policy: CachePolicy = Depends(DAILY.engage),
    tmdb: TMDBProvider = Depends(provider("tmdb")),
    cache: CacheStore = Depends(get_cache),
):
    page_no = parse_page(page)
    return await serve(policy, cache, None, lambda: tmdb.fetch_upcoming_movies(page_no), {"page": page_no})


@router.get("/watch/{tmdbId}")
async def watch(
    tmdbId: str,
    season: Optional[str] = None,
    episode: Optional[str] = None,
    policy: CachePolicy = Depends(WATCH.engage),
    tmdb: TMDBProvider = Depends(provider("tmdb")),
    cache: CacheStore = Depends(get_cache),
):
    """TV sources when both season and episode are given, movie sources otherwise."""
    tmdb_id = require_id(tmdbId, "tmdbId", numeric=True)
    season_no, episode_no = optional_int(season), optional_int(episode)
    if season_no and episode_no:
        fetch = lambda: tmdb.fetch_tv_sources(tmdb_id, season_no, episode_no)  # noqa: E731
    else:
        fetch = lambda: tmdb.fetch_movie_sources(tmdb_id)  # noqa: E731
    return await serve(
        policy, cache, None, fetch,
        {"tmdbId": tmdb_id, "season": season_no, "episode": episode_no},
    )
