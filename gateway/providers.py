"""
Provider capability consumed by the routes.

Providers are third-party scraper/metadata clients. The gateway only relies on
the method names below and on the result shape handled by
``gateway.services.result.classify``; methods may be coroutines or plain
functions. Concrete providers are registered at startup from the ``PROVIDERS``
setting (``name=module:attr``) or passed to ``create_app`` directly.
"""

import importlib
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

from fastapi import Request

from gateway.errors import ProviderUnavailable

logger = logging.getLogger(__name__)


class AnilistProvider(Protocol):
    def search(self, q: str, page: int, per_page: int) -> Any: ...
    def fetch_info(self, anilist_id: int) -> Any: ...
    def fetch_top_airing(self, page: int, per_page: int) -> Any: ...
    def fetch_most_popular(self, page: int, per_page: int, format: str) -> Any: ...
    def fetch_top_rated_anime(self, page: int, per_page: int, format: str) -> Any: ...
    def fetch_top_upcoming(self, page: int, per_page: int) -> Any: ...
    def fetch_characters(self, anilist_id: int) -> Any: ...
    def fetch_trending(self, page: int, per_page: int) -> Any: ...
    def fetch_related_anime(self, anilist_id: int) -> Any: ...
    def fetch_seasonal_anime(self, season: str, year: Optional[int], page: int, per_page: int, format: str) -> Any: ...
    def fetch_provider_id(self, anilist_id: int, provider: str) -> Any: ...
    def fetch_anime_provider_episodes(self, anilist_id: int, provider: str) -> Any: ...
    def fetch_hianime_provider_sources(self, episode_id: str, category: str, server: str) -> Any: ...
    def fetch_allanime_provider_sources(self, episode_id: str, category: str) -> Any: ...


class JikanProvider(Protocol):
    def search(self, q: str, page: int, per_page: int) -> Any: ...
    def fetch_info(self, mal_id: int) -> Any: ...
    def fetch_most_popular(self, page: int, per_page: int, format: str) -> Any: ...
    def fetch_most_favorite(self, page: int, per_page: int, format: str) -> Any: ...
    def fetch_top_anime(self, page: int, per_page: int, format: str) -> Any: ...
    def fetch_top_airing(self, page: int, per_page: int, format: str) -> Any: ...
    def fetch_top_upcoming(self, page: int, per_page: int, format: str) -> Any: ...
    def fetch_anime_characters(self, mal_id: int) -> Any: ...
    def fetch_current_season(self, page: int, per_page: int, format: str) -> Any: ...
    def fetch_next_season(self, page: int, per_page: int, format: str) -> Any: ...
    def fetch_seasonal_anime(self, season: str, year: int, format: str, page: int, per_page: int) -> Any: ...
    def fetch_provider_id(self, mal_id: int, provider: str) -> Any: ...
    def fetch_anime_provider_episodes(self, mal_id: int, provider: str) -> Any: ...


class SourceProvider(Protocol):
    """Streaming-source provider (hianime, allanime, animepahe, anizone)."""
    def fetch_sources(self, episode_id: str, *args: Any) -> Any: ...


class FlixHQProvider(Protocol):
    def fetch_home(self) -> Any: ...
    def search(self, q: str, page: int) -> Any: ...
    def search_suggestions(self, q: str) -> Any: ...
    def fetch_popular_movies(self, page: int) -> Any: ...
    def fetch_top_movies(self, page: int) -> Any: ...
    def fetch_popular_tv(self, page: int) -> Any: ...
    def fetch_top_tv(self, page: int) -> Any: ...
    def fetch_upcoming(self, page: int) -> Any: ...
    def advanced_search(self, type: str, quality: str, genre: Optional[str], country: str, page: int) -> Any: ...
    def fetch_media_info(self, media_id: str) -> Any: ...
    def fetch_genre(self, genre: str, page: int) -> Any: ...
    def fetch_by_country(self, country: str, page: int) -> Any: ...
    def fetch_servers(self, episode_id: str) -> Any: ...
    def fetch_sources(self, episode_id: str, server: str) -> Any: ...


class TMDBProvider(Protocol):
    def search_movie(self, q: str, page: int) -> Any: ...
    def search_shows(self, q: str, page: int) -> Any: ...
    def fetch_movie_info(self, media_id: int) -> Any: ...
    def fetch_show_info(self, media_id: int) -> Any: ...
    def fetch_trending_movies(self, time_window: str, page: int) -> Any: ...
    def fetch_trending_tv(self, time_window: str, page: int) -> Any: ...
    def fetch_popular_movies(self, page: int) -> Any: ...
    def fetch_popular_tv(self, page: int) -> Any: ...
    def fetch_top_movies(self, page: int) -> Any: ...
    def fetch_top_shows(self, page: int) -> Any: ...
    def fetch_movie_provider_id(self, tmdb_id: str) -> Any: ...
    def fetch_tv_provider_id(self, tmdb_id: str) -> Any: ...
    def fetch_airing_tv(self, page: int) -> Any: ...
    def fetch_tv_episodes(self, tmdb_id: int, season: int) -> Any: ...
    def fetch_episode_info(self, tmdb_id: int, season: int, episode: int) -> Any: ...
    def fetch_releasing_movies(self, page: int) -> Any: ...
    def fetch_upcoming_movies(self, page: int) -> Any: ...
    def fetch_tv_sources(self, tmdb_id: int, season: int, episode: int) -> Any: ...
    def fetch_movie_sources(self, tmdb_id: int) -> Any: ...


def parse_provider_spec(raw: str) -> Dict[str, str]:
    """Parse "name=module:attr,name2=module:attr" into a mapping."""
    targets: Dict[str, str] = {}
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        name, sep, target = item.partition("=")
        if not sep or ":" not in target:
            raise ValueError(f"Invalid provider entry {item!r}; expected name=module:attr")
        targets[name.strip().lower()] = target.strip()
    return targets


def load_providers(targets: Mapping[str, str]) -> Dict[str, Any]:
    """
    Import and instantiate each provider target. Import or construction
    errors propagate: a misconfigured provider is fatal at startup.
    """
    providers: Dict[str, Any] = {}
    for name, target in targets.items():
        module_name, _, attr = target.partition(":")
        factory = getattr(importlib.import_module(module_name), attr)
        providers[name] = factory() if callable(factory) else factory
        logger.info("Registered provider %s (%s)", name, target)
    return providers


def resolve_provider(request: Request, name: str) -> Any:
    found = request.app.state.providers.get(name)
    if found is None:
        raise ProviderUnavailable(name)
    return found


def provider(name: str) -> Callable[[Request], Any]:
    """FastAPI dependency resolving a registered provider by name."""
    def _resolve(request: Request) -> Any:
        return resolve_provider(request, name)
    _resolve.__name__ = f"provider_{name}"
    return _resolve
