# gateway/services/params.py

import re
from typing import Optional, Sequence, Union
from urllib.parse import unquote

from gateway.errors import ClientInputError

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 20
MAX_QUERY_LENGTH = 1000

# Everything outside word characters, whitespace, hyphen, underscore and dot.
_QUERY_STRIP = re.compile(r"[^\w\s\-.]", re.ASCII)

FORMATS = ("TV", "MOVIE", "SPECIAL", "OVA", "ONA", "MUSIC")
ANILIST_SEASONS = ("WINTER", "SPRING", "SUMMER", "FALL")
JIKAN_SEASONS = ("winter", "spring", "summer", "fall", "current", "upcoming")
SUB_OR_DUB = ("sub", "dub")
VERSIONS = ("sub", "dub", "raw")
HIANIME_SERVERS = ("hd-1", "hd-2", "hd-3")
ANILIST_PROVIDERS = ("hianime",)
JIKAN_PROVIDERS = ("allanime", "hianime", "animepahe", "anizone")
FLIX_SERVERS = ("upcloud", "vidcloud", "akcloud")
MEDIA_TYPES = ("movie", "tv")
TIME_WINDOWS = ("week", "day")
JIKAN_TOP_CATEGORIES = ("favorite", "popular", "rating", "airing", "upcoming")
FLIX_CATEGORIES = ("popular", "top-rated")
FLIX_FILTER_TYPES = ("movie", "tv", "all")
FLIX_QUALITIES = ("all", "HD", "SD", "CAM")


def optional_int(raw: Union[str, int, None]) -> Optional[int]:
    if raw is None:
        return None
    try:
        value = int(str(raw).strip())
    except ValueError:
        return None
    return value if value > 0 else None


def parse_page(raw: Union[str, int, None]) -> int:
    return optional_int(raw) or DEFAULT_PAGE


def parse_per_page(raw: Union[str, int, None], maximum: int) -> int:
    return min(optional_int(raw) or DEFAULT_PER_PAGE, maximum)


def sanitize_query(raw: Optional[str]) -> str:
    """
    Normalize a free-text search query: trim, percent-decode, drop punctuation
    and symbols, trim again. Raises ClientInputError when nothing usable is left
    or the query exceeds MAX_QUERY_LENGTH.
    """
    q = unquote((raw or "").strip())
    q = _QUERY_STRIP.sub("", q).strip()
    if not q:
        raise ClientInputError("Query string cannot be empty")
    if len(q) > MAX_QUERY_LENGTH:
        raise ClientInputError("Query too long")
    return q


def require_id(raw: Union[str, int, None], name: str, numeric: bool = False) -> Union[str, int]:
    """Path identifiers: blank, or non-positive for numeric ids, is a 400."""
    if numeric:
        value = optional_int(raw)
        if value is None:
            raise ClientInputError(f"Missing required path parameter: '{name}'.")
        return value
    text = str(raw).strip() if raw is not None else ""
    if not text:
        raise ClientInputError(f"Missing required path parameter: '{name}'.")
    return text


def require_int(raw: Union[str, int, None], name: str) -> int:
    value = optional_int(raw)
    if value is None:
        raise ClientInputError(f"Missing required query parameter: '{name}'.")
    return value


def choose(raw: Optional[str], allowed: Sequence[str], name: str, default: Optional[str] = None) -> str:
    """
    Match raw against a fixed set of values ignoring case and surrounding
    whitespace; returns the canonical member.
    """
    value = (raw or "").strip()
    if not value:
        if default is None:
            raise ClientInputError(f"Missing required query parameter: '{name}'. Expected one of {', '.join(allowed)}.")
        return default
    for candidate in allowed:
        if candidate.lower() == value.lower():
            return candidate
    raise ClientInputError(f"Invalid {name}: '{value}'. Expected one of {', '.join(allowed)}.")
