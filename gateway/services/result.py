"""
Classification of provider results.

Provider libraries answer with a plain object: a success payload, or the same
shape carrying an ``error`` string. Everything the gateway decides (status
code, whether to cache) follows from one inspection of that object, so the
outcome is modelled as a small closed set of variants.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Union

from pydantic import BaseModel

Payload = Dict[str, Any]
EmptinessPredicate = Callable[[Mapping[str, Any]], bool]


@dataclass(frozen=True)
class Success:
    payload: Payload


@dataclass(frozen=True)
class Empty:
    """Well-formed result without data; served but never cached."""
    payload: Payload


@dataclass(frozen=True)
class ProviderError:
    error: str
    payload: Payload


@dataclass(frozen=True)
class InvalidResponse:
    received: Any


ProviderResult = Union[Success, Empty, ProviderError, InvalidResponse]


def is_blank(value: Any) -> bool:
    """None, or an empty list/tuple/dict/string."""
    if value is None:
        return True
    if isinstance(value, (list, tuple, dict, str)):
        return len(value) == 0
    return False


def data_is_empty(result: Mapping[str, Any]) -> bool:
    return is_blank(result.get("data"))


def field_is_empty(*names: str) -> EmptinessPredicate:
    """Predicate that is true when any of the named top-level fields is blank."""
    def _check(result: Mapping[str, Any]) -> bool:
        return any(is_blank(result.get(name)) for name in names)
    return _check


def never_empty(result: Mapping[str, Any]) -> bool:
    return False


def classify(raw: Any, is_empty: EmptinessPredicate = data_is_empty) -> ProviderResult:
    if isinstance(raw, BaseModel):
        # None fields are dropped so a model declaring `error: Optional[str] = None` reports only errors it sets.
        raw = raw.model_dump(exclude_none=True)
    if not isinstance(raw, Mapping):
        return InvalidResponse(raw)

    payload = dict(raw)
    if "error" in payload:
        return ProviderError(str(payload["error"] or ""), payload)
    if is_empty(payload):
        return Empty(payload)
    return Success(payload)
