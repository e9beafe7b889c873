"""Interpret a users-API list response of unknown shape.

The upstream has changed what ``GET /getUsers`` returns more than once:

  [{"name": ...}, ...]                  a bare array
  {"data": [{"name": ...}, ...]}        an envelope with one array field
  {"u1": {"name": ...}, "u2": {...}}    an id-keyed object (Firebase style)

and on a bad day it returns something else entirely (null, an HTML error
page decoded as text).  Rather than one tangle of isinstance checks, the
body is first classified into a ResponseShape, then handed to the
extractor for that shape.  Each branch can be tested on its own.

The normalizer never raises.  An unrecognized body degrades to "no users"
and leaves a diagnostic for operators (WARNING log + counter) instead of
breaking the view.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Mapping
from typing import Any

from app.core.metrics import MALFORMED_RESPONSES

logger = logging.getLogger(__name__)


class ResponseShape(enum.Enum):
    SEQUENCE = "sequence"
    KEYED_WITH_SEQUENCE = "keyed_with_sequence"
    KEYED = "keyed"
    UNRECOGNIZED = "unrecognized"


def _is_sequence(value: Any) -> bool:
    # str/bytes are sequences to Python but never a list of users
    return isinstance(value, (list, tuple))


def classify_response(body: Any) -> ResponseShape:
    # Sequence check comes first: it wins over any mapping interpretation.
    if _is_sequence(body):
        return ResponseShape.SEQUENCE
    if isinstance(body, Mapping):
        if any(_is_sequence(v) for v in body.values()):
            return ResponseShape.KEYED_WITH_SEQUENCE
        return ResponseShape.KEYED
    return ResponseShape.UNRECOGNIZED


def _from_sequence(body: Any) -> list[Any]:
    return body if isinstance(body, list) else list(body)


def _from_keyed_with_sequence(body: Mapping[str, Any]) -> list[Any]:
    nested = next(v for v in body.values() if _is_sequence(v))
    return _from_sequence(nested)


def _from_keyed(body: Mapping[str, Any]) -> list[Any]:
    return [v for v in body.values() if isinstance(v, Mapping)]


def _from_unrecognized(body: Any) -> list[Any]:
    body_type = type(body).__name__
    MALFORMED_RESPONSES.labels(body_type=body_type).inc()
    logger.warning(
        "Unrecognized user-list response (type=%s); treating as empty",
        body_type,
        extra={"body_type": body_type},
    )
    return []


_EXTRACTORS: dict[ResponseShape, Callable[[Any], list[Any]]] = {
    ResponseShape.SEQUENCE: _from_sequence,
    ResponseShape.KEYED_WITH_SEQUENCE: _from_keyed_with_sequence,
    ResponseShape.KEYED: _from_keyed,
    ResponseShape.UNRECOGNIZED: _from_unrecognized,
}


def normalize_users(body: Any) -> list[Any]:
    """Return the raw user entries carried by ``body``, in response order."""
    shape = classify_response(body)
    entries = _EXTRACTORS[shape](body)
    logger.debug(
        "Normalized user-list response shape=%s count=%d", shape.value, len(entries)
    )
    return entries
