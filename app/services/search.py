from __future__ import annotations

from collections.abc import Sequence

from app.models.user import UserRecord


def apply_filter(
    users: Sequence[UserRecord], query: str | None
) -> Sequence[UserRecord]:
    """Case-insensitive substring match on name or email.

    An empty query returns ``users`` itself, not a copy.
    """
    if not query:
        return users
    needle = query.casefold()
    return [
        u
        for u in users
        if needle in (u.name or "").casefold() or needle in (u.email or "").casefold()
    ]
