from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

UNNAMED_PLACEHOLDER = "Unnamed user"
NO_EMAIL_PLACEHOLDER = "No email"


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


@dataclass(frozen=True, slots=True)
class UserRecord:
    name: str | None = None
    email: str | None = None
    id: str | None = None

    @staticmethod
    def from_raw(raw: Any) -> UserRecord:
        """Build a record from one entry of the upstream user list.

        The upstream makes no promises about entry shape: fields may be
        missing, and only some deployments send an identifier (``id`` or
        Mongo-style ``_id``).  Entries that are not mappings at all still
        produce a record so list positions stay aligned with the response.
        """
        if not isinstance(raw, Mapping):
            return UserRecord()
        raw_id = raw.get("id")
        if raw_id is None:
            raw_id = raw.get("_id")
        return UserRecord(
            name=_as_text(raw.get("name")),
            email=_as_text(raw.get("email")),
            id=_as_text(raw_id),
        )

    @property
    def display_name(self) -> str:
        return self.name or UNNAMED_PLACEHOLDER

    @property
    def display_email(self) -> str:
        return self.email or NO_EMAIL_PLACEHOLDER


@dataclass(frozen=True, slots=True)
class Draft:
    name: str = ""
    email: str = ""
