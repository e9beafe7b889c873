from __future__ import annotations

import logging

from app.models.user import Draft

logger = logging.getLogger(__name__)

FIELDS = ("name", "email")


class DraftValidationError(ValueError):
    pass


class FormState:
    """The add-user form's two-field draft."""

    def __init__(self) -> None:
        self._values: dict[str, str] = dict.fromkeys(FIELDS, "")

    @property
    def draft(self) -> Draft:
        return Draft(name=self._values["name"], email=self._values["email"])

    def update(self, field: str, value: str) -> None:
        if field not in self._values:
            raise ValueError(f"unknown form field {field!r}")
        self._values[field] = value

    def validate(self) -> None:
        if any(not self._values[f].strip() for f in FIELDS):
            logger.debug("Rejected draft with blank field")
            raise DraftValidationError("Name and email are required")

    def reset(self) -> None:
        for f in FIELDS:
            self._values[f] = ""
