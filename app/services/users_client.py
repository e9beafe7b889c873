"""HTTP client for the upstream users API.

Two endpoints, both relative to the deployment's base URL:

  GET  {base}/getUsers   -> user list, in one of several shapes
  POST {base}/addUser    -> body {"name", "email"}; response is ignored

Every httpx failure (connection refused, timeout, 4xx/5xx) is folded into
a single TransportError whose message is the best human-readable text we
can find, because that text ends up in a toast.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel

from app.core.metrics import USERS_API_DURATION, USERS_API_REQUESTS

logger = logging.getLogger(__name__)

_FALLBACK_MESSAGE = "Network error"
_MESSAGE_KEYS = ("message", "error", "detail")


class TransportError(Exception):
    """A users-API call failed at the network or HTTP level."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AddUserIn(BaseModel):
    name: str
    email: str


@runtime_checkable
class UsersApi(Protocol):
    async def get_users(self) -> Any:
        """Fetch the raw (decoded) user-list body."""
        ...

    async def add_user(self, name: str, email: str) -> Any:
        """Create a user upstream.  The returned body is informational only."""
        ...


def _decode(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        # Hand undecodable bodies through as text; the normalizer rejects them
        return response.text


def _message_from(exc: httpx.HTTPError) -> tuple[str, int | None]:
    if isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code
        body = _decode(exc.response)
        if isinstance(body, dict):
            for key in _MESSAGE_KEYS:
                value = body.get(key)
                if isinstance(value, str) and value.strip():
                    return value, status_code
        return f"Request failed with status code {status_code}", status_code
    text = str(exc).strip()
    return (text or _FALLBACK_MESSAGE), None


class UsersApiClient:
    """Async users-API client backed by a single httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout_seconds,
            transport=transport,
        )

    async def get_users(self) -> Any:
        response = await self._send("get_users", "GET", "/getUsers")
        return _decode(response)

    async def add_user(self, name: str, email: str) -> Any:
        payload = AddUserIn(name=name, email=email)
        response = await self._send(
            "add_user", "POST", "/addUser", json=payload.model_dump()
        )
        return _decode(response)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(
        self, operation: str, method: str, path: str, **kwargs: Any
    ) -> httpx.Response:
        start = time.monotonic()
        outcome = "error"
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
            outcome = "ok"
            return response
        except httpx.HTTPError as exc:
            message, status_code = _message_from(exc)
            logger.warning(
                "users API %s failed: %s",
                operation,
                message,
                extra={"operation": operation, "outcome": "error"},
            )
            raise TransportError(message, status_code=status_code) from exc
        finally:
            duration = time.monotonic() - start
            USERS_API_REQUESTS.labels(operation=operation, outcome=outcome).inc()
            USERS_API_DURATION.labels(operation=operation).observe(duration)
            logger.debug(
                "users API %s %s %s (%.1fms)",
                operation,
                method,
                path,
                duration * 1000,
                extra={"operation": operation, "outcome": outcome},
            )
