"""The user console view model and its lifespan.

UserConsole is the single owner of all view state for the life of the
process: the canonical list (via UserStore), the add-user draft, the
toast, the search query and the user shown in the detail modal.
``mount`` performs the initial load; ``unmount`` cancels the pending toast
dismissal so nothing mutates the view after teardown.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager

import httpx

from app.core.config import Settings
from app.models.user import UserRecord
from app.services.form_state import DraftValidationError, FormState
from app.services.notifications import NotificationController, Scheduler
from app.services.search import apply_filter
from app.services.user_store import OperationInFlightError, OperationKind, UserStore
from app.services.users_client import TransportError, UsersApi, UsersApiClient

logger = logging.getLogger(__name__)


class UserConsole:
    def __init__(
        self,
        client: UsersApi,
        *,
        toast_duration_ms: int = 3000,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.notifications = NotificationController(toast_duration_ms, scheduler)
        self.store = UserStore(client, self.notifications)
        self.form = FormState()
        self.query = ""
        self.mounted = False
        self._selected: UserRecord | None = None
        self._selected_sn: int | None = None

    # ---- lifecycle ----

    async def mount(self) -> None:
        await self.store.fetch_all()
        self._reconcile_selection()
        self.mounted = True
        logger.info("User console mounted with %d users", len(self.store.users))

    async def unmount(self) -> None:
        self.notifications.close()
        self.mounted = False
        logger.info("User console unmounted")

    # ---- actions ----

    async def submit(self, name: str, email: str) -> bool:
        """Take the submitted form values and try to create the user.

        Returns False when validation or the upstream call failed.  The
        matching error toast has already been raised by then.  A submit
        while a create is in flight is rejected before the draft is
        touched, so a failed create leaves its own values for the retry.
        """
        if self.store.submitting:
            raise OperationInFlightError(OperationKind.CREATE)
        self.form.update("name", name)
        self.form.update("email", email)
        try:
            await self.store.create(self.form)
        except (DraftValidationError, TransportError) as exc:
            logger.info("Add user not completed: %s", exc)
            return False
        finally:
            self._reconcile_selection()
        return True

    async def refresh(self) -> None:
        await self.store.fetch_all()
        self._reconcile_selection()

    def search(self, query: str | None) -> None:
        self.query = query or ""

    def dismiss_toast(self) -> None:
        self.notifications.hide()

    # ---- selection (detail modal) ----

    @property
    def selected(self) -> UserRecord | None:
        return self._selected

    @property
    def selected_sn(self) -> int | None:
        return self._selected_sn

    def select(self, sn: int) -> UserRecord:
        users = self.store.users
        if not 1 <= sn <= len(users):
            raise LookupError(f"no user with sn={sn}")
        self._selected_sn = sn
        self._selected = users[sn - 1]
        return self._selected

    def clear_selection(self) -> None:
        self._selected = None
        self._selected_sn = None

    def _reconcile_selection(self) -> None:
        if self._selected is None:
            return
        users = self.store.users
        sn = self._selected_sn
        if sn is not None and sn <= len(users) and users[sn - 1] == self._selected:
            self._selected = users[sn - 1]
            return
        for i, user in enumerate(users):
            if user == self._selected:
                self._selected_sn = i + 1
                self._selected = user
                return
        self.clear_selection()

    # ---- derived view ----

    def visible_users(self) -> Sequence[tuple[int, UserRecord]]:
        """Filtered list as (sn, record), sn being canonical position + 1."""
        users = self.store.users
        positions = {id(u): i for i, u in enumerate(users)}
        return [(positions[id(u)] + 1, u) for u in apply_filter(users, self.query)]


@asynccontextmanager
async def lifespan_console(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncGenerator[UserConsole, None]:
    """Build, mount and finally tear down the console and its API client."""
    client = UsersApiClient(
        settings.users_api_base_url,
        timeout_seconds=settings.users_api_timeout_seconds,
        transport=transport,
    )
    console = UserConsole(client, toast_duration_ms=settings.toast_duration_ms)
    logger.info("Users API base URL: %s", client.base_url)
    try:
        await console.mount()
        yield console
    finally:
        await console.unmount()
        await client.aclose()
