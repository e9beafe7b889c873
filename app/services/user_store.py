"""The canonical user list and the two operations that change it.

SINGLE-FLIGHT
---------------
Each operation kind (fetch, create) is a two-state machine:

    IDLE --start--> IN_FLIGHT --finish (success or failure)--> IDLE

Starting an operation that is already IN_FLIGHT is a caller error and
raises OperationInFlightError straight away.  Nothing is queued and
nothing is cancelled; the view disables the triggering control while the
flag is up, so a well-behaved caller never sees the error.  The state is
reset in a ``finally`` block, so every exit path (success, upstream
failure, validation failure, cancellation) leaves the kind IDLE.

The refetch after a create is the one caller that waits instead.  A
fetch already running at that point sent its request before the create
was acknowledged and may answer without the new user, so the refetch
waits for it to finish and then runs anyway.

LIST REPLACEMENT
------------------
The list is only ever replaced wholesale, never patched:

  fetch ok       -> records built from the normalized response
  fetch failed   -> empty list + error toast
  create ok      -> draft cleared, success toast, then one refetch
  create failed  -> list and draft untouched, error toast

The create response is never trusted as the new list; the refetch runs
strictly after the create has been acknowledged and after any fetch that
was already running.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Iterator
from contextlib import contextmanager

from app.core.metrics import USER_LIST_SIZE
from app.models.user import UserRecord
from app.services.form_state import DraftValidationError, FormState
from app.services.normalizer import normalize_users
from app.services.notifications import NotificationController, ToastKind
from app.services.users_client import TransportError, UsersApi

logger = logging.getLogger(__name__)

FETCH_FAILED_MESSAGE = "Failed to fetch users"
CREATE_FAILED_MESSAGE = "Failed to add user"
CREATED_MESSAGE = "User created successfully"


class OperationState(str, enum.Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"


class OperationKind(str, enum.Enum):
    FETCH = "fetch"
    CREATE = "create"


class OperationInFlightError(RuntimeError):
    def __init__(self, kind: OperationKind) -> None:
        super().__init__(f"{kind.value} already in flight")
        self.kind = kind


class UserStore:
    def __init__(self, client: UsersApi, notifications: NotificationController) -> None:
        self._client = client
        self._notifications = notifications
        self._users: tuple[UserRecord, ...] = ()
        self._states: dict[OperationKind, OperationState] = dict.fromkeys(
            OperationKind, OperationState.IDLE
        )
        # set when the current IN_FLIGHT episode of a kind ends
        self._finished: dict[OperationKind, asyncio.Event] = {}

    @property
    def users(self) -> tuple[UserRecord, ...]:
        return self._users

    def state_of(self, kind: OperationKind) -> OperationState:
        return self._states[kind]

    @property
    def loading(self) -> bool:
        return self._states[OperationKind.FETCH] is OperationState.IN_FLIGHT

    @property
    def submitting(self) -> bool:
        return self._states[OperationKind.CREATE] is OperationState.IN_FLIGHT

    @contextmanager
    def _in_flight(self, kind: OperationKind) -> Iterator[None]:
        if self._states[kind] is OperationState.IN_FLIGHT:
            logger.warning("Rejected concurrent %s", kind.value)
            raise OperationInFlightError(kind)
        self._states[kind] = OperationState.IN_FLIGHT
        finished = self._finished[kind] = asyncio.Event()
        try:
            yield
        finally:
            self._states[kind] = OperationState.IDLE
            finished.set()

    async def _wait_idle(self, kind: OperationKind) -> None:
        while self._states[kind] is OperationState.IN_FLIGHT:
            await self._finished[kind].wait()

    def _replace(self, users: tuple[UserRecord, ...]) -> None:
        self._users = users
        USER_LIST_SIZE.set(len(users))

    async def fetch_all(self) -> tuple[UserRecord, ...]:
        with self._in_flight(OperationKind.FETCH):
            try:
                body = await self._client.get_users()
            except TransportError as exc:
                self._replace(())
                self._notifications.show(
                    ToastKind.ERROR, exc.message or FETCH_FAILED_MESSAGE
                )
                return self._users

            self._replace(tuple(UserRecord.from_raw(e) for e in normalize_users(body)))
            logger.info(
                "User list replaced count=%d",
                len(self._users),
                extra={"operation": "fetch", "outcome": "ok"},
            )
            return self._users

    async def create(self, form: FormState) -> None:
        try:
            form.validate()
        except DraftValidationError as exc:
            self._notifications.show(ToastKind.ERROR, str(exc))
            raise

        draft = form.draft
        with self._in_flight(OperationKind.CREATE):
            try:
                await self._client.add_user(draft.name, draft.email)
            except TransportError as exc:
                self._notifications.show(
                    ToastKind.ERROR, exc.message or CREATE_FAILED_MESSAGE
                )
                raise
            form.reset()
            self._notifications.show(ToastKind.SUCCESS, CREATED_MESSAGE)
            logger.info(
                "User created email=%s",
                draft.email,
                extra={"operation": "create", "outcome": "ok"},
            )

        if self.loading:
            logger.info("Post-create refresh waiting for the running fetch")
            await self._wait_idle(OperationKind.FETCH)
        # _wait_idle returns without yielding once FETCH is idle
        await self.fetch_all()
