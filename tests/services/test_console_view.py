from __future__ import annotations

import asyncio
from typing import Any

import pytest

from app.models.user import Draft, UserRecord
from app.services.console import UserConsole
from app.services.notifications import ToastKind
from app.services.user_store import OperationInFlightError
from app.services.users_client import TransportError, UsersApiClient
from tests.conftest import UPSTREAM_BASE_URL, FakeScheduler, FakeUsersApi


def _console(upstream: FakeUsersApi, scheduler: FakeScheduler) -> UserConsole:
    client = UsersApiClient(UPSTREAM_BASE_URL, transport=upstream.transport())
    return UserConsole(client, scheduler=scheduler)


def _mounted(upstream: FakeUsersApi, scheduler: FakeScheduler) -> UserConsole:
    console = _console(upstream, scheduler)
    asyncio.run(console.mount())
    return console


def test_mount_loads_users(upstream: FakeUsersApi, scheduler: FakeScheduler) -> None:
    console = _mounted(upstream, scheduler)
    assert console.mounted is True
    assert upstream.get_calls == 1
    assert [u.name for u in console.store.users] == ["Ann", "Bob"]


def test_mount_survives_upstream_outage(
    upstream: FakeUsersApi, scheduler: FakeScheduler
) -> None:
    upstream.fail_get = 502
    console = _mounted(upstream, scheduler)
    assert console.mounted is True
    assert console.store.users == ()
    assert console.notifications.current is not None


def test_unmount_cancels_toast_timer(
    upstream: FakeUsersApi, scheduler: FakeScheduler
) -> None:
    console = _mounted(upstream, scheduler)
    console.notifications.show(ToastKind.SUCCESS, "hi")
    asyncio.run(console.unmount())
    assert scheduler.pending == []
    assert console.mounted is False


def test_visible_users_carry_canonical_serial_numbers(
    upstream: FakeUsersApi, scheduler: FakeScheduler
) -> None:
    console = _mounted(upstream, scheduler)
    assert [(sn, u.name) for sn, u in console.visible_users()] == [
        (1, "Ann"),
        (2, "Bob"),
    ]
    console.search("bob")
    assert [(sn, u.name) for sn, u in console.visible_users()] == [(2, "Bob")]


def test_search_keeps_query_as_typed(
    upstream: FakeUsersApi, scheduler: FakeScheduler
) -> None:
    upstream.users.append({"name": "Ann Lee", "email": "al@example.com"})
    console = _mounted(upstream, scheduler)
    console.search(" ")
    assert console.query == " "
    assert [u.name for _, u in console.visible_users()] == ["Ann Lee"]
    console.search(None)
    assert console.query == ""
    assert len(console.visible_users()) == 2


def test_submit_success(upstream: FakeUsersApi, scheduler: FakeScheduler) -> None:
    console = _mounted(upstream, scheduler)
    assert asyncio.run(console.submit("Cy", "cy@example.com")) is True
    assert console.form.draft == Draft()
    assert console.store.users[-1].name == "Cy"
    assert upstream.get_calls == 2


def test_submit_validation_failure_keeps_typed_values(
    upstream: FakeUsersApi, scheduler: FakeScheduler
) -> None:
    console = _mounted(upstream, scheduler)
    assert asyncio.run(console.submit("Cy", " ")) is False
    assert console.form.draft == Draft(name="Cy", email=" ")
    assert upstream.add_calls == []


def test_submit_transport_failure_returns_false(
    upstream: FakeUsersApi, scheduler: FakeScheduler
) -> None:
    upstream.fail_add = 500
    console = _mounted(upstream, scheduler)
    assert asyncio.run(console.submit("Cy", "cy@example.com")) is False
    assert console.notifications.current is not None
    assert console.notifications.current.kind is ToastKind.ERROR


def test_submit_while_create_in_flight_leaves_draft(scheduler: FakeScheduler) -> None:
    class _FailingAddApi:
        def __init__(self) -> None:
            self.gate = asyncio.Event()

        async def get_users(self) -> Any:
            return []

        async def add_user(self, name: str, email: str) -> Any:
            await self.gate.wait()
            raise TransportError("add broke", status_code=500)

    api = _FailingAddApi()
    console = UserConsole(api, scheduler=scheduler)

    async def scenario() -> None:
        first = asyncio.create_task(console.submit("Cy", "cy@example.com"))
        await asyncio.sleep(0)
        with pytest.raises(OperationInFlightError):
            await console.submit("Dee", "dee@example.com")
        assert console.form.draft == Draft(name="Cy", email="cy@example.com")
        api.gate.set()
        assert await first is False

    asyncio.run(scenario())
    assert console.form.draft == Draft(name="Cy", email="cy@example.com")


def test_select_and_clear(upstream: FakeUsersApi, scheduler: FakeScheduler) -> None:
    console = _mounted(upstream, scheduler)
    assert console.select(2) == UserRecord(name="Bob", email="bob@example.com")
    assert console.selected is console.store.users[1]
    assert console.selected_sn == 2
    console.clear_selection()
    assert console.selected is None


@pytest.mark.parametrize("sn", [0, 3, -1])
def test_select_out_of_range(
    upstream: FakeUsersApi, scheduler: FakeScheduler, sn: int
) -> None:
    console = _mounted(upstream, scheduler)
    with pytest.raises(LookupError):
        console.select(sn)


def test_selection_dropped_when_user_disappears(
    upstream: FakeUsersApi, scheduler: FakeScheduler
) -> None:
    console = _mounted(upstream, scheduler)
    console.select(2)
    upstream.users.pop()
    asyncio.run(console.refresh())
    assert console.selected is None


def test_selection_kept_when_user_still_listed(
    upstream: FakeUsersApi, scheduler: FakeScheduler
) -> None:
    console = _mounted(upstream, scheduler)
    console.select(1)
    asyncio.run(console.refresh())
    assert console.selected == UserRecord(name="Ann", email="ann@example.com")


def test_selection_follows_record_to_new_position(
    upstream: FakeUsersApi, scheduler: FakeScheduler
) -> None:
    console = _mounted(upstream, scheduler)
    console.select(2)
    upstream.users.insert(0, {"name": "Zed", "email": "zed@example.com"})
    asyncio.run(console.refresh())
    assert console.selected_sn == 3
    assert console.selected == UserRecord(name="Bob", email="bob@example.com")


def test_dismiss_toast(upstream: FakeUsersApi, scheduler: FakeScheduler) -> None:
    console = _mounted(upstream, scheduler)
    console.notifications.show(ToastKind.ERROR, "x")
    console.dismiss_toast()
    assert console.notifications.current is None
    assert scheduler.pending == []
