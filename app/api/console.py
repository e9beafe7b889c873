"""User console pages: the list, the add-user form, toast and detail modal.

Every action is a plain HTML form post answered with 303 See Other back
to ``/`` (Post/Redirect/Get), so a browser refresh never re-submits.
``GET /state`` exposes the same view state as JSON for scripts and tests.

Markup is inline and escaped with ``html.escape``; there is one page, so
a template engine would be more machinery than the page itself.
"""

from __future__ import annotations

import html
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import BaseModel

from app.models.user import UserRecord
from app.services.console import UserConsole
from app.services.user_store import OperationInFlightError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["console"])


def get_console(request: Request) -> UserConsole:
    console = getattr(request.app.state, "console", None)
    if console is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="console not mounted",
        )
    return console


ConsoleDep = Annotated[UserConsole, Depends(get_console)]


def _back_home() -> RedirectResponse:
    return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)


def _in_flight_conflict(exc: OperationInFlightError) -> HTTPException:
    logger.warning("Rejected request while %s in flight", exc.kind.value)
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


# ---------------------------------------------------------------------------
# JSON state
# ---------------------------------------------------------------------------


class UserOut(BaseModel):
    sn: int
    name: str
    email: str
    id: str | None = None


class ToastOut(BaseModel):
    kind: str
    message: str


class DraftOut(BaseModel):
    name: str
    email: str


class ConsoleStateOut(BaseModel):
    users: list[UserOut]
    total: int
    query: str
    loading: bool
    submitting: bool
    toast: ToastOut | None
    draft: DraftOut
    selected: UserOut | None


def _user_out(sn: int, user: UserRecord) -> UserOut:
    return UserOut(sn=sn, name=user.display_name, email=user.display_email, id=user.id)


def _selected_out(console: UserConsole) -> UserOut | None:
    selected, sn = console.selected, console.selected_sn
    if selected is None or sn is None:
        return None
    return _user_out(sn, selected)


@router.get("/state", response_model=ConsoleStateOut)
async def get_state(console: ConsoleDep) -> ConsoleStateOut:
    toast = console.notifications.current
    draft = console.form.draft
    return ConsoleStateOut(
        users=[_user_out(sn, u) for sn, u in console.visible_users()],
        total=len(console.store.users),
        query=console.query,
        loading=console.store.loading,
        submitting=console.store.submitting,
        toast=ToastOut(kind=toast.kind.value, message=toast.message) if toast else None,
        draft=DraftOut(name=draft.name, email=draft.email),
        selected=_selected_out(console),
    )


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


@router.post("/users")
async def post_user(
    console: ConsoleDep,
    name: Annotated[str, Form()] = "",
    email: Annotated[str, Form()] = "",
) -> RedirectResponse:
    try:
        await console.submit(name, email)
    except OperationInFlightError as exc:
        raise _in_flight_conflict(exc) from None
    return _back_home()


@router.post("/refresh")
async def post_refresh(console: ConsoleDep) -> RedirectResponse:
    try:
        await console.refresh()
    except OperationInFlightError as exc:
        raise _in_flight_conflict(exc) from None
    return _back_home()


@router.post("/users/{sn}/select")
async def post_select(sn: int, console: ConsoleDep) -> RedirectResponse:
    try:
        console.select(sn)
    except LookupError as e:
        logger.warning("Select rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="user not found",
        ) from None
    return _back_home()


@router.post("/selection/clear")
async def post_clear_selection(console: ConsoleDep) -> RedirectResponse:
    console.clear_selection()
    return _back_home()


@router.post("/toast/dismiss")
async def post_dismiss_toast(console: ConsoleDep) -> RedirectResponse:
    console.dismiss_toast()
    return _back_home()


# ---------------------------------------------------------------------------
# Page
# ---------------------------------------------------------------------------

_PAGE_HTML = """\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>Users | user-console</title>
  <style>
    * {{ margin: 0; padding: 0; box-sizing: border-box; }}
    body {{ font-family: system-ui, sans-serif; background: #eef4fb; }}
    nav {{ background: #fff; padding: 1rem 1.5rem; font-weight: 700;
          color: #2563eb; box-shadow: 0 1px 4px rgba(0,0,0,.08); }}
    main {{ display: grid; grid-template-columns: 1fr 1fr; gap: 2rem;
           padding: 2rem; }}
    .card {{ background: #fff; border-radius: 8px; padding: 1rem;
            box-shadow: 0 2px 8px rgba(0,0,0,.08); margin-bottom: .75rem; }}
    input {{ width: 100%; padding: .5rem; margin-bottom: 1rem;
            border: 1px solid #ccc; border-radius: 4px; }}
    button {{ padding: .5rem 1rem; background: #2563eb; color: #fff;
             border: none; border-radius: 4px; cursor: pointer; }}
    button[disabled] {{ background: #93c5fd; cursor: default; }}
    .toast {{ position: fixed; top: 1rem; right: 1rem; padding: .75rem 1rem;
             border-radius: 6px; color: #fff; }}
    .toast.success {{ background: #16a34a; }}
    .toast.error {{ background: #dc2626; }}
    .overlay {{ position: fixed; inset: 0; background: rgba(0,0,0,.4);
               display: flex; align-items: center; justify-content: center; }}
    .empty {{ color: #666; text-align: center; }}
  </style>
</head>
<body>
  <nav>User Console</nav>
  {toast}
  <main>
    <section>
      <h3>Users List ({total})</h3>
      <form method="get" action="/">
        <input name="q" type="search" value="{query}" placeholder="Search by name or email">
      </form>
      <form method="post" action="/refresh">
        <button type="submit"{refresh_disabled}>{refresh_label}</button>
      </form>
      {users}
    </section>
    <section class="card">
      <h2>Add User</h2>
      <form method="post" action="/users">
        <label for="name">User Name</label>
        <input id="name" name="name" type="text" value="{draft_name}"
               placeholder="Enter user name" required>
        <label for="email">Email</label>
        <input id="email" name="email" type="email" value="{draft_email}"
               placeholder="Enter email" required>
        <button type="submit"{submit_disabled}>{submit_label}</button>
      </form>
    </section>
  </main>
  {modal}
</body>
</html>
"""

_USER_CARD = """\
<div class="card">
  <form method="post" action="/users/{sn}/select">
    <strong>{sn}. {name}</strong>
    <div>{email}</div>
    <button type="submit">Details</button>
  </form>
</div>"""

_TOAST = """\
<form class="toast {kind}" method="post" action="/toast/dismiss">
  {message} <button type="submit">&times;</button>
</form>"""

_MODAL = """\
<form class="overlay" method="post" action="/selection/clear">
  <div class="card">
    <h3>{name}</h3>
    <p>Email: {email}</p>
    <p>ID: {user_id}</p>
    <button type="submit">Close</button>
  </div>
</form>"""


def _esc(value: str) -> str:
    return html.escape(value, quote=True)


def _disabled(flag: bool) -> str:
    return " disabled" if flag else ""


def render_page(console: UserConsole) -> str:
    visible = console.visible_users()
    if visible:
        users_block = "\n".join(
            _USER_CARD.format(
                sn=sn, name=_esc(u.display_name), email=_esc(u.display_email)
            )
            for sn, u in visible
        )
    elif console.query:
        users_block = '<p class="empty">No users match your search.</p>'
    else:
        users_block = '<p class="empty">No users yet.</p>'

    toast = console.notifications.current
    toast_block = (
        _TOAST.format(kind=toast.kind.value, message=_esc(toast.message))
        if toast
        else ""
    )

    selected = console.selected
    modal_block = (
        _MODAL.format(
            name=_esc(selected.display_name),
            email=_esc(selected.display_email),
            user_id=_esc(selected.id or "-"),
        )
        if selected
        else ""
    )

    draft = console.form.draft
    store = console.store
    return _PAGE_HTML.format(
        toast=toast_block,
        total=len(store.users),
        query=_esc(console.query),
        refresh_disabled=_disabled(store.loading),
        refresh_label="Loading..." if store.loading else "Refresh",
        users=users_block,
        draft_name=_esc(draft.name),
        draft_email=_esc(draft.email),
        submit_disabled=_disabled(store.submitting),
        submit_label="Adding..." if store.submitting else "Add User",
        modal=modal_block,
    )


@router.get("/")
async def console_page(
    console: ConsoleDep,
    q: str | None = Query(None),
) -> HTMLResponse:
    if q is not None:
        console.search(q)
    return HTMLResponse(render_page(console))
