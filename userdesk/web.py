"""Server-rendered dashboard for managing directory users."""
from __future__ import annotations

import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import FastAPI, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from .client import UserDirectoryClient
from .config import Settings, load_settings
from .identity import DEFAULT_IDENTITY, resolve_identity
from .models import MutationDraft
from .sessions import DashboardSessions
from .views import UserListView

logger = logging.getLogger("userdesk.web")

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

SESSION_VIEW_KEY = "dashboard_token"


def _trusted_proxy_hosts() -> list[str] | str:
    raw = os.getenv("USERDESK_TRUSTED_PROXIES")
    if not raw:
        return "*"
    hosts = [item.strip() for item in raw.split(",") if item.strip()]
    return hosts or "*"


def _is_confirmed(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def create_app(
    *,
    settings: Optional[Settings] = None,
    client: Optional[UserDirectoryClient] = None,
    session_secret: Optional[str] = None,
    sessions: Optional[DashboardSessions] = None,
) -> FastAPI:
    """Create the dashboard web application."""

    if settings is None:
        settings = load_settings()

    if session_secret is None:
        session_secret = settings.session_secret
    if not session_secret:
        raise RuntimeError("USERDESK_SESSION_SECRET must be configured to use the dashboard")

    if client is None:
        client = UserDirectoryClient(
            settings.api_base_url,
            timeout=settings.request_timeout,
            verify=settings.verify_tls,
        )
    if sessions is None:
        sessions = DashboardSessions(ttl=timedelta(minutes=settings.session_ttl_minutes))

    app = FastAPI(
        title="userdesk",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=_trusted_proxy_hosts())
    app.state.settings = settings
    app.state.client = client
    app.state.sessions = sessions

    secure_cookie_setting = os.getenv("USERDESK_SESSION_SECURE")
    if secure_cookie_setting is None:
        secure_cookie = False
    else:
        secure_cookie = secure_cookie_setting.strip().lower() not in {
            "0",
            "false",
            "no",
        }

    app.add_middleware(
        SessionMiddleware,
        secret_key=session_secret,
        session_cookie="userdesk_session",
        https_only=secure_cookie,
        same_site="lax",
        max_age=int(sessions.ttl.total_seconds()),
    )

    templates = Jinja2Templates(directory=str(TEMPLATE_DIR))
    templates.env.globals["api_base_url"] = client.base_url

    def _flash(request: Request, message: str, *, category: str = "info") -> None:
        messages = request.session.get("flash_messages")
        if not isinstance(messages, list):
            messages = []
        messages.append({"message": message, "category": category})
        request.session["flash_messages"] = messages

    def _consume_flash(request: Request) -> List[Dict[str, str]]:
        messages = request.session.pop("flash_messages", [])
        if isinstance(messages, list):
            return messages
        return []

    async def _view_for(request: Request, user_id: Optional[str]) -> UserListView:
        identity = resolve_identity(user_id)
        view = sessions.resolve(request.session.get(SESSION_VIEW_KEY))
        if view is None:
            view = UserListView(client, identity, manager_id=settings.manager_id)
            request.session[SESSION_VIEW_KEY] = sessions.create(view)
            logger.info("Opened dashboard session for identity %s", identity)
        # Loads on first use and whenever the identity in the path changes.
        await view.change_identity(identity)
        return view

    def _redirect_to_dashboard(request: Request, identity: str) -> RedirectResponse:
        return RedirectResponse(
            request.url_for("dashboard", user_id=identity),
            status_code=status.HTTP_303_SEE_OTHER,
        )

    def _draft(name: str, roles: str, groups: str) -> MutationDraft:
        return MutationDraft(name=name, roles_text=roles, groups_text=groups)

    @app.get("/", response_class=HTMLResponse)
    async def root(request: Request):
        return _redirect_to_dashboard(request, DEFAULT_IDENTITY)

    @app.get("/dashboard", response_class=HTMLResponse, name="default_dashboard")
    async def default_dashboard(request: Request):
        return _redirect_to_dashboard(request, DEFAULT_IDENTITY)

    @app.get("/dashboard/{user_id}", response_class=HTMLResponse, name="dashboard")
    async def dashboard(request: Request, user_id: str):
        identity = resolve_identity(user_id)
        if identity != user_id:
            return _redirect_to_dashboard(request, identity)

        view = await _view_for(request, identity)
        return templates.TemplateResponse(
            request,
            "dashboard.html",
            {
                "view": view.to_view(),
                "create_form": view.create_form,
                "editing": view.editing,
                "messages": _consume_flash(request),
            },
        )

    @app.post("/dashboard/{user_id}/refresh", name="refresh_users")
    async def refresh_users(request: Request, user_id: str):
        view = await _view_for(request, user_id)
        await view.refresh()
        return _redirect_to_dashboard(request, view.identity)

    @app.post("/dashboard/{user_id}/users", name="create_user")
    async def create_user(
        request: Request,
        user_id: str,
        name: str = Form(""),
        roles: str = Form(""),
        groups: str = Form(""),
    ):
        view = await _view_for(request, user_id)
        await view.submit_create(_draft(name, roles, groups))
        return _redirect_to_dashboard(request, view.identity)

    @app.post("/dashboard/{user_id}/users/{target_id}/edit", name="begin_edit")
    async def begin_edit(request: Request, user_id: str, target_id: str):
        view = await _view_for(request, user_id)
        try:
            view.begin_edit(target_id)
        except KeyError:
            _flash(request, f"User {target_id} is not in the current list.", category="error")
        return _redirect_to_dashboard(request, view.identity)

    @app.post("/dashboard/{user_id}/edit", name="submit_edit")
    async def submit_edit(
        request: Request,
        user_id: str,
        name: str = Form(""),
        roles: str = Form(""),
        groups: str = Form(""),
    ):
        view = await _view_for(request, user_id)
        form = view.editing
        if form is None:
            _flash(request, "No user is currently being edited.", category="error")
            return _redirect_to_dashboard(request, view.identity)

        updated = await view.submit_edit(_draft(name, roles, groups))
        if updated is not None:
            _flash(request, form.status, category="success")
        return _redirect_to_dashboard(request, view.identity)

    @app.post("/dashboard/{user_id}/edit/cancel", name="cancel_edit")
    async def cancel_edit(request: Request, user_id: str):
        view = await _view_for(request, user_id)
        view.cancel_edit()
        return _redirect_to_dashboard(request, view.identity)

    @app.post("/dashboard/{user_id}/users/{target_id}/delete", name="delete_user")
    async def delete_user(
        request: Request,
        user_id: str,
        target_id: str,
        confirm: str = Form(""),
    ):
        view = await _view_for(request, user_id)
        outcome = await view.request_delete(target_id, lambda _prompt: _is_confirmed(confirm))
        if outcome.alert:
            _flash(request, outcome.alert, category="alert")
        elif outcome.deleted:
            _flash(request, f"Deleted user {target_id}.", category="success")
        return _redirect_to_dashboard(request, view.identity)

    return app


__all__ = ["create_app"]
