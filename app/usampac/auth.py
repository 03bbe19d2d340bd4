from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any

from flask import Blueprint, current_app, g, redirect, render_template, request, session, url_for
from supabase import AuthError

from app.usampac.audit import record_event
from app.usampac.backend import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    BackendConfigError,
    backend_client,
    close_schema_dbs,
)
from app.usampac.models import CurrentUser

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    recent = [t for t in _login_attempts.get(ip, ()) if t > cutoff]
    if not recent:
        _login_attempts.pop(ip, None)
        return False
    _login_attempts[ip] = recent
    return len(recent) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def _auth_message(e: Exception) -> str:
    return getattr(e, "message", None) or str(e)


def _store_tokens(auth_session: Any) -> None:
    session[ACCESS_TOKEN_KEY] = auth_session.access_token
    session[REFRESH_TOKEN_KEY] = auth_session.refresh_token
    # Schema clients cached for this request carry the old token.
    close_schema_dbs()


def _clear_tokens() -> None:
    session.pop(ACCESS_TOKEN_KEY, None)
    session.pop(REFRESH_TOKEN_KEY, None)


def _refresh_user(client: Any) -> Any:
    refresh_token = session.get(REFRESH_TOKEN_KEY)
    if not refresh_token:
        return None
    try:
        res = client.auth.refresh_session(refresh_token)
    except AuthError as e:
        current_app.logger.info("Session refresh rejected: %s", _auth_message(e))
        return None
    if not res or not res.session:
        return None
    _store_tokens(res.session)
    return res.user


def load_current_user() -> None:
    """
    Loads g.current_user from the Supabase tokens in the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.current_user = None
    if request.path.startswith(("/static/", "/health", "/healthz")):
        return

    access_token = session.get(ACCESS_TOKEN_KEY)
    if not access_token:
        return

    try:
        client = backend_client()
    except BackendConfigError:
        _clear_tokens()
        return

    try:
        res = client.auth.get_user(access_token)
        user = res.user if res else None
    except AuthError as e:
        current_app.logger.info("Access token rejected (%s); trying refresh", _auth_message(e))
        user = _refresh_user(client)
    except Exception as e:
        current_app.logger.error("load_current_user auth error (clearing session): %s", e)
        user = None

    if not user:
        _clear_tokens()
        return
    g.current_user = CurrentUser.from_auth_user(user)


def _render_login(error: str | None, email: str = "", nxt: str = "", status: int = 200):
    return render_template("auth/login.html", error=error, email=email, next=nxt), status


@bp.get("/login")
def login_get():
    nxt = (request.args.get("next") or "").strip()
    return _render_login(None, nxt=nxt)


@bp.post("/login")
def login_post():
    email = (request.form.get("email") or "").strip().lower()
    password = request.form.get("password") or ""
    nxt = (request.form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        return _render_login("Too many login attempts. Please wait 5 minutes.", email, nxt, 429)

    _record_attempt(ip)

    try:
        client = backend_client()
    except BackendConfigError as e:
        current_app.logger.error("Login unavailable: %s", e)
        return _render_login(str(e), email, nxt)

    try:
        res = client.auth.sign_in_with_password({"email": email, "password": password})
    except AuthError as e:
        message = _auth_message(e)
        record_event(
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason=message,
        )
        return _render_login(message, email, nxt)

    if not res or not res.session or not res.user:
        return _render_login("Sign-in did not return a session.", email, nxt)

    _store_tokens(res.session)
    session.permanent = True
    _login_attempts.pop(ip, None)
    user = CurrentUser.from_auth_user(res.user)
    record_event(actor=user, action="auth.login", entity_type="User", entity_id=user.id)
    # Optional "next" redirect (only allow local paths to avoid open redirects).
    if nxt.startswith("/") and not nxt.startswith("//"):
        return redirect(nxt)
    return redirect(url_for("candidates.dashboard"))


@bp.get("/logout")
def logout():
    user = getattr(g, "current_user", None)
    access_token = session.get(ACCESS_TOKEN_KEY)
    if access_token:
        try:
            client = backend_client()
            client.auth.set_session(access_token, session.get(REFRESH_TOKEN_KEY) or "")
            client.auth.sign_out()
        except Exception as e:
            current_app.logger.info("Sign-out failed, clearing local session anyway: %s", e)
    if user:
        record_event(actor=user, action="auth.logout", entity_type="User", entity_id=user.id)
    _clear_tokens()
    return redirect(url_for("auth.login_get"))
