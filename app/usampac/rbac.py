"""
Admin gate for dashboard pages.

This layer is not the security boundary. Every query runs with the signed-in
user's token, so the backend's row-level security policies decide what can
actually be read or written. The role check here only keeps non-admins away
from the pages; when the role lookup itself fails, ROLE_CHECK_MODE decides
whether to defer to the backend ("fail_open", the default) or to send the
user back to the login page ("fail_closed").
"""
from collections.abc import Callable
from functools import wraps
from typing import Any
from urllib.parse import urlsplit

from flask import current_app, g, redirect, request, url_for

from app.usampac.backend import BackendError, execute, public_db
from app.usampac.models import CurrentUser


def fetch_role(user_id: str) -> str | None:
    query = public_db().table("app_users").select("role").eq("auth_sub", user_id).limit(1).single()
    res = execute(query, action="app_users.role")
    row = res.data or {}
    return row.get("role")


def _next_path() -> str:
    """Where to land after sign-in. Only GET targets can be replayed."""
    if request.method != "GET":
        ref = urlsplit(request.referrer or "")
        if ref.path.startswith("/") and ref.netloc == request.host:
            return ref.path + (f"?{ref.query}" if ref.query else "")
        return url_for("candidates.dashboard")
    nxt = request.full_path or request.path
    # Avoid trailing '?' from full_path when there is no query string.
    if nxt.endswith("?"):
        nxt = nxt[:-1]
    return nxt


def _login_redirect():
    return redirect(url_for("auth.login_get", next=_next_path()))


def user_is_admin(user: CurrentUser) -> bool | None:
    """True/False when the role could be read, None when the lookup failed."""
    try:
        role = fetch_role(user.id)
    except BackendError as e:
        current_app.logger.warning("Role lookup failed for user=%s: %s", user.id, e.message)
        return None
    return role == current_app.config["ADMIN_ROLE"]


def require_admin(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        user: CurrentUser | None = getattr(g, "current_user", None)
        if not user:
            return _login_redirect()
        is_admin = user_is_admin(user)
        if is_admin is None:
            if current_app.config.get("ROLE_CHECK_MODE") == "fail_closed":
                return _login_redirect()
            # rely on RLS
        elif not is_admin:
            current_app.logger.info("Non-admin user=%s sent to login (path=%s)", user.id, request.path)
            return _login_redirect()
        return fn(*args, **kwargs)

    return wrapped
