from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx
from flask import Flask, current_app, g, session
from postgrest import SyncPostgrestClient
from postgrest.exceptions import APIError
from supabase import Client, ClientOptions, create_client

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "sb_access_token"
REFRESH_TOKEN_KEY = "sb_refresh_token"

MISSING_CONFIG_MESSAGE = "Missing Supabase environment variables"
INVALID_URL_MESSAGE = "SUPABASE_URL must start with http:// or https://"


class BackendConfigError(RuntimeError):
    """Supabase endpoint or key is missing or malformed."""


class BackendError(RuntimeError):
    """A table query or procedure call was rejected by the backend."""

    def __init__(self, message: str, action: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.action = action


def check_backend_config(config: Mapping[str, Any]) -> tuple[str, str]:
    url = (config.get("SUPABASE_URL") or "").strip()
    key = (config.get("SUPABASE_ANON_KEY") or "").strip()
    if not url or not key:
        raise BackendConfigError(MISSING_CONFIG_MESSAGE)
    if not url.startswith(("http://", "https://")):
        raise BackendConfigError(INVALID_URL_MESSAGE)
    return url.rstrip("/"), key


def init_backend(app: Flask) -> None:
    try:
        url, _key = check_backend_config(app.config)
    except BackendConfigError as e:
        # Not fatal: the login form reports it to the operator.
        app.logger.error("BACKEND CONFIG ERROR: %s", e)
        return
    app.logger.info("Backend configured: %s (api schema=%s)", url, app.config.get("SUPABASE_API_SCHEMA"))


def create_backend_client(config: Mapping[str, Any]) -> Client:
    url, key = check_backend_config(config)
    options = ClientOptions(auto_refresh_token=False, persist_session=False)
    return create_client(url, key, options=options)


def create_db(config: Mapping[str, Any], schema: str, access_token: str | None = None) -> SyncPostgrestClient:
    url, key = check_backend_config(config)
    headers = {
        "apikey": key,
        "Authorization": f"Bearer {access_token or key}",
    }
    return SyncPostgrestClient(f"{url}/rest/v1", schema=schema, headers=headers)


def backend_client() -> Client:
    """
    Request-scoped Supabase client (auth endpoints).
    """
    client = getattr(g, "backend_client", None)
    if client is None:
        client = create_backend_client(current_app.config)
        g.backend_client = client
    return client


def _schema_db(schema: str) -> SyncPostgrestClient:
    cache: dict[str, SyncPostgrestClient] | None = getattr(g, "backend_dbs", None)
    if cache is None:
        cache = {}
        g.backend_dbs = cache
    db = cache.get(schema)
    if db is None:
        # Queries run as the signed-in user so row-level security applies.
        db = create_db(current_app.config, schema, session.get(ACCESS_TOKEN_KEY))
        cache[schema] = db
    return db


def api_db() -> SyncPostgrestClient:
    return _schema_db(current_app.config["SUPABASE_API_SCHEMA"])


def public_db() -> SyncPostgrestClient:
    return _schema_db(current_app.config["SUPABASE_PUBLIC_SCHEMA"])


def execute(query: Any, action: str) -> Any:
    try:
        return query.execute()
    except APIError as e:
        message = e.message or str(e)
        logger.error("Backend call failed (%s): %s", action, message)
        raise BackendError(message, action=action) from e
    except httpx.HTTPError as e:
        # Connection refused, timeouts, TLS: the backend never answered.
        message = str(e) or e.__class__.__name__
        logger.error("Backend unreachable (%s): %s", action, message)
        raise BackendError(message, action=action) from e


def _close_quietly(http_client: Any, what: str) -> None:
    if http_client is None:
        return
    try:
        http_client.close()
    except Exception as e:
        logger.debug("Closing %s failed: %s", what, e)


def close_schema_dbs() -> None:
    """Close and forget the request's cached PostgREST clients."""
    dbs: dict[str, SyncPostgrestClient] | None = getattr(g, "backend_dbs", None)
    if dbs:
        for schema, db in dbs.items():
            _close_quietly(getattr(db, "session", None), f"{schema} backend session")
    g.backend_dbs = None


def teardown_backend(_exc: BaseException | None) -> None:
    close_schema_dbs()
    client = getattr(g, "backend_client", None)
    if client is not None:
        # The sync auth client has no public close; its httpx pool is private.
        _close_quietly(getattr(client.auth, "_http_client", None), "auth client")
    g.backend_client = None
