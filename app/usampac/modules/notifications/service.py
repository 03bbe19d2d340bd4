from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

from app.usampac.backend import execute
from app.usampac.crud import delete_row, save_row
from app.usampac.forms import clean_text, is_checked, parse_timestamp

if TYPE_CHECKING:
    from postgrest import SyncPostgrestClient

TABLE = "notifications"


def list_notifications(db: "SyncPostgrestClient") -> list[dict[str, Any]]:
    """Newest first."""
    query = db.table(TABLE).select("*").order("published_at", desc=True)
    res = execute(query, action=f"{TABLE}.list")
    return res.data or []


def validate_notification_form(form: Mapping[str, str]) -> list[str]:
    """Returns list of errors."""
    errors = []
    if not clean_text(form.get("title")):
        errors.append("Title is required.")
    try:
        parse_timestamp(form.get("published_at"))
    except ValueError:
        errors.append("Published at is not a valid date and time.")
    return errors


def build_notification_payload(form: Mapping[str, str]) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "title": clean_text(form.get("title")),
        "url": clean_text(form.get("url")),
        "body": clean_text(form.get("body")),
        "is_active": is_checked(form, "is_active"),
    }
    # Left out when blank so the backend default (or the stored value) stands.
    published_at = parse_timestamp(form.get("published_at"))
    if published_at:
        payload["published_at"] = published_at
    return payload


def save_notification(db: "SyncPostgrestClient", notification_id: str | None, payload: dict[str, Any]) -> str:
    return save_row(db, TABLE, notification_id, payload)


def delete_notification(db: "SyncPostgrestClient", notification_id: str) -> None:
    delete_row(db, TABLE, notification_id)
