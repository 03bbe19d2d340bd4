from __future__ import annotations

from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Mapping

from app.usampac.backend import execute
from app.usampac.crud import delete_row, save_row
from app.usampac.forms import clean_text, is_checked, parse_position, slug_or_derived

if TYPE_CHECKING:
    from postgrest import SyncPostgrestClient

POLLS_TABLE = "polls"
OPTIONS_TABLE = "poll_options"
SLUG_FALLBACK = "poll"


def load_polls(db: "SyncPostgrestClient") -> tuple[list[dict[str, Any]], dict[str, list[dict[str, Any]]]]:
    """Polls newest first, plus their options grouped by poll id in position order."""
    polls_q = db.table(POLLS_TABLE).select("*").order("created_at", desc=True)
    options_q = db.table(OPTIONS_TABLE).select("*").order("position")
    with ThreadPoolExecutor(max_workers=2) as pool:
        polls_f = pool.submit(execute, polls_q, f"{POLLS_TABLE}.list")
        options_f = pool.submit(execute, options_q, f"{OPTIONS_TABLE}.list")
        polls = polls_f.result().data or []
        options = options_f.result().data or []

    options_by_poll: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for opt in options:
        options_by_poll[str(opt.get("poll_id"))].append(opt)
    return polls, dict(options_by_poll)


# ---------- Polls ----------
def validate_poll_form(form: Mapping[str, str]) -> list[str]:
    errors = []
    if not clean_text(form.get("title")):
        errors.append("Title is required.")
    return errors


def build_poll_payload(form: Mapping[str, str]) -> dict[str, Any]:
    title = clean_text(form.get("title")) or ""
    return {
        "title": title,
        "subtitle": clean_text(form.get("subtitle")),
        "slug": slug_or_derived(form.get("slug"), title, SLUG_FALLBACK),
        "is_active": is_checked(form, "is_active"),
    }


def save_poll(db: "SyncPostgrestClient", poll_id: str | None, payload: dict[str, Any]) -> str:
    return save_row(db, POLLS_TABLE, poll_id, payload)


def delete_poll(db: "SyncPostgrestClient", poll_id: str) -> None:
    # Options are left in place; see DESIGN.md before adding a cascade here.
    delete_row(db, POLLS_TABLE, poll_id)


# ---------- Options ----------
def validate_option_form(form: Mapping[str, str]) -> list[str]:
    errors = []
    if not clean_text(form.get("poll_id")):
        errors.append("Poll is required.")
    if not clean_text(form.get("label")):
        errors.append("Option label is required.")
    return errors


def build_option_payload(form: Mapping[str, str]) -> dict[str, Any]:
    return {
        "poll_id": clean_text(form.get("poll_id")),
        "label": clean_text(form.get("label")),
        "position": parse_position(form.get("position")),
    }


def save_option(db: "SyncPostgrestClient", option_id: str | None, payload: dict[str, Any]) -> str:
    return save_row(db, OPTIONS_TABLE, option_id, payload)


def delete_option(db: "SyncPostgrestClient", option_id: str) -> None:
    delete_row(db, OPTIONS_TABLE, option_id)
