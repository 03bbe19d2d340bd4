from __future__ import annotations

from flask import Blueprint, flash, g, request

from app.usampac.audit import record_event
from app.usampac.backend import BackendError, api_db
from app.usampac.forms import form_id
from app.usampac.modules.polls.service import (
    build_option_payload,
    build_poll_payload,
    delete_option,
    delete_poll,
    load_polls,
    save_option,
    save_poll,
    validate_option_form,
    validate_poll_form,
)
from app.usampac.pages import render_page, revalidate
from app.usampac.rbac import require_admin

bp = Blueprint("polls", __name__)

LIST_ENDPOINT = "polls.polls_list"


def _flash_errors(errors: list[str]) -> None:
    for e in errors:
        flash(e, "danger")


# ---------- List ----------
@bp.get("/polls")
@require_admin
def polls_list():
    error = None
    polls, options_by_poll = [], {}
    try:
        polls, options_by_poll = load_polls(api_db())
    except BackendError as e:
        error = e.message
    return render_page("polls/list.html", polls=polls, options_by_poll=options_by_poll, error=error)


# ---------- Polls ----------
@bp.post("/polls/save")
@require_admin
def polls_save():
    errors = validate_poll_form(request.form)
    if errors:
        _flash_errors(errors)
        return revalidate(LIST_ENDPOINT)

    poll_id = form_id(request.form.get("id"))
    payload = build_poll_payload(request.form)
    op = save_poll(api_db(), poll_id, payload)
    record_event(
        actor=g.current_user,
        action=f"poll.{op}",
        entity_type="Poll",
        entity_id=poll_id,
        metadata={"title": payload["title"], "slug": payload["slug"]},
    )
    flash("Poll saved.", "success")
    return revalidate(LIST_ENDPOINT)


@bp.post("/polls/delete")
@require_admin
def polls_delete():
    poll_id = form_id(request.form.get("id"))
    if poll_id:
        delete_poll(api_db(), poll_id)
        record_event(actor=g.current_user, action="poll.delete", entity_type="Poll", entity_id=poll_id)
        flash("Poll deleted.", "success")
    return revalidate(LIST_ENDPOINT)


# ---------- Options ----------
@bp.post("/polls/options/save")
@require_admin
def poll_options_save():
    errors = validate_option_form(request.form)
    if errors:
        _flash_errors(errors)
        return revalidate(LIST_ENDPOINT)

    option_id = form_id(request.form.get("id"))
    payload = build_option_payload(request.form)
    op = save_option(api_db(), option_id, payload)
    record_event(
        actor=g.current_user,
        action=f"poll_option.{op}",
        entity_type="PollOption",
        entity_id=option_id,
        metadata={"poll_id": payload["poll_id"], "label": payload["label"]},
    )
    flash("Option saved.", "success")
    return revalidate(LIST_ENDPOINT)


@bp.post("/polls/options/delete")
@require_admin
def poll_options_delete():
    option_id = form_id(request.form.get("id"))
    if option_id:
        delete_option(api_db(), option_id)
        record_event(actor=g.current_user, action="poll_option.delete", entity_type="PollOption", entity_id=option_id)
        flash("Option deleted.", "success")
    return revalidate(LIST_ENDPOINT)
