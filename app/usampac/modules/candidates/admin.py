from __future__ import annotations

from flask import Blueprint, flash, g, request

from app.usampac.audit import record_event
from app.usampac.backend import BackendError, api_db
from app.usampac.modules.candidates.service import (
    approve_candidate,
    dashboard_summary,
    list_by_status,
    list_pending,
    reject_candidate,
)
from app.usampac.pages import render_page, revalidate
from app.usampac.rbac import require_admin

bp = Blueprint("candidates", __name__)


# ---------- Dashboard ----------
@bp.get("/dashboard")
@require_admin
def dashboard():
    error = None
    cards = []
    try:
        cards = dashboard_summary(api_db())
    except BackendError as e:
        error = e.message
    return render_page("candidates/dashboard.html", cards=cards, error=error)


# ---------- Lists ----------
@bp.get("/pending")
@require_admin
def pending():
    error = None
    rows = []
    try:
        rows = list_pending(api_db())
    except BackendError as e:
        error = e.message
    return render_page("candidates/pending.html", rows=rows, error=error)


def _reviewed(status: str, template: str):
    error = None
    rows = []
    try:
        rows = list_by_status(api_db(), status)
    except BackendError as e:
        error = e.message
    return render_page(template, rows=rows, error=error)


@bp.get("/approved")
@require_admin
def approved():
    return _reviewed("approved", "candidates/approved.html")


@bp.get("/rejected")
@require_admin
def rejected():
    return _reviewed("rejected", "candidates/rejected.html")


# ---------- Review actions ----------
def _review_post(action: str):
    user_id = (request.form.get("user_id") or "").strip()
    notes = request.form.get("notes") or ""
    if not user_id:
        flash("Candidate id is required.", "danger")
        return revalidate("candidates.pending")

    if action == "approve":
        approve_candidate(api_db(), user_id, notes)
    else:
        reject_candidate(api_db(), user_id, notes)

    record_event(
        actor=g.current_user,
        action=f"candidate.{action}",
        entity_type="CandidateProfile",
        entity_id=user_id,
        reason=notes.strip() or None,
    )
    flash("Candidate approved." if action == "approve" else "Candidate rejected.", "success")
    return revalidate("candidates.pending")


@bp.post("/pending/approve")
@require_admin
def pending_approve():
    return _review_post("approve")


@bp.post("/pending/reject")
@require_admin
def pending_reject():
    return _review_post("reject")
