from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from app.usampac.backend import execute
from app.usampac.forms import clean_text
from app.usampac.models import CANDIDATE_STATUSES

if TYPE_CHECKING:
    from postgrest import SyncPostgrestClient

logger = logging.getLogger(__name__)

PENDING_TABLE = "candidate_profiles_pending"
ADMIN_TABLE = "candidate_profiles_admin"

APPROVE_PROCEDURE = "approve_candidate"
REJECT_PROCEDURE = "reject_candidate"

DASHBOARD_SAMPLE_SIZE = 10
_SAMPLE_COLUMNS = "user_id,display_name,email,office_level,office_name,city_name,state_code,cycle"


@dataclass
class DashboardCard:
    title: str
    endpoint: str
    count: int = 0
    rows: list[dict[str, Any]] = field(default_factory=list)


def list_pending(db: "SyncPostgrestClient") -> list[dict[str, Any]]:
    res = execute(db.table(PENDING_TABLE).select("*"), action=f"{PENDING_TABLE}.list")
    return res.data or []


def list_by_status(db: "SyncPostgrestClient", status: str) -> list[dict[str, Any]]:
    """Reviewed candidates (approved or rejected) from the admin view."""
    if status not in CANDIDATE_STATUSES or status == "pending":
        raise ValueError(f"Invalid review status: {status!r}")
    query = db.table(ADMIN_TABLE).select("*").eq("approval_status", status)
    res = execute(query, action=f"{ADMIN_TABLE}.list.{status}")
    return res.data or []


def dashboard_summary(db: "SyncPostgrestClient") -> list[DashboardCard]:
    """
    Counts plus a short sample for each status. The six queries are
    independent and run concurrently; any failure raises BackendError.
    """
    queries = {
        "pending_count": db.table(PENDING_TABLE).select("*", count="exact", head=True),
        "approved_count": db.table(ADMIN_TABLE).select("*", count="exact", head=True).eq("approval_status", "approved"),
        "rejected_count": db.table(ADMIN_TABLE).select("*", count="exact", head=True).eq("approval_status", "rejected"),
        "pending_rows": db.table(PENDING_TABLE).select(_SAMPLE_COLUMNS).limit(DASHBOARD_SAMPLE_SIZE),
        "approved_rows": db.table(ADMIN_TABLE)
        .select(f"{_SAMPLE_COLUMNS},approved_at")
        .eq("approval_status", "approved")
        .limit(DASHBOARD_SAMPLE_SIZE),
        "rejected_rows": db.table(ADMIN_TABLE)
        .select(f"{_SAMPLE_COLUMNS},approved_at,reviewer_notes")
        .eq("approval_status", "rejected")
        .limit(DASHBOARD_SAMPLE_SIZE),
    }
    with ThreadPoolExecutor(max_workers=len(queries)) as pool:
        futures = {name: pool.submit(execute, q, f"dashboard.{name}") for name, q in queries.items()}
        results = {name: fut.result() for name, fut in futures.items()}

    cards = []
    for status, title, endpoint in (
        ("pending", "Pending", "candidates.pending"),
        ("approved", "Approved", "candidates.approved"),
        ("rejected", "Rejected", "candidates.rejected"),
    ):
        cards.append(
            DashboardCard(
                title=title,
                endpoint=endpoint,
                count=results[f"{status}_count"].count or 0,
                rows=results[f"{status}_rows"].data or [],
            )
        )
    return cards


def _review(db: "SyncPostgrestClient", procedure: str, user_id: str, notes: str | None) -> None:
    uid = clean_text(user_id)
    if not uid:
        raise ValueError("Candidate id is required.")
    # Blank notes go over the wire as null, never as "".
    params = {"p_user_id": uid, "p_notes": clean_text(notes)}
    execute(db.rpc(procedure, params), action=procedure)
    logger.info("%s user_id=%s", procedure, uid)


def approve_candidate(db: "SyncPostgrestClient", user_id: str, notes: str | None = None) -> None:
    _review(db, APPROVE_PROCEDURE, user_id, notes)


def reject_candidate(db: "SyncPostgrestClient", user_id: str, notes: str | None = None) -> None:
    _review(db, REJECT_PROCEDURE, user_id, notes)
