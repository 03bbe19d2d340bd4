from __future__ import annotations

from flask import Blueprint, flash, g, request

from app.usampac.audit import record_event
from app.usampac.backend import BackendError, api_db
from app.usampac.forms import form_id
from app.usampac.modules.notifications.service import (
    build_notification_payload,
    delete_notification,
    list_notifications,
    save_notification,
    validate_notification_form,
)
from app.usampac.pages import render_page, revalidate
from app.usampac.rbac import require_admin

bp = Blueprint("notifications", __name__)


@bp.get("/notifications")
@require_admin
def notifications_list():
    error = None
    rows = []
    try:
        rows = list_notifications(api_db())
    except BackendError as e:
        error = e.message
    return render_page("notifications/list.html", notifications=rows, error=error)


@bp.post("/notifications/save")
@require_admin
def notifications_save():
    errors = validate_notification_form(request.form)
    if errors:
        for e in errors:
            flash(e, "danger")
        return revalidate("notifications.notifications_list")

    notification_id = form_id(request.form.get("id"))
    payload = build_notification_payload(request.form)
    op = save_notification(api_db(), notification_id, payload)

    record_event(
        actor=g.current_user,
        action=f"notification.{op}",
        entity_type="Notification",
        entity_id=notification_id,
        metadata={"title": payload["title"], "is_active": payload["is_active"]},
    )
    flash("Notification saved.", "success")
    return revalidate("notifications.notifications_list")


@bp.post("/notifications/delete")
@require_admin
def notifications_delete():
    notification_id = form_id(request.form.get("id"))
    if notification_id:
        delete_notification(api_db(), notification_id)
        record_event(actor=g.current_user, action="notification.delete", entity_type="Notification", entity_id=notification_id)
        flash("Notification deleted.", "success")
    return revalidate("notifications.notifications_list")
