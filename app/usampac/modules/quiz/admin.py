from __future__ import annotations

from flask import Blueprint, flash, g, request

from app.usampac.audit import record_event
from app.usampac.backend import BackendError, api_db
from app.usampac.forms import form_id
from app.usampac.modules.quiz.service import (
    build_option_payload,
    build_question_payload,
    bulk_delete_questions,
    delete_option,
    delete_question,
    load_quiz,
    save_option,
    save_question,
    validate_option_form,
    validate_question_form,
)
from app.usampac.pages import render_page, revalidate
from app.usampac.rbac import require_admin

bp = Blueprint("quiz", __name__)

LIST_ENDPOINT = "quiz.quiz_list"


def _flash_errors(errors: list[str]) -> None:
    for e in errors:
        flash(e, "danger")


# ---------- List ----------
@bp.get("/quiz")
@require_admin
def quiz_list():
    error = None
    questions, options_by_question = [], {}
    try:
        questions, options_by_question = load_quiz(api_db())
    except BackendError as e:
        error = e.message
    return render_page(
        "quiz/list.html",
        questions=questions,
        options_by_question=options_by_question,
        error=error,
    )


# ---------- Questions ----------
@bp.post("/quiz/save")
@require_admin
def quiz_save():
    errors = validate_question_form(request.form)
    if errors:
        _flash_errors(errors)
        return revalidate(LIST_ENDPOINT)

    question_id = form_id(request.form.get("id"))
    payload = build_question_payload(request.form)
    op = save_question(api_db(), question_id, payload)
    record_event(
        actor=g.current_user,
        action=f"quiz_question.{op}",
        entity_type="QuizQuestion",
        entity_id=question_id,
        metadata={"slug": payload["slug"], "position": payload["position"]},
    )
    flash("Question saved.", "success")
    return revalidate(LIST_ENDPOINT)


@bp.post("/quiz/delete")
@require_admin
def quiz_delete():
    question_id = form_id(request.form.get("id"))
    if question_id:
        delete_question(api_db(), question_id)
        record_event(actor=g.current_user, action="quiz_question.delete", entity_type="QuizQuestion", entity_id=question_id)
        flash("Question deleted.", "success")
    return revalidate(LIST_ENDPOINT)


@bp.post("/quiz/bulk-delete")
@require_admin
def quiz_bulk_delete():
    ids = bulk_delete_questions(api_db(), request.form.getlist("ids"))
    if ids:
        record_event(
            actor=g.current_user,
            action="quiz_question.bulk_delete",
            entity_type="QuizQuestion",
            metadata={"ids": ids},
        )
        flash(f"Deleted {len(ids)} question(s).", "success")
    return revalidate(LIST_ENDPOINT)


# ---------- Options ----------
@bp.post("/quiz/options/save")
@require_admin
def quiz_options_save():
    errors = validate_option_form(request.form)
    if errors:
        _flash_errors(errors)
        return revalidate(LIST_ENDPOINT)

    option_id = form_id(request.form.get("id"))
    payload = build_option_payload(request.form)
    op = save_option(api_db(), option_id, payload)
    record_event(
        actor=g.current_user,
        action=f"quiz_option.{op}",
        entity_type="QuizOption",
        entity_id=option_id,
        metadata={"question_id": payload["question_id"], "is_correct": payload["is_correct"]},
    )
    flash("Option saved.", "success")
    return revalidate(LIST_ENDPOINT)


@bp.post("/quiz/options/delete")
@require_admin
def quiz_options_delete():
    option_id = form_id(request.form.get("id"))
    if option_id:
        delete_option(api_db(), option_id)
        record_event(actor=g.current_user, action="quiz_option.delete", entity_type="QuizOption", entity_id=option_id)
        flash("Option deleted.", "success")
    return revalidate(LIST_ENDPOINT)
