from __future__ import annotations

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from app.usampac.backend import execute
from app.usampac.crud import delete_row, delete_rows_where_in, save_row
from app.usampac.forms import clean_text, is_checked, parse_position, slug_or_derived

if TYPE_CHECKING:
    from postgrest import SyncPostgrestClient

logger = logging.getLogger(__name__)

QUESTIONS_TABLE = "quiz_questions"
OPTIONS_TABLE = "quiz_options"
SLUG_FALLBACK = "question"


def load_quiz(db: "SyncPostgrestClient") -> tuple[list[dict[str, Any]], dict[str, list[dict[str, Any]]]]:
    """Questions and their options, both in position order."""
    questions_q = db.table(QUESTIONS_TABLE).select("*").order("position")
    options_q = db.table(OPTIONS_TABLE).select("*").order("position")
    with ThreadPoolExecutor(max_workers=2) as pool:
        questions_f = pool.submit(execute, questions_q, f"{QUESTIONS_TABLE}.list")
        options_f = pool.submit(execute, options_q, f"{OPTIONS_TABLE}.list")
        questions = questions_f.result().data or []
        options = options_f.result().data or []

    options_by_question: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for opt in options:
        options_by_question[str(opt.get("question_id"))].append(opt)
    return questions, dict(options_by_question)


# ---------- Questions ----------
def validate_question_form(form: Mapping[str, str]) -> list[str]:
    errors = []
    if not clean_text(form.get("prompt")):
        errors.append("Prompt is required.")
    return errors


def build_question_payload(form: Mapping[str, str]) -> dict[str, Any]:
    prompt = clean_text(form.get("prompt")) or ""
    return {
        "prompt": prompt,
        "explanation": clean_text(form.get("explanation")),
        "slug": slug_or_derived(form.get("slug"), prompt, SLUG_FALLBACK),
        "position": parse_position(form.get("position")),
        "is_active": is_checked(form, "is_active"),
    }


def save_question(db: "SyncPostgrestClient", question_id: str | None, payload: dict[str, Any]) -> str:
    return save_row(db, QUESTIONS_TABLE, question_id, payload)


def delete_question(db: "SyncPostgrestClient", question_id: str) -> None:
    delete_row(db, QUESTIONS_TABLE, question_id)


def bulk_delete_questions(db: "SyncPostgrestClient", question_ids: Iterable[str]) -> list[str]:
    """
    Delete options of the given questions, then the questions.

    A failure deleting options raises before any question is touched. A failure
    on the second call leaves the questions in place without their options;
    there is no compensation.
    """
    ids = [i for i in (clean_text(q) for q in question_ids) if i]
    if not ids:
        return []
    delete_rows_where_in(db, OPTIONS_TABLE, "question_id", ids)
    delete_rows_where_in(db, QUESTIONS_TABLE, "id", ids)
    logger.info("Bulk deleted %d quiz questions", len(ids))
    return ids


# ---------- Options ----------
def validate_option_form(form: Mapping[str, str]) -> list[str]:
    errors = []
    if not clean_text(form.get("question_id")):
        errors.append("Question is required.")
    if not clean_text(form.get("label")):
        errors.append("Option label is required.")
    return errors


def build_option_payload(form: Mapping[str, str]) -> dict[str, Any]:
    return {
        "question_id": clean_text(form.get("question_id")),
        "label": clean_text(form.get("label")),
        "is_correct": is_checked(form, "is_correct"),
        "position": parse_position(form.get("position")),
    }


def save_option(db: "SyncPostgrestClient", option_id: str | None, payload: dict[str, Any]) -> str:
    return save_row(db, OPTIONS_TABLE, option_id, payload)


def delete_option(db: "SyncPostgrestClient", option_id: str) -> None:
    delete_row(db, OPTIONS_TABLE, option_id)
