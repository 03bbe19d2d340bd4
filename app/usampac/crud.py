from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

from app.usampac.backend import execute

if TYPE_CHECKING:
    from postgrest import SyncPostgrestClient


def save_row(db: "SyncPostgrestClient", table: str, row_id: str | None, payload: dict[str, Any]) -> str:
    """
    Update-by-id when the form carried an id, otherwise insert.
    Returns "update" or "insert".
    """
    if row_id:
        execute(db.table(table).update(payload).eq("id", row_id), action=f"{table}.update")
        return "update"
    execute(db.table(table).insert(payload), action=f"{table}.insert")
    return "insert"


def delete_row(db: "SyncPostgrestClient", table: str, row_id: str) -> None:
    execute(db.table(table).delete().eq("id", row_id), action=f"{table}.delete")


def delete_rows_where_in(db: "SyncPostgrestClient", table: str, column: str, values: Sequence[str]) -> None:
    execute(db.table(table).delete().in_(column, list(values)), action=f"{table}.delete_in.{column}")
