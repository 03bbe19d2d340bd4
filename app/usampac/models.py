from __future__ import annotations

from dataclasses import dataclass
from typing import Any


# Rows themselves live in the backend and travel as plain dicts.
CANDIDATE_STATUSES = ("pending", "approved", "rejected")


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str | None = None

    @classmethod
    def from_auth_user(cls, user: Any) -> "CurrentUser":
        return cls(id=str(user.id), email=getattr(user, "email", None))
