from __future__ import annotations

from typing import Any

from flask import make_response, redirect, render_template, url_for
from werkzeug.wrappers import Response


def render_page(template: str, **context: Any) -> Response:
    """Render a listing page that must never be served from a cache."""
    resp = make_response(render_template(template, **context))
    resp.headers["Cache-Control"] = "no-store"
    return resp


def revalidate(endpoint: str, **values: Any) -> Response:
    """
    Send the browser back to the owning listing page after a write, so the
    next render reads fresh rows (POST/Redirect/GET).
    """
    return redirect(url_for(endpoint, **values), code=303)
