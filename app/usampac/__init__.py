import logging
from datetime import datetime, timedelta

from dotenv import load_dotenv
from flask import Flask, g, render_template, request, session

from app.usampac.config import load_config
from app.usampac.backend import init_backend, teardown_backend
from app.usampac.routes import bp as routes_bp
from app.usampac.auth import bp as auth_bp, load_current_user
from app.usampac.modules.candidates.admin import bp as candidates_bp
from app.usampac.modules.notifications.admin import bp as notifications_bp
from app.usampac.modules.polls.admin import bp as polls_bp
from app.usampac.modules.quiz.admin import bp as quiz_bp


def _parse_iso(value):
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    level = getattr(logging, app.config.get("LOG_LEVEL") or "INFO", logging.INFO)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app.logger.setLevel(level)
    logging.getLogger("app.usampac").setLevel(level)

    # CSRF protection (minimal)
    from app.usampac.security import ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_globals() -> dict:
        return {
            "csrf_token": ensure_csrf_token(),
            "current_user": getattr(g, "current_user", None),
        }

    @app.template_filter("datetimeformat")
    def _datetimeformat_filter(value, format: str = "%Y-%m-%d %H:%M") -> str:
        if not value:
            return "-"
        try:
            return _parse_iso(value).strftime(format)
        except ValueError:
            return str(value)

    @app.template_filter("datetime_local")
    def _datetime_local_filter(value) -> str:
        """Value for an <input type="datetime-local">: YYYY-MM-DDTHH:MM."""
        if not value:
            return ""
        return str(value)[:16]

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(("/static/", "/health", "/healthz")):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # Allow safe auth endpoints to pass through (login/logout)
            if (request.endpoint or "").startswith("auth."):
                return None
            if not validate_csrf(request):
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
    if app.config.get("ROLE_CHECK_MODE") not in ("fail_open", "fail_closed"):
        app.logger.warning(
            "Unknown ROLE_CHECK_MODE=%r; treating as fail_open", app.config.get("ROLE_CHECK_MODE")
        )

    init_backend(app)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(candidates_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(polls_bp)
    app.register_blueprint(quiz_bp)

    app.before_request(load_current_user)
    app.teardown_appcontext(teardown_backend)

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        rid = getattr(g, "request_id", None)
        original = getattr(e, "original_exception", None)
        app.logger.error("Unhandled 500 (request_id=%s): %s", rid, original or e, exc_info=original)
        return render_template("errors/500.html", request_id=rid), 500

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return render_template("errors/404.html"), 404

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
