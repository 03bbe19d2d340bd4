import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    log_level: str

    supabase_url: str
    supabase_anon_key: str
    api_schema: str
    public_schema: str

    admin_role: str
    role_check_mode: str


def _getenv(name: str, default: str = "", *aliases: str) -> str:
    for key in (name, *aliases):
        value = (os.environ.get(key) or "").strip()
        if value:
            return value
    return default


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        # NEXT_PUBLIC_* names are what the old JS dashboard deployments export.
        supabase_url=_getenv("SUPABASE_URL", "", "NEXT_PUBLIC_SUPABASE_URL"),
        supabase_anon_key=_getenv("SUPABASE_ANON_KEY", "", "NEXT_PUBLIC_SUPABASE_ANON_KEY", "SUPABASE_KEY"),
        api_schema=_getenv("SUPABASE_API_SCHEMA", "api"),
        public_schema=_getenv("SUPABASE_PUBLIC_SCHEMA", "public"),
        admin_role=_getenv("ADMIN_ROLE", "ADMIN"),
        role_check_mode=_getenv("ROLE_CHECK_MODE", "fail_open").lower(),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "LOG_LEVEL": s.log_level,
        "SUPABASE_URL": s.supabase_url,
        "SUPABASE_ANON_KEY": s.supabase_anon_key,
        "SUPABASE_API_SCHEMA": s.api_schema,
        "SUPABASE_PUBLIC_SCHEMA": s.public_schema,
        "ADMIN_ROLE": s.admin_role,
        "ROLE_CHECK_MODE": s.role_check_mode,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
    }
