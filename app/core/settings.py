import os
from dataclasses import dataclass

@dataclass(frozen=True)
class Settings:
    base_dir: str

    supabase_url: str
    supabase_service_role: str
    request_timeout: float

    lounge_timezone: str
    default_branch: str
    reference_cache_ttl: float
    cors_origins: list[str]

    app_host: str
    app_port: int
    app_debug: bool

    @staticmethod
    def load() -> "Settings":
        base = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        root = os.path.abspath(os.path.join(base, ".."))

        supabase_url = os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL")
        supabase_key = os.getenv("SUPABASE_SERVICE_ROLE")
        assert supabase_url and supabase_key, "Set SUPABASE_URL and SUPABASE_SERVICE_ROLE in .env"

        origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

        return Settings(
            base_dir=root,
            supabase_url=supabase_url.rstrip("/"),
            supabase_service_role=supabase_key,
            request_timeout=float(os.getenv("REQUEST_TIMEOUT", "20")),
            lounge_timezone=os.getenv("LOUNGE_TIMEZONE", "Asia/Manila"),
            default_branch=os.getenv("DEFAULT_BRANCH", "obrero"),
            reference_cache_ttl=float(os.getenv("REFERENCE_CACHE_TTL", "30")),
            cors_origins=origins or ["*"],
            app_host=os.getenv("APP_HOST", "127.0.0.1"),
            app_port=int(os.getenv("APP_PORT", "5001")),
            app_debug=os.getenv("APP_DEBUG", "true").lower() == "true"
        )
