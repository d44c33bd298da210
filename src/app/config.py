"""Runtime configuration.

Configuration via environment variables (a local ``.env`` is honoured):
- DATABASE_URL: databases-style URL (default: sqlite:///./whereisit.db)
- JWT_SECRET: signing secret for session cookies (required)
- APP_ENV: development | production (default: development)
- CORS_ORIGINS: comma separated list of allowed origins
- IDENTITY_PROVIDER: firebase | supabase (default: firebase)
- FIREBASE_PROJECT_ID / FIREBASE_CLIENT_EMAIL / FIREBASE_PRIVATE_KEY
- SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY
- TRANSACTION_MAX_ATTEMPTS: retries for transient transaction errors (default: 3)
- LOG_LEVEL: (default: INFO)
- PORT: (default: 5000)
"""
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv

DEFAULT_CORS_ORIGINS = (
    "https://simple-firebase-auth-9089a.web.app",
    "http://localhost:5173",
)


def _split_csv(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return DEFAULT_CORS_ORIGINS
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    jwt_secret: str
    database_url: str = "sqlite:///./whereisit.db"
    app_env: str = "development"
    cors_origins: Tuple[str, ...] = field(default=DEFAULT_CORS_ORIGINS)
    identity_provider: str = "firebase"
    firebase_project_id: Optional[str] = None
    firebase_client_email: Optional[str] = None
    firebase_private_key: Optional[str] = None
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    transaction_max_attempts: int = 3
    log_level: str = "INFO"
    port: int = 5000

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()

        jwt_secret = os.getenv("JWT_SECRET")
        if not jwt_secret:
            raise ValueError("JWT_SECRET environment variable is required")

        return cls(
            jwt_secret=jwt_secret,
            database_url=os.getenv("DATABASE_URL", "sqlite:///./whereisit.db"),
            app_env=os.getenv("APP_ENV", "development"),
            cors_origins=_split_csv(os.getenv("CORS_ORIGINS")),
            identity_provider=os.getenv("IDENTITY_PROVIDER", "firebase").lower(),
            firebase_project_id=os.getenv("FIREBASE_PROJECT_ID"),
            firebase_client_email=os.getenv("FIREBASE_CLIENT_EMAIL"),
            firebase_private_key=os.getenv("FIREBASE_PRIVATE_KEY"),
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
            transaction_max_attempts=int(os.getenv("TRANSACTION_MAX_ATTEMPTS", "3")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            port=int(os.getenv("PORT", "5000")),
        )


__all__ = ["Settings"]
