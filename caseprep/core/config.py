# Fichier: caseprep/core/config.py
from pydantic_settings import BaseSettings
from typing import Dict, Optional, List
from pydantic import AnyHttpUrl, ValidationError, field_validator
import sys

class Settings(BaseSettings):
    DATABASE_URL: str
    SECRET_KEY: str
    ENVIRONMENT: str = "development"

    FRONTEND_BASE_URL: AnyHttpUrl = "http://localhost:3000"
    # URL publique de cette API (redirection Stripe après paiement)
    API_BASE_URL: AnyHttpUrl = "http://localhost:8000"
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # --- Modèles de langage ---
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_FEEDBACK_MODEL: str = "gpt-4o"
    OPENAI_VISION_MODEL: str = "gpt-4o"
    OPENAI_TRANSCRIPTION_MODEL: str = "whisper-1"
    OPENAI_TIMEOUT_SECONDS: float = 30.0
    TRANSCRIPTION_LANGUAGE: Optional[str] = None

    # Bascule globale lue une seule fois au démarrage pour choisir le backend.
    USE_LOCAL_MODEL: bool = False
    LOCAL_LLM_URL: str = "http://localhost:11434"
    LOCAL_LLM_MODEL: str = "phi3:latest"

    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 1000
    LLM_TIMEOUT_SECONDS: float = 60.0

    # --- Stripe & crédits ---
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    # credit amount (as string) -> Stripe price id
    CREDIT_PACKAGES: Dict[str, str] = {}
    SIGNUP_BONUS_CREDITS: int = 3
    CASE_START_COST: int = 1

    # --- Supabase Storage (images du tableau blanc) ---
    SUPABASE_URL: AnyHttpUrl | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    SUPABASE_STORAGE_BUCKET: str = "whiteboard-images"

    # --- Back-office ---
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD_HASH: Optional[str] = None

    # Performance instrumentation
    SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS: int = 300

    class Config:
        env_file = ".env"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def _normalize_database_url(cls, value: str) -> str:
        """Ensure Postgres URLs always use the asyncpg driver.

        Managed Postgres providers still hand out ``postgres://`` URLs, an alias
        SQLAlchemy no longer ships. Those, and the ``postgresql://`` / psycopg
        variants, are upgraded to ``postgresql+asyncpg://`` so the async engine
        boots; SQLite and other backends are left untouched.
        """

        if not isinstance(value, str):
            return value

        if "+asyncpg" in value:
            return value

        replacements = {
            "postgres://": "postgresql+asyncpg://",
            "postgresql://": "postgresql+asyncpg://",
            "postgresql+psycopg2://": "postgresql+asyncpg://",
            "postgresql+psycopg://": "postgresql+asyncpg://",
        }

        for prefix, target in replacements.items():
            if value.startswith(prefix):
                return target + value[len(prefix) :]

        return value

    @field_validator("CREDIT_PACKAGES")
    @classmethod
    def _validate_credit_packages(cls, value: Dict[str, str]) -> Dict[str, str]:
        for amount in value:
            if not str(amount).isdigit() or int(amount) <= 0:
                raise ValueError(f"invalid credit amount in CREDIT_PACKAGES: {amount!r}")
        return value

    @property
    def is_production(self) -> bool:
        return (self.ENVIRONMENT or "").lower() == "production"


def _log_settings_validation_error(exc: ValidationError) -> None:
    """Pretty-print missing or invalid environment variables.

    The exception bubbles up during module import, which makes it hard to spot
    the variable responsible, so the structured payload is printed to stderr
    before the error is re-raised.
    """

    header = "Configuration error while loading environment variables:"
    print(header, file=sys.stderr)

    details = exc.errors()
    if details:
        for error in details:
            location = ".".join(str(part) for part in error.get("loc", ()))
            message = error.get("msg", "Unknown validation error")
            type_name = error.get("type")
            hint_parts = [message]
            if type_name:
                hint_parts.append(f"(type={type_name})")
            hint = " ".join(hint_parts)
            print(f"  - {location}: {hint}", file=sys.stderr)
    else:
        print(exc, file=sys.stderr)


try:
    settings = Settings()
except ValidationError as exc:  # pragma: no cover - exercised at runtime
    _log_settings_validation_error(exc)
    raise
