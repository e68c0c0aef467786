from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    # -------------------------------------------------
    # General
    # -------------------------------------------------
    PROJECT_NAME: str = "DIMS Inventory Console"
    ENV: str = "development"

    # -------------------------------------------------
    # Console frontends allowed by CORS
    # -------------------------------------------------
    CONSOLE_DOMAINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:4173",
    ]

    # -------------------------------------------------
    # CORS (auto-built below)
    # -------------------------------------------------
    BACKEND_CORS_ORIGINS: List[str] = []

    # -------------------------------------------------
    # Supabase (managed auth + table store)
    # -------------------------------------------------
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None

    # Table holding the console's user records
    USERS_TABLE: str = "users"

    # -------------------------------------------------
    # Identity session
    # -------------------------------------------------
    # Role given to signed-in identities with no user record.
    # Only village_health_worker is honoured; other values are refused at runtime.
    DEFAULT_ROLE: str = Field(
        "village_health_worker",
        description="Role synthesized for identities without a user record",
    )

    # -------------------------------------------------
    # Reports
    # -------------------------------------------------
    REPORT_MARGIN_MM: float = Field(15.0, description="Page margin for snapshot PDFs (mm)")

    # -------------------------------------------------
    # Model Config
    # -------------------------------------------------
    model_config = SettingsConfigDict(case_sensitive=True)


# Instantiate settings
settings = Settings()

# -------------------------------------------------
# Build CORS list dynamically after loading settings
# -------------------------------------------------
settings.BACKEND_CORS_ORIGINS = sorted({d.rstrip("/") for d in settings.CONSOLE_DOMAINS})
