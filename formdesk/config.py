"""Application configuration via environment variables."""

from functools import lru_cache
from typing import Annotated, Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode

DEFAULT_FORM_TYPES = ["b2b-form", "contact-form", "playspace-design"]

DEFAULT_FILE_TYPES = [
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/heic",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "text/csv",
]


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App
    debug: bool = False
    environment: str = "development"

    # CORS / origin enforcement (ALLOWED_ORIGIN, comma-separated)
    allowed_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        validation_alias=AliasChoices("allowed_origin", "allowed_origins"),
    )

    # Gorgias helpdesk
    gorgias_subdomain: str = ""
    gorgias_username: str = ""
    gorgias_api_key: str = ""
    gorgias_api_url: str = ""  # defaults to https://{subdomain}.gorgias.com/api
    gorgias_support_email: str = "support@example.com"

    # Per-form sender routing, e.g. FORM_INTEGRATION_IDS='{"b2b-form": 1234}'
    form_integration_ids: dict[str, int] = {}

    # Submission rules
    allowed_form_types: Annotated[list[str], NoDecode] = DEFAULT_FORM_TYPES
    use_form_templates: bool = True
    max_field_length: int = 10_000
    max_field_bytes: int = 64 * 1024

    # Uploads
    allowed_file_types: Annotated[list[str], NoDecode] = DEFAULT_FILE_TYPES
    max_file_size: int = 5 * 1024 * 1024
    max_files: int = 20

    # Rate limiting (requests per window, per client IP)
    rate_limit_window: float = 60.0
    ticket_rate_limit: int = 5
    geocode_rate_limit: int = 20

    # Cloudflare Turnstile (optional bot verification)
    turnstile_secret_key: str = ""
    turnstile_verify_url: str = (
        "https://challenges.cloudflare.com/turnstile/v0/siteverify"
    )

    # Google Geocoding
    google_api_key: str = ""
    geocode_api_url: str = "https://maps.googleapis.com/maps/api/geocode/json"

    # Outbound HTTP
    http_timeout: float = 15.0

    model_config = {"env_file": ".env", "extra": "ignore", "populate_by_name": True}

    @field_validator(
        "allowed_origins", "allowed_form_types", "allowed_file_types", mode="before"
    )
    @classmethod
    def _split_csv(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @property
    def gorgias_base_url(self) -> str:
        if self.gorgias_api_url:
            return self.gorgias_api_url.rstrip("/")
        return f"https://{self.gorgias_subdomain}.gorgias.com/api"

    @property
    def gorgias_configured(self) -> bool:
        return bool(
            self.gorgias_subdomain and self.gorgias_username and self.gorgias_api_key
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
