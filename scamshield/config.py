from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================
    environment: str = "dev"  # "dev", "prod"
    debug: bool = True

    # ==========================================================================
    # DATABASE
    # ==========================================================================
    database_url: str = "sqlite:///./scamshield.db"

    # ==========================================================================
    # OPENAI (judgment model)
    # ==========================================================================
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_max_tokens: int = 1024  # Max tokens for judgment responses

    # ==========================================================================
    # THREAT INTELLIGENCE PROVIDERS (empty key = provider disabled)
    # ==========================================================================
    safe_browsing_api_key: str = ""
    virustotal_api_key: str = ""

    # ==========================================================================
    # API SECURITY
    # ==========================================================================
    api_token: str = ""  # Required in production, optional in dev
    api_token_header: str = "X-API-Key"

    # ==========================================================================
    # RATE LIMITING
    # ==========================================================================
    rate_limit_requests: int = 60  # Max requests per window
    rate_limit_window: int = 60  # Window in seconds (60 = per minute)

    # ==========================================================================
    # CORS
    # ==========================================================================
    cors_origins: str = "*"  # Comma-separated origins, or "*" for all

    # ==========================================================================
    # INPUT LIMITS
    # ==========================================================================
    max_content_length: int = 10000  # Characters
    max_image_bytes: int = 10 * 1024 * 1024  # 10MB decoded
    allowed_image_types: str = "image/jpeg,image/png,image/gif,image/webp"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "prod"

    @property
    def cors_origins_list(self) -> list:
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def allowed_image_types_list(self) -> List[str]:
        return [t.strip() for t in self.allowed_image_types.split(",") if t.strip()]


settings = Settings()
