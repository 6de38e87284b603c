"""
Application configuration loaded from environment variables.

Uses pydantic-settings for type-safe env var parsing with automatic
.env file loading. All secrets are injected via environment — never
hard-coded.

Components never read this module on their own: main.py and the route
dependencies pass the `settings` object into each constructor, so tests
can build components from a throwaway Settings(...) instance.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ─── Core ──────────────────────────────────────────────────────
    environment: str = "development"
    debug: bool = False

    # ─── CORS ──────────────────────────────────────────────────────
    # Comma-separated allowed origins. The mobile app calls from anywhere.
    cors_origins_str: str = "*"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()]

    # ─── Sightengine (scoring service) ─────────────────────────────
    # Get from https://dashboard.sightengine.com/
    sightengine_api_user: str = ""
    sightengine_api_secret: str = ""
    sightengine_base_url: str = "https://api.sightengine.com/1.0"
    sightengine_models: str = "genai"

    # ─── Cloudinary (remote object stage for videos) ───────────────
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    cloudinary_folder: str = "deepfake-detector"

    # ─── Video pipeline ────────────────────────────────────────────
    staging_dir: str = "uploads"
    resolver_timeout_seconds: float = 30.0
    download_timeout_seconds: float = 60.0
    upload_timeout_seconds: float = 120.0
    # Sightengine check-sync samples the whole clip before answering;
    # a one-minute video routinely takes close to a minute.
    scoring_timeout_seconds: float = 120.0
    image_timeout_seconds: float = 30.0
    proxy_timeout_seconds: float = 30.0

    # ─── Rate limits (slowapi syntax) ──────────────────────────────
    rate_limit_analyze: str = "30/minute"
    rate_limit_video: str = "10/minute"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Don't fail on unknown env vars
    )

    @property
    def scoring_configured(self) -> bool:
        return bool(self.sightengine_api_user and self.sightengine_api_secret)

    @property
    def storage_configured(self) -> bool:
        return bool(
            self.cloudinary_cloud_name
            and self.cloudinary_api_key
            and self.cloudinary_api_secret
        )


# Module-level singleton — import this everywhere instead of instantiating Settings()
settings = Settings()
