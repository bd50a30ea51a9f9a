"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Remote services
    backend_url: str = "http://localhost:8001"
    audio_service_url: str = "http://localhost:8003"
    radiox_api_base: str = "https://api.radiox.cloud"

    # Managed datastore (empty = not configured)
    supabase_url: str = ""
    supabase_anon_key: str = ""

    # HTTP
    http_timeout_sec: float = 30.0
    generation_timeout_sec: float = 300.0

    # Generation
    generation_voice_quality: str = "ultra"
    generation_include_music: bool = True

    # Teleprompter tuning
    word_highlight_lead_in: float = 0.12
    transcript_tail_sec: float = 10.0

    # Display
    display_timezone: str = "Europe/Zurich"

    # Diagnostics
    slow_query_ms: float = 1000.0

    # CORS
    allowed_origins: str = ""


settings = Settings()
