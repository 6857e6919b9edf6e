from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    supabase_url: str
    supabase_anon_key: str
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_timeout_seconds: float = 20.0
    cache_duration_hours: int = 24
    demand_model: Literal["binary", "weighted"] = "binary"
    fallback_on_ai_error: bool = True
    fallback_on_rate_limit: bool = False
    log_level: str = "INFO"
