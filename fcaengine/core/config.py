"""
Application configuration — loaded from environment / .env file.
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # ── App ──
    app_name: str = "fca-engine"
    app_env: str = "development"
    log_level: str = "INFO"
    engine_version: str = "1.0"

    # ── Deterioration model ──
    failure_threshold: float = 20.0  # condition % below which a component has failed

    # ── Narrative insights (OpenAI-compatible chat completions) ──
    insights_enabled: bool = False
    insights_api_url: str = "https://api.openai.com/v1/chat/completions"
    insights_api_key: str = ""
    insights_model: str = "gpt-4o-mini"
    insights_timeout_seconds: float = 10.0

    # ── Kafka ──
    kafka_bootstrap: str = "kafka:9092"
    kafka_topic_condition_events: str = "fca.condition.snapshots"
    kafka_enabled: bool = False  # toggle for local dev

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
