"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Zuychin configuration. All values come from environment variables."""

    # Anthropic (generation)
    anthropic_api_key: str = Field(default="")
    default_chat_model: str = Field(default="sonnet")
    default_summary_model: str = Field(default="haiku")
    max_output_tokens: int = Field(default=4096)
    thinking_budget_tokens: int = Field(default=8192)
    web_search_max_uses: int = Field(default=3)

    # Gemini (embeddings)
    gemini_api_key: str = Field(default="")
    embedding_model: str = Field(default="gemini-embedding-001")
    embedding_dimensions: int = Field(default=768)

    # Database
    database_path: Path = Field(default=Path("data/zuychin.db"))

    # Turso (hosted libSQL); when set, overrides local database_path
    turso_database_url: str = Field(default="")
    turso_auth_token: str = Field(default="")

    # Persona
    default_system_prompt: str = Field(
        default="You are Zuychin, a helpful personal AI assistant."
    )
    default_timezone: str = Field(default="Australia/Sydney")

    # Retrieval
    retrieval_match_threshold: float = Field(default=0.65)
    retrieval_match_count: int = Field(default=8)
    rerank_max_results: int = Field(default=3)

    # History
    history_window: int = Field(default=20, ge=1)
    compaction_threshold: int = Field(default=8, ge=0)
    compaction_recent_keep: int = Field(default=5, ge=0)

    # Memory deduplication
    dedup_threshold: float = Field(default=0.95)

    # Generation loop
    max_tool_rounds: int = Field(default=5)
    pipeline_timeout_seconds: float = Field(default=120.0)

    # Tools
    tool_search_threshold: float = Field(default=0.6)
    tool_search_count: int = Field(default=5)
    recent_conversations_limit: int = Field(default=10)

    # Inbound limits
    max_message_length: int = Field(default=10_000)
    max_upload_bytes: int = Field(default=20 * 1024 * 1024)

    # Telegram
    telegram_bot_token: str = Field(default="")
    allowed_user_ids: str = Field(default="")

    # Meta (Messenger / Instagram / WhatsApp)
    meta_page_access_token: str = Field(default="")
    meta_app_secret: str = Field(default="")
    meta_verify_token: str = Field(default="")
    meta_graph_api_version: str = Field(default="v21.0")
    meta_whatsapp_phone_number_id: str = Field(default="")
    meta_verify_signatures: bool = Field(default=True)

    # Web server
    web_host: str = Field(default="0.0.0.0")
    web_port: int = Field(default=8080)
    cron_secret: str = Field(default="")

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def get_allowed_user_ids(self) -> set[int]:
        """Parse ALLOWED_USER_IDS into a set of ints."""
        if not self.allowed_user_ids.strip():
            return set()
        return {int(uid.strip()) for uid in self.allowed_user_ids.split(",") if uid.strip()}


settings = Settings()
