from pydantic import BaseModel, Field

from game_queue.shared.config import config


class AppEnvironConfig(BaseModel):
    DEBUG: bool = config.get("DEBUG", "false").strip().lower() == "true"
    # Public demo switch: when enabled, the in-memory chat platform is used and no network calls are made.
    DEMO_MODE: bool = config.get("DEMO_MODE", "true").strip().lower() == "true"

    # Session sizing
    MAX_SESSION_SIZE: int = Field(
        default=int((config.get("MAX_SESSION_SIZE") or "").strip() or 50), ge=1
    )
    DEFAULT_SESSION_SIZE: int = Field(
        default=int((config.get("DEFAULT_SESSION_SIZE") or "").strip() or 4), ge=1
    )
    DEFAULT_TITLE: str = config.get("DEFAULT_TITLE", "Gaming Sesh").strip() or "Gaming Sesh"

    # Lifecycle sweeper (milliseconds)
    CLEANUP_INTERVAL_MS: int = Field(
        default=int((config.get("CLEANUP_INTERVAL_MS") or "").strip() or 60_000), gt=0
    )
    MIN_SESSION_LIFETIME_MS: int = Field(
        default=int((config.get("MIN_SESSION_LIFETIME_MS") or "").strip() or 900_000), ge=0
    )
    MAX_SESSION_LIFETIME_MS: int = Field(
        default=int((config.get("MAX_SESSION_LIFETIME_MS") or "").strip() or 43_200_000), gt=0
    )

    # Chat gateway configuration
    CHAT_GATEWAY_BASE_URL: str = config.get("CHAT_GATEWAY_BASE_URL", "http://localhost:8080").strip()
    CHAT_GATEWAY_API_KEY: str | None = (config.get("CHAT_GATEWAY_API_KEY") or "").strip() or None
    CHAT_WEBHOOK_API_KEY: str | None = (config.get("CHAT_WEBHOOK_API_KEY") or "").strip() or None
    # Reactions placed by the bot itself (the join/leave buttons) are ignored
    BOT_USER_ID: str | None = (config.get("BOT_USER_ID") or "").strip() or None
    COMMAND_PREFIX: str = config.get("COMMAND_PREFIX", "!").strip() or "!"

    # Server
    API_HOST: str = config.get("API_HOST", "0.0.0.0").strip()
    API_PORT: int = int((config.get("API_PORT") or "").strip() or 8000)
    API_WORKERS: int = int((config.get("API_WORKERS") or "").strip() or 1)


_app_environ_config = AppEnvironConfig()


def get_app_environ_config() -> AppEnvironConfig:
    return _app_environ_config
