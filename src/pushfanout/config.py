from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # API
    app_name: str = "pushfanout"
    app_version: str = "0.3.1"
    host: str = "0.0.0.0"
    port: int = Field(
        default=3000,
        validation_alias=AliasChoices("port", "PORT"),
    )
    cors_origins: list[str] = ["*"]
    public_dir: str | None = Field(
        default=None,
        description="Optional static panel served at the site root",
    )

    # VAPID
    vapid_public_key: str = ""
    vapid_private_key: str = ""
    vapid_subject: str = "mailto:admin@localhost"

    # Delivery
    push_ttl: int = 2_419_200
    push_timeout_s: float = 10.0
    push_concurrency: int = 8

    # Notification defaults
    default_title: str = "Push Fan-out"
    default_body: str = "You received a new message."
    default_url: str = "http://127.0.0.1:3000/"
    default_icon: str = "http://127.0.0.1:3000/icon.png"

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
        "str_strip_whitespace": True,
    }


_override: Settings | None = None


def get_settings() -> Settings:
    """Return the active settings instance."""
    if _override:
        return _override
    return Settings()


def override_settings(s: Settings | None) -> None:
    """Swap in a custom Settings (use None to reset)."""
    global _override  # noqa: PLW0603
    _override = s
