"""Configuration management for the PM2 Telegram bot."""

import logging
import os

from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger("telegram_pm2.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    bot_token: str = Field(
        ...,
        min_length=1,
        description="Telegram Bot API token from @BotFather",
    )
    bot_developer: str = Field(
        default="",
        description="Comma-separated list of chat IDs allowed to manage processes",
    )
    api_base_url: str = Field(
        default="https://api.telegram.org",
        description="Telegram Bot API base URL",
    )
    polling_timeout: int = Field(
        default=30,
        description="Long polling timeout in seconds",
    )
    command_prefix: str = Field(
        default="/",
        description="Prefix that marks a message as a bot command",
    )
    pm2_bin: str = Field(
        default="pm2",
        description="Path or name of the pm2 executable",
    )
    help_url: str = Field(
        default="https://github.com/Grahtni/telegpt/",
        description="Link shown in the /help reply",
    )
    log_level: str = Field(
        default="INFO",
        description="Console log level",
    )
    error_log_file: str = Field(
        default="",
        description="Optional file receiving ERROR records as JSON lines",
    )

    def get_operator_ids(self) -> frozenset[int]:
        """Parse bot_developer into the set of operator chat IDs.

        Blank and non-numeric entries are skipped, so an empty value
        authorizes nobody.
        """
        ids = set()
        for item in self.bot_developer.split(","):
            item = item.strip()
            if not item:
                continue
            try:
                ids.add(int(item))
            except ValueError:
                logger.warning(f"Ignoring non-numeric operator ID: {item!r}")
        return frozenset(ids)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = ""

    def __init__(self, **kwargs):
        # Load .env from the project root if not found in the working directory
        if "_env_file" not in kwargs and not os.path.exists(self.__class__.Config.env_file):
            current_dir = os.path.dirname(os.path.abspath(__file__))
            # Go up: telegram_pm2/ -> src/ -> project root
            project_root = os.path.abspath(os.path.join(current_dir, "../.."))
            env_path = os.path.join(project_root, ".env")
            if os.path.exists(env_path):
                kwargs["_env_file"] = env_path
        super().__init__(**kwargs)


def get_settings() -> Settings:
    """Get application settings, loading from environment."""
    return Settings()
