"""Test configuration for pytest."""

from typing import Any, Optional
from unittest.mock import AsyncMock

import pytest

from telegram_pm2.context import OperatorSet, RequestContext
from telegram_pm2.handlers import CommandRouter
from telegram_pm2.middleware import AuthorizationMiddleware, MiddlewarePipeline, timing_middleware


@pytest.fixture
def mock_settings(monkeypatch):
    """Mock environment variables for settings."""
    monkeypatch.setenv("BOT_TOKEN", "test_bot_token")
    monkeypatch.setenv("BOT_DEVELOPER", "42")
    monkeypatch.setenv("API_BASE_URL", "https://api.telegram.org")
    return None


def make_update(
    text: Optional[str] = None,
    chat_id: Optional[int] = 42,
    chat_type: str = "private",
    update_id: int = 1,
) -> dict[str, Any]:
    """Build a Telegram message update."""
    message: dict[str, Any] = {
        "message_id": update_id,
        "from": {"id": chat_id, "username": "testuser"},
        "date": 1234567890,
    }
    if chat_id is not None:
        message["chat"] = {"id": chat_id, "type": chat_type}
    if text is not None:
        message["text"] = text
    return {"update_id": update_id, "message": message}


def sent_texts(telegram: AsyncMock) -> list[str]:
    """Texts passed to send_message, in order."""
    return [call.kwargs["text"] for call in telegram.send_message.call_args_list]


@pytest.fixture
def telegram():
    """Telegram client double."""
    return AsyncMock()


@pytest.fixture
def supervisor():
    """PM2 client double."""
    return AsyncMock()


@pytest.fixture
def router(supervisor):
    return CommandRouter(supervisor, help_url="https://example.org/bot", bot_username="pm2bot")


@pytest.fixture
def run_update(telegram, router):
    """Run an update through the full middleware chain for a given operator set."""

    async def _run(update: dict[str, Any], operators: frozenset[int] = frozenset({42})) -> RequestContext:
        pipeline = MiddlewarePipeline(
            [AuthorizationMiddleware(OperatorSet(operators)), timing_middleware],
            router,
        )
        ctx = RequestContext(update=update, telegram=telegram)
        await pipeline(ctx)
        return ctx

    return _run
