"""Tests for the bot runtime."""

from unittest.mock import AsyncMock, patch

import pytest

from conftest import make_update, sent_texts
from telegram_pm2.bot import PM2Bot, async_main, main
from telegram_pm2.commands import BOT_COMMANDS, GENERIC_ERROR_TEXT, NOT_AUTHORIZED_TEXT
from telegram_pm2.config import Settings
from telegram_pm2.errors import SupervisorConnectionError, TelegramAPIError
from telegram_pm2.pm2_client import ProcessDescriptor


@pytest.fixture
def settings():
    return Settings(bot_token="test_bot_token", bot_developer="42", _env_file=None)


@pytest.fixture
def bot(settings, telegram, supervisor):
    return PM2Bot(settings, telegram=telegram, supervisor=supervisor)


class TestProcessUpdate:
    """Tests for PM2Bot.process_update."""

    @pytest.mark.asyncio
    async def test_operator_list(self, bot, telegram, supervisor):
        supervisor.list.return_value = [ProcessDescriptor(name="api", status="online")]

        await bot.process_update(make_update("/list", chat_id=42))

        assert "api - online" in sent_texts(telegram)[0]

    @pytest.mark.asyncio
    async def test_stranger_restart(self, settings, telegram, supervisor):
        settings.bot_developer = ""
        bot = PM2Bot(settings, telegram=telegram, supervisor=supervisor)

        await bot.process_update(make_update("/restart 3", chat_id=7))

        assert sent_texts(telegram) == [NOT_AUTHORIZED_TEXT]
        supervisor.restart.assert_not_called()

    @pytest.mark.asyncio
    async def test_reply_failure_goes_to_error_sink(self, bot, telegram):
        telegram.send_message.side_effect = [
            TelegramAPIError("Bad Request: can't parse entities", error_code=400),
            {},
        ]

        await bot.process_update(make_update("/help"))

        assert sent_texts(telegram)[-1] == GENERIC_ERROR_TEXT

    @pytest.mark.asyncio
    async def test_blocked_user_gets_no_error_reply(self, bot, telegram):
        telegram.send_message.side_effect = TelegramAPIError(
            "Forbidden: bot was blocked by the user", error_code=403
        )

        await bot.process_update(make_update("/help"))

        assert telegram.send_message.await_count == 1


class TestStartup:
    """Tests for PM2Bot.start."""

    @pytest.mark.asyncio
    async def test_start_connects_and_registers_commands(self, bot, telegram, supervisor):
        telegram.get_me.return_value = {"username": "pm2bot"}
        telegram.get_updates.return_value = []

        await bot.start()
        try:
            supervisor.connect.assert_awaited_once()
            telegram.ensure_commands_set.assert_awaited_once_with(BOT_COMMANDS)
            assert bot.router.bot_username == "pm2bot"
            assert bot.running is True
        finally:
            await bot.stop()

        telegram.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_supervisor_failure_is_fatal(self, settings, telegram, supervisor):
        supervisor.connect.side_effect = SupervisorConnectionError("connect ECONNREFUSED")

        with patch("telegram_pm2.bot.PM2Bot") as bot_cls:
            bot_cls.return_value = PM2Bot(settings, telegram=telegram, supervisor=supervisor)
            with pytest.raises(SystemExit) as exc_info:
                await async_main(settings)

        assert exc_info.value.code == 1
        telegram.get_updates.assert_not_called()
        telegram.close.assert_awaited_once()

    def test_empty_token_exits_cleanly(self, monkeypatch):
        monkeypatch.setenv("BOT_TOKEN", "")

        with patch("telegram_pm2.bot.asyncio.run") as run:
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 1
        run.assert_not_called()

    def test_operator_set_from_settings(self, settings, telegram, supervisor):
        settings.bot_developer = "42, 1001"
        bot = PM2Bot(settings, telegram=telegram, supervisor=supervisor)
        assert 42 in bot.operators
        assert 1001 in bot.operators
        assert 7 not in bot.operators


class TestPolling:
    """Tests for the background poll loop."""

    @pytest.mark.asyncio
    async def test_poll_queues_updates_and_advances_offset(self, bot, telegram):
        bot.running = True

        async def get_updates(offset, limit, timeout):
            bot.running = False
            return [{"update_id": 10}, {"update_id": 11}]

        telegram.get_updates.side_effect = get_updates

        await bot._background_poll_loop()

        assert bot.last_offset == 12
        assert bot._update_queue.qsize() == 2
