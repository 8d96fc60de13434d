"""PM2 Telegram bot daemon.

The bot:
1. Connects to the local PM2 daemon (fatal on failure)
2. Long-polls Telegram for updates
3. Runs every update through the middleware chain and command router
4. Hands any failure that escapes the chain to the error sink
"""

import asyncio
import logging
import signal
import sys
from typing import Any, Optional

from pydantic import ValidationError

from .commands import BOT_COMMANDS
from .config import Settings, get_settings
from .context import OperatorSet, RequestContext
from .errors import SupervisorConnectionError, setup_logger
from .handlers import CommandRouter, ErrorSink
from .middleware import AuthorizationMiddleware, MiddlewarePipeline, timing_middleware
from .pm2_client import Pm2Client
from .telegram_client import TelegramClient

logger = logging.getLogger("telegram_pm2.bot")


class PM2Bot:
    """Telegram front-end for a local PM2 daemon."""

    def __init__(
        self,
        settings: Settings,
        telegram: Optional[TelegramClient] = None,
        supervisor: Optional[Pm2Client] = None,
    ):
        """Initialize the bot.

        Args:
            settings: Loaded application settings
            telegram: Telegram client (built from settings if None)
            supervisor: PM2 client (built from settings if None)
        """
        self.settings = settings
        self.operators = OperatorSet(settings.get_operator_ids())

        self.telegram = telegram or TelegramClient(
            bot_token=settings.bot_token,
            base_url=settings.api_base_url,
        )
        self.supervisor = supervisor or Pm2Client(settings.pm2_bin)

        self.router = CommandRouter(
            self.supervisor,
            command_prefix=settings.command_prefix,
            help_url=settings.help_url,
        )
        self.pipeline = MiddlewarePipeline(
            [AuthorizationMiddleware(self.operators), timing_middleware],
            self.router,
        )
        self.error_sink = ErrorSink()

        # Polling state, in memory only
        self.last_offset: Optional[int] = None
        self.running = False
        self._shutdown_event = asyncio.Event()
        self._poll_task: Optional[asyncio.Task] = None
        self._update_queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._update_tasks: set[asyncio.Task] = set()

        if not self.operators:
            logger.warning("No operators configured; process commands are disabled for everyone")

    async def start(self) -> None:
        """Connect to PM2 and Telegram and start polling.

        Raises:
            SupervisorConnectionError: If the PM2 daemon is not reachable
        """
        if self.running:
            return

        await self.supervisor.connect()

        try:
            bot_info = await self.telegram.get_me()
            self.router.bot_username = bot_info.get("username", "")
            logger.info(f"Bot started as @{self.router.bot_username}")
        except Exception as e:
            logger.warning(f"Could not get bot info: {e}")

        await self.telegram.ensure_commands_set(BOT_COMMANDS)

        self.running = True
        self._shutdown_event.clear()
        self._poll_task = asyncio.create_task(self._background_poll_loop())

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._handle_signal)

        logger.info(f"Polling started ({len(self.operators)} operators)")

    async def stop(self) -> None:
        """Stop polling, finish in-flight updates and close the client."""
        logger.info("Stopping bot...")
        self.running = False
        self._shutdown_event.set()

        if self._poll_task:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass

        if self._update_tasks:
            await asyncio.gather(*self._update_tasks, return_exceptions=True)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)

        await self.telegram.close()
        logger.info("Bot stopped")

    def _handle_signal(self) -> None:
        logger.info("Received shutdown signal")
        self._shutdown_event.set()

    async def run(self) -> None:
        """Main run loop."""
        await self.start()

        try:
            while self.running and not self._shutdown_event.is_set():
                try:
                    update = await asyncio.wait_for(self._update_queue.get(), timeout=1.0)
                except asyncio.TimeoutError:
                    continue

                task = asyncio.create_task(self.process_update(update))
                self._update_tasks.add(task)
                task.add_done_callback(self._update_tasks.discard)
        finally:
            await self.stop()

    async def _background_poll_loop(self) -> None:
        """Background task that polls Telegram and puts updates into a queue."""
        logger.info("Background polling started")

        while self.running and not self._shutdown_event.is_set():
            try:
                updates = await self.telegram.get_updates(
                    offset=self.last_offset,
                    limit=100,
                    timeout=self.settings.polling_timeout,
                )
                for update in updates:
                    update_id = update.get("update_id", 0)
                    if self.last_offset is None or update_id >= self.last_offset:
                        self.last_offset = update_id + 1
                    await self._update_queue.put(update)

            except asyncio.CancelledError:
                logger.info("Background polling cancelled")
                break
            except Exception as e:
                logger.error(f"Polling error: {e}")
                await asyncio.sleep(1)

        logger.info("Background polling stopped")

    async def process_update(self, update: dict[str, Any]) -> None:
        """Handle a single Telegram update end to end."""
        ctx = RequestContext(update=update, telegram=self.telegram)
        try:
            await self.pipeline(ctx)
        except Exception as e:
            await self.error_sink.handle(e, ctx)


async def async_main(settings: Settings) -> None:
    """Async entry point."""
    bot = PM2Bot(settings)
    try:
        await bot.run()
    except SupervisorConnectionError as e:
        logger.error(f"PM2 connect error: {e}")
        await bot.telegram.close()
        sys.exit(1)


def main() -> None:
    """Sync entry point."""
    try:
        settings = get_settings()
    except ValidationError as e:
        logging.basicConfig(level=logging.INFO)
        logging.getLogger("telegram_pm2").error(f"Invalid configuration: {e}")
        sys.exit(1)

    setup_logger(level=settings.log_level, error_log_file=settings.error_log_file)

    try:
        asyncio.run(async_main(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")


if __name__ == "__main__":
    main()
