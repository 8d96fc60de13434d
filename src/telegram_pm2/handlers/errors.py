"""Terminal handler for failures that escape the middleware chain."""

import logging

from ..commands import GENERIC_ERROR_TEXT
from ..context import RequestContext
from ..errors import TelegramAPIError, TelegramError, TransportErrorKind

logger = logging.getLogger("telegram_pm2.errors")


class ErrorSink:
    """Classifies unhandled errors and decides whether to notify the user."""

    async def handle(self, error: Exception, ctx: RequestContext) -> None:
        logger.error(f"Error while handling update {ctx.update_id}\nQuery: {ctx.text}")

        if isinstance(error, TelegramError):
            if error.kind == TransportErrorKind.BLOCKED:
                logger.info(f"Bot was blocked by the user: {error}")
                return
            if error.kind == TransportErrorKind.UNREACHABLE:
                logger.error(f"Could not contact Telegram: {error}")
                return
            if isinstance(error, TelegramAPIError):
                logger.error(f"Error in request: {error.description}")
            else:
                logger.error(f"Telegram error: {error}")
        else:
            logger.error("Unknown error", exc_info=error)

        await self._notify(ctx)

    async def _notify(self, ctx: RequestContext) -> None:
        """Best-effort generic error reply. Never raises."""
        if ctx.chat_id is None:
            return
        try:
            await ctx.reply(GENERIC_ERROR_TEXT, parse_mode=None)
        except Exception as e:
            logger.warning(f"Failed to send error reply to chat {ctx.chat_id}: {e}")
