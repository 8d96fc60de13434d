"""Command routing for the PM2 bot.

Handles /start, /help, /list and /restart, plus a catch-all reply for
every other message. Process management commands and the catch-all are
only available to operators.
"""

import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from ..commands import (
    LIST_ERROR_TEXT,
    MISSING_PROCESS_ID_TEXT,
    NOT_AUTHORIZED_TEXT,
    UNSUPPORTED_CHAT_TEXT,
    WELCOME_TEXT,
    format_commands_text,
    format_help_text,
    format_process_list,
    format_restart_error_text,
    format_restart_text,
)
from ..context import RequestContext
from ..errors import SupervisorError, log_error

if TYPE_CHECKING:
    from ..pm2_client import Pm2Client

logger = logging.getLogger("telegram_pm2.commands")


class CommandRouter:
    """Dispatches message updates to command handlers."""

    def __init__(
        self,
        supervisor: "Pm2Client",
        command_prefix: str = "/",
        help_url: str = "",
        bot_username: str = "",
    ):
        """Initialize the router.

        Args:
            supervisor: Client used for list and restart
            command_prefix: Prefix that starts a command
            help_url: Link included in the /help reply
            bot_username: The bot's username, used to accept ``/cmd@username``
        """
        self.supervisor = supervisor
        self.command_prefix = command_prefix
        self.help_url = help_url
        self.bot_username = bot_username

        self.handlers: dict[str, Callable[[RequestContext, str], Awaitable[None]]] = {
            "start": self._cmd_start,
            "help": self._cmd_help,
            "list": self._cmd_list,
            "restart": self._cmd_restart,
        }

    async def __call__(self, ctx: RequestContext) -> None:
        if ctx.message is None:
            logger.debug(f"Ignoring non-message update {ctx.update_id}")
            return

        command, args = self.split_command(ctx.text)
        handler = self.handlers.get(command) if command else None
        if handler:
            await handler(ctx, args)
        else:
            await self._on_message(ctx)

    def split_command(self, text: Optional[str]) -> tuple[Optional[str], str]:
        """Split a message into (command keyword, argument text).

        The keyword must follow the prefix directly; text such as ``/ list``
        is a plain message. Matching is case-sensitive. A ``@username``
        suffix is stripped when it names this bot; commands addressed to
        other bots are plain messages. Plain messages return (None, "").
        """
        if not text or not text.startswith(self.command_prefix):
            return None, ""

        rest = text[len(self.command_prefix):]
        if not rest or not rest[:1].strip():
            return None, ""

        parts = rest.split(None, 1)
        command, _, target = parts[0].partition("@")
        if not command or (target and target.lower() != self.bot_username.lower()):
            return None, ""
        return command, parts[1] if len(parts) > 1 else ""

    def parse_command(self, text: Optional[str]) -> Optional[str]:
        """Return the command keyword of a message, or None for plain messages."""
        return self.split_command(text)[0]

    async def _reject_unauthorized(self, ctx: RequestContext) -> bool:
        """Send the not-authorized notice. Returns True if the caller must stop."""
        if ctx.is_authorized:
            return False
        await ctx.reply(NOT_AUTHORIZED_TEXT)
        return True

    async def _cmd_start(self, ctx: RequestContext, args: str) -> None:
        if ctx.chat_type != "private":
            await ctx.reply(UNSUPPORTED_CHAT_TEXT)
            return

        await ctx.reply(WELCOME_TEXT)
        logger.info(f"New user added: {ctx.from_user}")

    async def _cmd_help(self, ctx: RequestContext, args: str) -> None:
        await ctx.reply(format_help_text(self.help_url))
        logger.info(f"Help command sent to {ctx.chat_id}")

    async def _cmd_list(self, ctx: RequestContext, args: str) -> None:
        if await self._reject_unauthorized(ctx):
            return

        try:
            processes = await self.supervisor.list()
        except SupervisorError as e:
            log_error("list", e, chat_id=ctx.chat_id)
            await ctx.reply(LIST_ERROR_TEXT)
            return

        await ctx.reply(format_process_list(processes))

    async def _cmd_restart(self, ctx: RequestContext, args: str) -> None:
        if await self._reject_unauthorized(ctx):
            return

        parts = args.split()
        if not parts:
            await ctx.reply(MISSING_PROCESS_ID_TEXT)
            return

        process_id = parts[0]
        try:
            await self.supervisor.restart(process_id)
        except SupervisorError as e:
            log_error("restart", e, chat_id=ctx.chat_id, process_id=process_id)
            await ctx.reply(format_restart_error_text(process_id))
            return

        await ctx.reply(format_restart_text(process_id))

    async def _on_message(self, ctx: RequestContext) -> None:
        if await self._reject_unauthorized(ctx):
            return

        await ctx.reply(format_commands_text(self.command_prefix))
