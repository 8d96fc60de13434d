"""Telegram Bot API client with retry logic."""

import asyncio
import logging
from typing import Any, Optional

import httpx

from .errors import TelegramAPIError, TelegramError, TelegramNetworkError

logger = logging.getLogger("telegram_pm2.telegram_client")

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
MAX_RETRIES = 3
INITIAL_RETRY_DELAY = 0.1
MAX_RETRY_DELAY = 5.0


class TelegramClient:
    """Client for interacting with Telegram Bot API."""

    def __init__(
        self,
        bot_token: str,
        base_url: str = "https://api.telegram.org",
        max_retries: int = MAX_RETRIES,
        retry_delay: float = INITIAL_RETRY_DELAY,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the Telegram client.

        Args:
            bot_token: The Telegram bot token from @BotFather
            base_url: The base URL for Telegram API
            max_retries: Maximum number of retry attempts
            retry_delay: Initial retry delay in seconds (exponential backoff)
            http_client: Optional preconfigured HTTP client
        """
        if not bot_token:
            raise ValueError("A bot token is required")
        self.base_url = f"{base_url}/bot{bot_token}"
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        # Use 60s timeout to support long polling (30s) with margin
        self._client = http_client or httpx.AsyncClient(
            timeout=60.0,
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    def _backoff(self, attempt: int) -> float:
        return min(self._retry_delay * (2**attempt), MAX_RETRY_DELAY)

    async def _request_with_retry(
        self,
        method: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make a request to the Telegram API with retry logic.

        Rate limits (429), server errors and network failures are retried.
        Every other failure is raised immediately.

        Args:
            method: The API method to call
            params: Optional parameters for the method

        Returns:
            The ``result`` field of the API response

        Raises:
            TelegramAPIError: The Bot API refused the request
            TelegramNetworkError: Telegram could not be reached
        """
        url = f"{self.base_url}/{method}"
        last_error: Optional[TelegramError] = None

        for attempt in range(self._max_retries + 1):
            try:
                response = await self._client.post(url, json=params or {})
            except (httpx.NetworkError, httpx.TimeoutException) as e:
                last_error = TelegramNetworkError(f"{type(e).__name__}: {e}")
                if attempt < self._max_retries:
                    delay = self._backoff(attempt)
                    logger.warning(
                        f"Network error. Retrying after {delay:.1f}s "
                        f"(attempt {attempt + 1}/{self._max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue
                break

            try:
                result = response.json()
            except ValueError:
                result = {
                    "ok": False,
                    "error_code": response.status_code,
                    "description": response.text or response.reason_phrase,
                }

            if result.get("ok"):
                return result.get("result", {})

            parameters = result.get("parameters") or {}
            last_error = TelegramAPIError(
                result.get("description", "Unknown error"),
                error_code=result.get("error_code", response.status_code),
                retry_after=parameters.get("retry_after"),
            )

            if response.status_code not in RETRYABLE_STATUS_CODES or attempt >= self._max_retries:
                break

            if response.status_code == 429:
                # Honour Retry-After from the body or header
                delay = float(
                    last_error.retry_after
                    or response.headers.get("Retry-After", self._retry_delay)
                )
                logger.warning(
                    f"Rate limited. Retrying after {delay}s (attempt {attempt + 1}/{self._max_retries})"
                )
            else:
                delay = self._backoff(attempt)
                logger.warning(
                    f"HTTP {response.status_code}. Retrying after {delay:.1f}s "
                    f"(attempt {attempt + 1}/{self._max_retries})"
                )
            await asyncio.sleep(delay)

        raise last_error or TelegramNetworkError("Unknown error occurred")

    async def get_me(self) -> dict[str, Any]:
        """Get information about the bot.

        Returns:
            Bot information dictionary
        """
        return await self._request_with_retry("getMe")

    async def get_my_commands(self) -> list[dict[str, Any]]:
        """Get the current list of bot commands."""
        result = await self._request_with_retry("getMyCommands")
        return result if isinstance(result, list) else []

    async def set_my_commands(self, commands: list[dict[str, str]]) -> Any:
        """Set the list of bot commands shown in the Telegram menu.

        Args:
            commands: List of command dictionaries with 'command' and 'description' keys

        Returns:
            API response (True on success)
        """
        return await self._request_with_retry("setMyCommands", {"commands": commands})

    async def ensure_commands_set(self, commands: list[dict[str, str]], force: bool = False) -> bool:
        """Ensure bot commands are set, only setting if they differ or force=True.

        Returns:
            True if commands were set, False if already up to date or on failure
        """
        try:
            existing = await self.get_my_commands()
            current = [{"command": c.get("command"), "description": c.get("description")} for c in existing]
            if force or current != commands:
                logger.info(f"Setting bot commands ({len(commands)} commands)")
                await self.set_my_commands(commands)
                return True
            logger.debug(f"Bot commands already set ({len(existing)} commands)")
            return False
        except TelegramError as e:
            logger.warning(f"Failed to ensure bot commands: {e}")
            return False

    async def send_message(
        self,
        chat_id: str | int,
        text: str,
        parse_mode: str | None = "Markdown",
        disable_notification: bool = False,
        reply_to_message_id: int | None = None,
    ) -> dict[str, Any]:
        """Send a text message to a chat.

        Args:
            chat_id: The chat ID to send to
            text: The message text
            parse_mode: Parse mode (Markdown, HTML, or None)
            disable_notification: Send silently
            reply_to_message_id: Optional message ID to reply to

        Returns:
            The sent message information
        """
        params: dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
            "disable_notification": disable_notification,
        }
        if parse_mode:
            params["parse_mode"] = parse_mode
        if reply_to_message_id:
            params["reply_to_message_id"] = reply_to_message_id

        return await self._request_with_retry("sendMessage", params)

    async def get_updates(
        self,
        offset: int | None = None,
        limit: int = 100,
        timeout: int = 30,
        allowed_updates: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Get updates from Telegram using long polling.

        Args:
            offset: Identifier of the first update to return
            limit: Maximum number of updates
            timeout: Long polling timeout in seconds
            allowed_updates: List of update types to receive

        Returns:
            List of updates
        """
        params: dict[str, Any] = {
            "limit": limit,
            "timeout": timeout,
        }
        if offset is not None:
            params["offset"] = offset
        if allowed_updates is not None:
            params["allowed_updates"] = allowed_updates

        result = await self._request_with_retry("getUpdates", params)
        return result if isinstance(result, list) else []
