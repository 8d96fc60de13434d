"""Per-update request context."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .telegram_client import TelegramClient


@dataclass(frozen=True)
class OperatorSet:
    """Chat IDs allowed to run process management commands."""

    ids: frozenset[int] = frozenset()

    def __contains__(self, chat_id: object) -> bool:
        return chat_id in self.ids

    def __len__(self) -> int:
        return len(self.ids)


@dataclass
class RequestContext:
    """State for handling a single Telegram update.

    ``operators`` and ``is_authorized`` are filled in by the authorization
    middleware before any handler runs.
    """

    update: dict[str, Any]
    telegram: "TelegramClient" = field(repr=False)
    operators: Optional[OperatorSet] = None
    is_authorized: bool = False

    @property
    def update_id(self) -> Optional[int]:
        return self.update.get("update_id")

    @property
    def message(self) -> Optional[dict[str, Any]]:
        return self.update.get("message")

    @property
    def chat(self) -> Optional[dict[str, Any]]:
        return (self.message or {}).get("chat")

    @property
    def chat_id(self) -> Optional[int]:
        return (self.chat or {}).get("id")

    @property
    def chat_type(self) -> Optional[str]:
        return (self.chat or {}).get("type")

    @property
    def text(self) -> Optional[str]:
        return (self.message or {}).get("text")

    @property
    def from_user(self) -> Optional[dict[str, Any]]:
        return (self.message or {}).get("from")

    async def reply(self, text: str, parse_mode: Optional[str] = "Markdown") -> dict[str, Any]:
        """Send a message to the chat the update came from."""
        if self.chat_id is None:
            raise ValueError("Update has no chat to reply to")
        return await self.telegram.send_message(chat_id=self.chat_id, text=text, parse_mode=parse_mode)
