"""Bot command definitions and reply texts.

BOT_COMMANDS is registered with the Telegram Bot API so the commands show
up in the chat menu. All reply texts use Telegram's legacy Markdown.
"""

import re
from typing import Iterable

from .pm2_client import ProcessDescriptor

BOT_COMMANDS = [
    {"command": "start", "description": "Start the bot"},
    {"command": "help", "description": "Know more"},
    {"command": "list", "description": "List processes"},
    {"command": "restart", "description": "Restart [process id]"},
]

WELCOME_TEXT = "*Welcome!* ✨\n_This is a process management bot for PM2._"

UNSUPPORTED_CHAT_TEXT = "*Channels and groups are not supported presently.*"

NOT_AUTHORIZED_TEXT = (
    "*You're not authorized to use this bot.*\n"
    "_Please request access by contacting the admin(s)._"
)

MISSING_PROCESS_ID_TEXT = "*Please provide a process ID to restart.*"

LIST_ERROR_TEXT = "*Error listing PM2 processes.*"

NO_PROCESSES_TEXT = "*No PM2 processes found.*"

GENERIC_ERROR_TEXT = "An error occurred"

_MARKDOWN_SPECIAL = re.compile(r"([_*`\[])")


def escape_markdown(text: str) -> str:
    """Escape characters that legacy Markdown would treat as entities."""
    return _MARKDOWN_SPECIAL.sub(r"\\\1", text)


def format_help_text(help_url: str) -> str:
    return (
        "*PM2 Telegram Bot.*\n\n"
        "_This is a utility bot to manage processes.\n"
        "Unauthorized use is not permitted.\n"
        f"Deploy your own from_ [here]({help_url})."
    )


def format_commands_text(prefix: str = "/") -> str:
    """Format the list of available commands."""
    lines = [f"{prefix}{cmd['command']} {cmd['description']}" for cmd in BOT_COMMANDS]
    return "*Here are the commands available:*\n\n_" + "\n".join(lines) + "_"


def format_process_list(processes: Iterable[ProcessDescriptor]) -> str:
    """Format processes as ``<name> - <status>`` lines under a heading."""
    lines = [f"{escape_markdown(p.name)} - {escape_markdown(p.status)}" for p in processes]
    if not lines:
        return NO_PROCESSES_TEXT
    return "*PM2 Processes:*\n\n" + "\n".join(lines)


def format_restart_text(process_id: str) -> str:
    """The id sits outside the bold span and is escaped, so any id parses."""
    return f"*Restarting process* {escape_markdown(process_id)}"


def format_restart_error_text(process_id: str) -> str:
    return f"*Error restarting process* {escape_markdown(process_id)}"
