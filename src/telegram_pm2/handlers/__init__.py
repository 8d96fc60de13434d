"""PM2 bot handlers package."""

from .commands import CommandRouter
from .errors import ErrorSink

__all__ = [
    "CommandRouter",
    "ErrorSink",
]
