"""PM2 Telegram bot - list and restart PM2 processes from Telegram."""

from .bot import PM2Bot, main
from .context import OperatorSet, RequestContext
from .handlers import CommandRouter, ErrorSink
from .middleware import AuthorizationMiddleware, MiddlewarePipeline, timing_middleware
from .pm2_client import Pm2Client, ProcessDescriptor
from .telegram_client import TelegramClient

__all__ = [
    "PM2Bot",
    "OperatorSet",
    "RequestContext",
    "CommandRouter",
    "ErrorSink",
    "AuthorizationMiddleware",
    "MiddlewarePipeline",
    "timing_middleware",
    "Pm2Client",
    "ProcessDescriptor",
    "TelegramClient",
    "main",
]
