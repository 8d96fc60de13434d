"""Middleware chain run for every inbound update.

Each middleware receives the request context and a ``call_next`` coroutine
function that runs the rest of the chain. Middlewares run in list order and
the final handler (the command router) runs last.
"""

import logging
import time
from typing import Awaitable, Callable, Sequence

from .context import OperatorSet, RequestContext

logger = logging.getLogger("telegram_pm2.middleware")

Handler = Callable[[RequestContext], Awaitable[None]]
Middleware = Callable[[RequestContext, Handler], Awaitable[None]]


class MiddlewarePipeline:
    """Runs an ordered list of middlewares around a final handler."""

    def __init__(self, middlewares: Sequence[Middleware], handler: Handler):
        self.middlewares = list(middlewares)
        self.handler = handler

    async def __call__(self, ctx: RequestContext) -> None:
        await self._run(0, ctx)

    async def _run(self, index: int, ctx: RequestContext) -> None:
        if index == len(self.middlewares):
            await self.handler(ctx)
            return

        async def call_next(next_ctx: RequestContext) -> None:
            await self._run(index + 1, next_ctx)

        await self.middlewares[index](ctx, call_next)


class AuthorizationMiddleware:
    """Marks the context as authorized when the chat is a known operator."""

    def __init__(self, operators: OperatorSet):
        self.operators = operators

    async def __call__(self, ctx: RequestContext, call_next: Handler) -> None:
        ctx.operators = self.operators
        ctx.is_authorized = ctx.chat_id in self.operators
        await call_next(ctx)


async def timing_middleware(ctx: RequestContext, call_next: Handler) -> None:
    """Log how long the rest of the chain took, replies included."""
    before = time.perf_counter()
    try:
        await call_next(ctx)
    finally:
        elapsed_ms = (time.perf_counter() - before) * 1000
        logger.info(f"Response time: {elapsed_ms:.0f} ms (update {ctx.update_id})")
