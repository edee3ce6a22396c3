import logging
from typing import Awaitable, Callable, Dict, Tuple
from app.schemas.webhook import WebhookEvent

logger = logging.getLogger(__name__)

WebhookHandler = Callable[[str, WebhookEvent], Awaitable[None]]


async def noop_handler(provider: str, event: WebhookEvent) -> None:
    logger.info(
        f"No handler for {provider} event {event.type} (id: {event.id}), ignoring")


class WebhookHandlerRegistry:
    """Maps (provider, event type) to the async handler applying its side effect."""

    def __init__(self):
        self._handlers: Dict[Tuple[str, str], WebhookHandler] = {}

    def register(self, provider: str, event_type: str, handler: WebhookHandler):
        self._handlers[(provider, event_type)] = handler

    def resolve(self, provider: str, event_type: str) -> WebhookHandler:
        return self._handlers.get((provider, event_type), noop_handler)

    async def dispatch(self, provider: str, event: WebhookEvent) -> None:
        # handler errors propagate so the delivery stays unmarked and gets retried
        handler = self.resolve(provider, event.type)
        await handler(provider, event)


webhook_handlers = WebhookHandlerRegistry()


def get_webhook_handlers() -> WebhookHandlerRegistry:
    return webhook_handlers
