from .processed_webhook import ProcessedWebhook as ProcessedWebhook

__all__ = ["ProcessedWebhook"]
