
class WebhookError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class DuplicateDeliveryError(WebhookError):
    """Insert collided with an already stored delivery. Callers treat it as success."""

    def __init__(self, delivery_id: str):
        self.delivery_id = delivery_id
        super().__init__(f"Delivery {delivery_id} already processed", status_code=200)


class StorageUnavailableError(WebhookError):
    def __init__(self, message: str = "Webhook storage unavailable"):
        super().__init__(message, status_code=503)


class InvalidSignatureError(WebhookError):
    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message, status_code=401)


class InvalidPayloadError(WebhookError):
    def __init__(self, message: str = "Invalid payload"):
        super().__init__(message, status_code=400)
