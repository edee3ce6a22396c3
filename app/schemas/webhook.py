from datetime import datetime
from typing import Any, Dict
from pydantic import BaseModel, ConfigDict, Field


class WebhookEvent(BaseModel):
    # ids are opaque: stored exactly as sent, only all-blank values are rejected
    id: str = Field(min_length=1, max_length=255, pattern=r"\S")
    type: str = Field(min_length=1, max_length=100, pattern=r"\S")
    data: Dict[str, Any] = Field(default_factory=dict)


class WebhookAck(BaseModel):
    status: str
    event_id: str


class ProcessedWebhookResponse(BaseModel):
    delivery_id: str
    event_type: str
    processed_at: datetime

    model_config = ConfigDict(from_attributes=True)
