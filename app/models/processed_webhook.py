from datetime import datetime, timezone
from sqlalchemy import DateTime, String, event
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProcessedWebhook(Base):
    """
    Durable record of a handled webhook delivery.
    One row per delivery_id, written once and never updated or deleted.
    """

    __tablename__ = "processed_webhooks"
    delivery_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    processed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True),
                                                   default=utcnow,
                                                   nullable=False)

    def __repr__(self):
        return f"ProcessedWebhook(delivery_id={self.delivery_id!r}, event_type={self.event_type!r})"


@event.listens_for(ProcessedWebhook, "before_update")
def _reject_update(mapper, connection, target):
    raise ValueError(
        f"ProcessedWebhook {target.delivery_id} is immutable once stored")
