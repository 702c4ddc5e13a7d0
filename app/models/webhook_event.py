from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON


class WebhookStatus(str, Enum):
    pending = "pending"
    processed = "processed"
    failed = "failed"


class WebhookEvent(SQLModel, table=True):
    __tablename__ = "webhook_event"
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)

    # gateway's own event id, used to drop redeliveries
    event_id: Optional[str] = Field(default=None, unique=True, index=True)
    event_type: str = Field(index=True)
    razorpay_order_id: Optional[str] = Field(default=None, index=True)
    payload: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    status: WebhookStatus = Field(default=WebhookStatus.pending, index=True)
    retry_count: int = Field(default=0)
    last_error: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    processed_at: Optional[datetime] = None
    latency_ms: Optional[int] = None
