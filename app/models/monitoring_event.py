from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON


class Severity(str, Enum):
    info = "info"
    warning = "warning"
    critical = "critical"


class MonitoringEvent(SQLModel, table=True):
    __tablename__ = "monitoring_event"
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)

    type: str = Field(index=True)
    severity: Severity = Field(default=Severity.info)
    message: str
    meta: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
