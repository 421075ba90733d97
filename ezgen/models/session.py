"""
Session log models streamed to connected clients.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class LogLevel(str, Enum):
    """Severity shown by the frontend."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class LogEntry(BaseModel):
    """One progress event: `{timestamp, message, type, id}` on the wire."""

    timestamp: str = Field(default_factory=_now_iso)
    message: str
    type: LogLevel = Field(default=LogLevel.INFO)
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
