"""
Envelope exchanged with clients over the realtime channel.

On the wire every message is a JSON object ``{Type, Data, Message, Timestamp}``.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MessageType(str, Enum):
    """Realtime message types, serialized by name."""

    PING = "Ping"
    PONG = "Pong"
    CONTACT_CREATED = "ContactCreated"
    CONTACT_UPDATED = "ContactUpdated"
    CONTACT_DELETED = "ContactDeleted"
    CONTACTS_IMPORTED = "ContactsImported"
    ERROR = "Error"
    INFO = "Info"
    STATISTICS_UPDATED = "StatisticsUpdated"


class WebSocketMessage(BaseModel):
    """Realtime message envelope."""

    model_config = ConfigDict(populate_by_name=True)

    type: MessageType = Field(..., alias="Type")
    data: Any | None = Field(default=None, alias="Data")
    message: str | None = Field(default=None, alias="Message")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="Timestamp",
    )

    @field_validator("type", mode="before")
    @classmethod
    def accept_ordinal_type(cls, v: Any) -> Any:
        """Accept the numeric form of the type as well as its name."""
        if isinstance(v, int) and not isinstance(v, bool):
            members = list(MessageType)
            if 0 <= v < len(members):
                return members[v]
        return v

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
