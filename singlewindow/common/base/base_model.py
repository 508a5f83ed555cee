# =============================================================================
# File: singlewindow/common/base/base_model.py
# Description: Base Pydantic model for all domain events
# =============================================================================

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Final, Dict, Any

from pydantic import BaseModel, Field, ConfigDict

from singlewindow.utils.uuid_utils import generate_uuid

# Default schema version for events if not overridden by specific event types
_DEFAULT_DOMAIN_EVENT_VERSION: Final[int] = 1


class BaseEvent(BaseModel):
    """
    Base Pydantic model for all domain events.
    Ensures common metadata fields are present in every event.

    `timestamp` is the moment the event object was built; domain events
    also carry their own business time (`occurred_at`), which is always the
    caller-supplied "now" so replay stays deterministic.
    """
    event_id: uuid.UUID = Field(default_factory=generate_uuid)
    event_type: str  # Overridden by Literal in specific event types
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: int = Field(default=_DEFAULT_DOMAIN_EVENT_VERSION, description="Version of this event model's schema")

    model_config = ConfigDict(
        frozen=True,  # Events are immutable facts
        from_attributes=True,
        populate_by_name=True,
        extra='allow',
    )

    def to_dict_for_bus(self) -> Dict[str, Any]:
        """
        Serializes the event to a dictionary suitable for a notification
        dispatcher, converting UUID, Decimal and datetime to strings.
        """
        return self.model_dump(mode="json", by_alias=True)
