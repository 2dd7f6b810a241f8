"""
Product Service event envelope and consumer interfaces.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class BaseEvent(BaseModel):
    """Base class for all domain events"""

    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    event_type: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = "1.0"
    source_service: str = "unknown"
    correlation_id: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class MalformedEventError(Exception):
    """Raised by a handler for a payload it can never process."""


class EventHandler(ABC):
    """Abstract base class for event handlers"""

    @abstractmethod
    async def handle(self, event: BaseEvent) -> None:
        """Handle an event"""
        pass


class EventSubscriber(ABC):
    """Abstract base class for event subscribers"""

    @abstractmethod
    async def subscribe(self, topic: str, event_type: str, handler: EventHandler) -> None:
        """Subscribe to an event type on a topic"""
        pass
