"""
Cart Service event envelope and publisher interface.
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
    source_service: str = "cart-service"
    correlation_id: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class EventPublisher(ABC):
    """Abstract base class for event publishers"""

    @abstractmethod
    async def publish(self, event: BaseEvent, topic: Optional[str] = None) -> None:
        """Publish an event"""
        pass
