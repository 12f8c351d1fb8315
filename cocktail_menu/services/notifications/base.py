"""
Notification Service Abstract Base Class

Defines the interface for pushing an order message to staff.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


class BaseNotificationService(ABC):
    """Abstract base class for direct delivery services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_message(self, body: str) -> NotificationResult:
        """
        Deliver a message to the configured staff recipient.

        Implementations never raise for delivery problems; they return a
        failed NotificationResult instead.
        """
        pass

    async def aclose(self) -> None:
        """Release network resources. Called at shutdown."""
        return None
