"""
Notification Service Factory

Builds the order dispatcher with Twilio direct delivery when the Twilio
settings are complete, and without it otherwise.
"""

import logging
from typing import Any, Optional

from cocktail_menu.core.config import Settings
from cocktail_menu.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)
from cocktail_menu.services.notifications.dispatcher import (
    DispatchResult,
    OrderDispatcher,
    build_order_message,
    build_whatsapp_link,
    is_whatsapp_link,
)
from cocktail_menu.services.notifications.twilio_whatsapp import TwilioWhatsAppService

logger = logging.getLogger(__name__)


def get_notification_service(
    settings: Settings,
    client: Optional[Any] = None,
) -> Optional[BaseNotificationService]:
    """Direct delivery service, or None when Twilio is not fully configured."""
    if settings.twilio_enabled:
        logger.info("Notification Service: Using TwilioWhatsAppService")
        return TwilioWhatsAppService(settings, client=client)

    if settings.whatsapp_number:
        logger.info("Notification Service: Twilio not configured, using wa.me links only")
    else:
        logger.warning("Notification Service: no WhatsApp delivery configured")
    return None


def build_dispatcher(settings: Settings, client: Optional[Any] = None) -> OrderDispatcher:
    return OrderDispatcher(settings, get_notification_service(settings, client=client))


__all__ = [
    "get_notification_service",
    "build_dispatcher",
    "BaseNotificationService",
    "NotificationResult",
    "DispatchResult",
    "OrderDispatcher",
    "TwilioWhatsAppService",
    "build_order_message",
    "build_whatsapp_link",
    "is_whatsapp_link",
]
