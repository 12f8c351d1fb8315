"""
Order Dispatcher

Turns a freshly persisted order into a staff notification:

    1. Twilio configured  -> send directly
    2. Twilio send failed -> offer the wa.me link (if a number is configured)
    3. Only a number      -> offer the wa.me link
    4. Nothing configured -> nothing to do

The order already exists when the dispatcher runs, so no outcome here is
ever reported to the guest as an error.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

from cocktail_menu.core.config import Settings
from cocktail_menu.schemas import OrderRead
from cocktail_menu.services.notifications.base import BaseNotificationService

logger = logging.getLogger(__name__)

WHATSAPP_LINK_PREFIX = "https://wa.me/"

# Characters encodeURIComponent leaves alone
URI_COMPONENT_SAFE = "-_.!~*'()"


@dataclass
class DispatchResult:
    """What the confirmation page needs to know about delivery."""
    delivered: bool = False
    message_id: Optional[str] = None
    whatsapp_url: Optional[str] = None
    fallback: bool = False


def build_order_message(customer_name: str, cocktail_name: str, note: Optional[str] = None) -> str:
    """
    Staff-facing order text. The details line is left out when there is no note.

    Example:
        >>> print(build_order_message("Ana", "Mojito"))
        Hi! New cocktail order:
        Name: Ana
        Drink: Mojito
    """
    lines = [
        "Hi! New cocktail order:",
        f"Name: {customer_name}",
        f"Drink: {cocktail_name}",
    ]
    if note:
        lines.append(f"Details: {note}")
    return "\n".join(lines)


def build_whatsapp_link(number: str, message: str) -> str:
    """wa.me deep link with the message pre-filled."""
    return f"{WHATSAPP_LINK_PREFIX}{number}?text={quote(message, safe=URI_COMPONENT_SAFE)}"


def is_whatsapp_link(url: Optional[str]) -> bool:
    return bool(url) and url.startswith(WHATSAPP_LINK_PREFIX)


class OrderDispatcher:
    """Chooses and runs the delivery strategy for an order."""

    def __init__(self, settings: Settings, service: Optional[BaseNotificationService] = None):
        self.whatsapp_number = settings.whatsapp_number
        self.service = service

    @property
    def direct_enabled(self) -> bool:
        return self.service is not None

    @property
    def manual_enabled(self) -> bool:
        return bool(self.whatsapp_number)

    def manual_link(self, message: str) -> Optional[str]:
        if not self.manual_enabled:
            return None
        return build_whatsapp_link(self.whatsapp_number, message)

    async def dispatch(self, order: OrderRead) -> DispatchResult:
        message = build_order_message(order.customer_name, order.cocktail_name, order.note)

        if self.service is not None:
            result = await self.service.send_message(message)
            if result.success:
                logger.info(f"Order #{order.id} delivered via {result.provider} ({result.message_id})")
                return DispatchResult(delivered=True, message_id=result.message_id)

            logger.warning(f"Order #{order.id} direct delivery failed: {result.error_message}")
            link = self.manual_link(message)
            return DispatchResult(whatsapp_url=link, fallback=link is not None)

        link = self.manual_link(message)
        if link is None:
            logger.info(f"Order #{order.id} saved, no WhatsApp delivery configured")
        return DispatchResult(whatsapp_url=link)

    async def aclose(self) -> None:
        if self.service is not None:
            await self.service.aclose()
