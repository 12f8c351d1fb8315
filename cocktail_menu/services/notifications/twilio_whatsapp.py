"""
Twilio WhatsApp Notification Service

Direct delivery: posts the order message to the Twilio Messages API from the
verified WhatsApp sender to the staff recipient.
"""

import logging
from typing import Any, Optional

from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.http.async_http_client import AsyncTwilioHttpClient
from twilio.rest import Client as TwilioClient

from cocktail_menu.core.config import Settings
from cocktail_menu.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)


class TwilioWhatsAppService(BaseNotificationService):
    """Production notification service using Twilio WhatsApp messaging."""

    def __init__(self, settings: Settings, client: Optional[Any] = None):
        """
        Args:
            settings: Must have all four Twilio values configured
            client: Pre-built client exposing ``messages.create_async``
                (a TwilioClient with an async HTTP client when omitted)

        Raises:
            ValueError: If Twilio is not fully configured
        """
        if not settings.twilio_enabled:
            raise ValueError(
                "TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_WHATSAPP_FROM and "
                "TWILIO_WHATSAPP_TO are all required for direct WhatsApp delivery."
            )

        self.from_address = settings.twilio_whatsapp_from
        self.to_address = settings.twilio_whatsapp_to
        self._http_client: Optional[AsyncTwilioHttpClient] = None

        if client is None:
            self._http_client = AsyncTwilioHttpClient()
            client = TwilioClient(
                settings.twilio_account_sid,
                settings.twilio_auth_token,
                http_client=self._http_client,
            )
        self.client = client

        logger.info(f"TwilioWhatsAppService initialized (to={self.to_address})")

    @property
    def provider_name(self) -> str:
        return "twilio"

    async def send_message(self, body: str) -> NotificationResult:
        """Send a WhatsApp message via Twilio."""
        try:
            result = await self.client.messages.create_async(
                body=body,
                from_=self.from_address,
                to=self.to_address,
            )
        except TwilioRestException as e:
            logger.error(f"Twilio HTTP {e.status}: {str(e.msg)[:180]}")
            return NotificationResult(
                success=False,
                error_message=f"Twilio HTTP {e.status}: {str(e.msg)[:180]}",
                provider="twilio",
            )
        except TwilioException as e:
            logger.error(f"Twilio error: {e}")
            return NotificationResult(
                success=False,
                error_message=str(e),
                provider="twilio",
            )
        except Exception as e:
            # Transport failures (DNS, TLS, timeouts) come from aiohttp
            logger.error(f"Twilio send failed: {e}")
            return NotificationResult(
                success=False,
                error_message=str(e) or e.__class__.__name__,
                provider="twilio",
            )

        logger.info(f"WhatsApp order sent to {self.to_address}: {result.sid}")

        return NotificationResult(
            success=True,
            message_id=result.sid,
            provider="twilio",
        )

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.close()
