"""
                        Services Module

Business logic behind the routes. Services talk to the database, the image
directory and WhatsApp, and return plain result objects.

Services:
    - ordering: menu reads and order placement
    - catalog: admin cocktail/order management
    - images: upload storage
    - notifications: order dispatch to staff
    - qr: menu QR code
"""

from cocktail_menu.services.catalog import CatalogService
from cocktail_menu.services.images import ImageRejected, ImageStorage
from cocktail_menu.services.ordering import OrderingService, OrderPlacement
from cocktail_menu.services.results import ActionResult, DashboardView, Outcome

__all__ = [
    "CatalogService",
    "ImageRejected",
    "ImageStorage",
    "OrderingService",
    "OrderPlacement",
    "ActionResult",
    "DashboardView",
    "Outcome",
]
