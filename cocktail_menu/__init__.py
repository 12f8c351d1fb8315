"""
                Cocktail Menu

QR-code cocktail menu for a single venue. Guests order from their phone,
staff receive the order on WhatsApp, and an administrator manages the
catalog and incoming orders from a password-gated dashboard.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
