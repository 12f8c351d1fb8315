"""
Service result types.

Services never build HTTP responses. They return one of these and the route
decides whether that becomes a redirect, a re-rendered page or a 404.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from cocktail_menu.schemas import CocktailRead, OrderRead


class Outcome(str, Enum):
    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"


@dataclass
class ActionResult:
    """Result of an admin write (create/update/delete)."""
    outcome: Outcome
    message: str = ""
    entity_id: Optional[int] = None
    # Pre-filled edit form when an update is rejected
    edit_cocktail: Optional[CocktailRead] = None

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.SUCCESS


@dataclass
class DashboardView:
    """Everything the admin dashboard renders."""
    cocktails: list[CocktailRead] = field(default_factory=list)
    orders: list[OrderRead] = field(default_factory=list)
    edit_cocktail: Optional[CocktailRead] = None
    error: Optional[str] = None
    success: Optional[str] = None
