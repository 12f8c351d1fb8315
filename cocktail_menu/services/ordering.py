"""
Guest-facing menu and ordering logic.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from cocktail_menu.database import Database
from cocktail_menu.schemas import CocktailRead, OrderRead, parse_id
from cocktail_menu.services.notifications import DispatchResult, OrderDispatcher
from cocktail_menu.services.results import Outcome

logger = logging.getLogger(__name__)

MISSING_FIELDS_ERROR = "Please enter your name and choose a drink."
UNKNOWN_COCKTAIL_ERROR = "The selected drink is no longer on the menu."


@dataclass
class OrderPlacement:
    """Result of a guest submitting the order form."""
    outcome: Outcome
    order_id: Optional[int] = None
    error: Optional[str] = None
    # Echoed back so the menu can restore the guest's selection
    cocktail_id: Optional[int] = None
    dispatch: Optional[DispatchResult] = None


class OrderingService:
    """Menu reads and order placement."""

    def __init__(self, db: Database, dispatcher: OrderDispatcher):
        self.db = db
        self.dispatcher = dispatcher

    async def list_menu(self) -> list[CocktailRead]:
        rows = await self.db.query_many(
            "SELECT id, name, ingredients, image_path, strength, glass_type, garnish, tags "
            "FROM cocktails ORDER BY name ASC"
        )
        return [CocktailRead.model_validate(row) for row in rows]

    async def get_cocktail(self, cocktail_id: object) -> Optional[CocktailRead]:
        parsed = parse_id(cocktail_id)
        if parsed is None:
            return None
        row = await self.db.query_one("SELECT * FROM cocktails WHERE id = :id", {"id": parsed})
        return CocktailRead.model_validate(row) if row else None

    async def get_order(self, order_id: object) -> Optional[OrderRead]:
        parsed = parse_id(order_id)
        if parsed is None:
            return None
        row = await self.db.query_one(
            "SELECT id, customer_name, cocktail_id, cocktail_name, note, created_at "
            "FROM orders WHERE id = :id",
            {"id": parsed},
        )
        return OrderRead.model_validate(row) if row else None

    async def place_order(
        self,
        customer_name: Optional[str],
        cocktail_id: object,
        note: Optional[str] = None,
    ) -> OrderPlacement:
        """
        Validate, persist, then notify staff.

        Delivery problems never fail the placement: by the time the dispatcher
        runs the order row already exists.
        """
        customer_name = (customer_name or "").strip()
        note = (note or "").strip() or None
        chosen_id = parse_id(cocktail_id)

        if not customer_name or chosen_id is None:
            return OrderPlacement(
                outcome=Outcome.VALIDATION_ERROR,
                error=MISSING_FIELDS_ERROR,
                cocktail_id=chosen_id,
            )

        cocktail = await self.db.query_one(
            "SELECT id, name FROM cocktails WHERE id = :id", {"id": chosen_id}
        )
        if cocktail is None:
            return OrderPlacement(
                outcome=Outcome.NOT_FOUND,
                error=UNKNOWN_COCKTAIL_ERROR,
                cocktail_id=chosen_id,
            )

        created = await self.db.execute(
            """
            INSERT INTO orders (customer_name, cocktail_id, cocktail_name, note)
            VALUES (:customer_name, :cocktail_id, :cocktail_name, :note)
            """,
            {
                "customer_name": customer_name,
                "cocktail_id": cocktail["id"],
                "cocktail_name": cocktail["name"],
                "note": note,
            },
        )
        order = OrderRead(
            id=created.inserted_id,
            customer_name=customer_name,
            cocktail_id=cocktail["id"],
            cocktail_name=cocktail["name"],
            note=note,
        )
        logger.info(f"Order #{order.id} placed: {order.cocktail_name} for {order.customer_name}")

        dispatch = await self.dispatcher.dispatch(order)

        return OrderPlacement(
            outcome=Outcome.SUCCESS,
            order_id=order.id,
            cocktail_id=order.cocktail_id,
            dispatch=dispatch,
        )
