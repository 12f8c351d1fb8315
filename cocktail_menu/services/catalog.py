"""
Admin catalog management: cocktails, their images, and the order list.

Image lifecycle rules:
    - A rejected submission never leaves a stored file behind
    - On replacement the new file is referenced first, then the old one removed
    - A file is only removed when no other cocktail row points at it
"""

import logging
from typing import Optional

from fastapi import UploadFile

from cocktail_menu.database import Database
from cocktail_menu.schemas import CocktailForm, CocktailRead, OrderRead, parse_id
from cocktail_menu.services.images import ImageRejected, ImageStorage
from cocktail_menu.services.results import ActionResult, DashboardView, Outcome

logger = logging.getLogger(__name__)

RECENT_ORDER_LIMIT = 100

REQUIRED_FIELDS_ERROR = "Name and ingredients are required."
REQUIRED_WITH_INSTRUCTIONS_ERROR = "Name, ingredients and instructions are required."
INVALID_ID_ERROR = "Invalid cocktail id."
COCKTAIL_NOT_FOUND_ERROR = "Cocktail not found."
EDIT_TARGET_NOT_FOUND_ERROR = "The cocktail selected for editing does not exist."
ORDER_NOT_FOUND_ERROR = "Order not found."


class CatalogService:
    """Admin-side reads and writes."""

    def __init__(self, db: Database, images: ImageStorage, require_instructions: bool = False):
        self.db = db
        self.images = images
        self.require_instructions = require_instructions

    # ==========================================================================
    # READS
    # ==========================================================================

    async def list_cocktails(self) -> list[CocktailRead]:
        """All cocktails, newest first."""
        rows = await self.db.query_many(
            "SELECT id, name, ingredients, instructions, image_path, strength, glass_type, "
            "garnish, tags, created_at FROM cocktails ORDER BY id DESC"
        )
        return [CocktailRead.model_validate(row) for row in rows]

    async def recent_orders(self, limit: int = RECENT_ORDER_LIMIT) -> list[OrderRead]:
        rows = await self.db.query_many(
            "SELECT id, customer_name, cocktail_id, cocktail_name, note, created_at "
            "FROM orders ORDER BY id DESC LIMIT :limit",
            {"limit": limit},
        )
        return [OrderRead.model_validate(row) for row in rows]

    async def get_cocktail(self, cocktail_id: int) -> Optional[CocktailRead]:
        row = await self.db.query_one("SELECT * FROM cocktails WHERE id = :id", {"id": cocktail_id})
        return CocktailRead.model_validate(row) if row else None

    async def dashboard(
        self,
        edit_id: Optional[str] = None,
        error: Optional[str] = None,
        success: Optional[str] = None,
    ) -> DashboardView:
        view = DashboardView(
            cocktails=await self.list_cocktails(),
            orders=await self.recent_orders(),
            error=error or None,
            success=success or None,
        )
        parsed = parse_id(edit_id)
        if parsed is not None:
            view.edit_cocktail = await self.get_cocktail(parsed)
            if view.edit_cocktail is None:
                view.error = EDIT_TARGET_NOT_FOUND_ERROR
        return view

    # ==========================================================================
    # WRITES
    # ==========================================================================

    def _required_error(self) -> str:
        return REQUIRED_WITH_INSTRUCTIONS_ERROR if self.require_instructions else REQUIRED_FIELDS_ERROR

    async def _store_image(self, image: Optional[UploadFile]) -> Optional[str]:
        if not self.images.has_upload(image):
            return None
        return await self.images.save(image)

    async def _release_image(self, image_path: Optional[str], except_id: Optional[int] = None) -> None:
        """Delete an image file unless another cocktail still references it."""
        if not image_path:
            return
        row = await self.db.query_one(
            "SELECT COUNT(*) AS refs FROM cocktails WHERE image_path = :path AND id != :id",
            {"path": image_path, "id": except_id if except_id is not None else -1},
        )
        if row and row["refs"]:
            logger.info(f"Keeping {image_path}, still referenced by {row['refs']} cocktail(s)")
            return
        self.images.delete(image_path)

    async def create_cocktail(self, form: CocktailForm, image: Optional[UploadFile] = None) -> ActionResult:
        if form.missing_fields(self.require_instructions):
            return ActionResult(Outcome.VALIDATION_ERROR, self._required_error())

        try:
            image_path = await self._store_image(image)
        except ImageRejected as e:
            return ActionResult(Outcome.VALIDATION_ERROR, str(e))

        try:
            created = await self.db.execute(
                """
                INSERT INTO cocktails (name, ingredients, instructions, image_path, strength, glass_type, garnish, tags)
                VALUES (:name, :ingredients, :instructions, :image_path, :strength, :glass_type, :garnish, :tags)
                """,
                {**form.model_dump(), "image_path": image_path},
            )
        except Exception:
            # No row will ever reference the file
            self.images.delete(image_path)
            raise

        logger.info(f"Cocktail #{created.inserted_id} created: {form.name}")
        return ActionResult(Outcome.SUCCESS, "Cocktail saved.", entity_id=created.inserted_id)

    async def update_cocktail(
        self,
        cocktail_id: object,
        form: CocktailForm,
        image: Optional[UploadFile] = None,
    ) -> ActionResult:
        parsed = parse_id(cocktail_id)
        if parsed is None:
            return ActionResult(Outcome.NOT_FOUND, INVALID_ID_ERROR)

        existing = await self.get_cocktail(parsed)
        if existing is None:
            return ActionResult(Outcome.NOT_FOUND, COCKTAIL_NOT_FOUND_ERROR, entity_id=parsed)

        # Submitted values win, blanks fall back to what is stored
        prefilled = existing.model_copy(update={
            key: value or getattr(existing, key)
            for key, value in form.model_dump().items()
        })

        if form.missing_fields(self.require_instructions):
            return ActionResult(
                Outcome.VALIDATION_ERROR,
                self._required_error(),
                entity_id=parsed,
                edit_cocktail=prefilled,
            )

        try:
            new_image_path = await self._store_image(image)
        except ImageRejected as e:
            return ActionResult(Outcome.VALIDATION_ERROR, str(e), entity_id=parsed, edit_cocktail=prefilled)

        try:
            await self.db.execute(
                """
                UPDATE cocktails
                SET name = :name, ingredients = :ingredients, instructions = :instructions,
                    image_path = :image_path, strength = :strength, glass_type = :glass_type,
                    garnish = :garnish, tags = :tags
                WHERE id = :id
                """,
                {
                    **form.model_dump(),
                    "image_path": new_image_path or existing.image_path,
                    "id": parsed,
                },
            )
        except Exception:
            self.images.delete(new_image_path)
            raise

        if new_image_path and existing.image_path and existing.image_path != new_image_path:
            await self._release_image(existing.image_path, except_id=parsed)

        logger.info(f"Cocktail #{parsed} updated")
        return ActionResult(Outcome.SUCCESS, "Cocktail updated.", entity_id=parsed)

    async def delete_cocktail(self, cocktail_id: object) -> ActionResult:
        parsed = parse_id(cocktail_id)
        if parsed is None:
            return ActionResult(Outcome.NOT_FOUND, INVALID_ID_ERROR)

        row = await self.db.query_one("SELECT image_path FROM cocktails WHERE id = :id", {"id": parsed})
        if row is None:
            return ActionResult(Outcome.NOT_FOUND, COCKTAIL_NOT_FOUND_ERROR, entity_id=parsed)

        await self._release_image(row["image_path"], except_id=parsed)
        await self.db.execute("DELETE FROM cocktails WHERE id = :id", {"id": parsed})
        # Covered by ON DELETE CASCADE too, kept for stores without FK enforcement
        await self.db.execute("DELETE FROM orders WHERE cocktail_id = :id", {"id": parsed})

        logger.info(f"Cocktail #{parsed} deleted")
        return ActionResult(Outcome.SUCCESS, "Cocktail deleted.", entity_id=parsed)

    async def delete_order(self, order_id: object) -> ActionResult:
        parsed = parse_id(order_id)
        if parsed is None:
            return ActionResult(Outcome.NOT_FOUND, ORDER_NOT_FOUND_ERROR)

        result = await self.db.execute("DELETE FROM orders WHERE id = :id", {"id": parsed})
        if not result.rows_affected:
            return ActionResult(Outcome.NOT_FOUND, ORDER_NOT_FOUND_ERROR, entity_id=parsed)

        logger.info(f"Order #{parsed} deleted")
        return ActionResult(Outcome.SUCCESS, "Order deleted.", entity_id=parsed)
