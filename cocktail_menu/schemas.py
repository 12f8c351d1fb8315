"""
Pydantic Schemas

Typed views of database rows and of the admin cocktail form.
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


# =============================================================================
# ROW SCHEMAS
# =============================================================================

class CocktailRead(BaseModel):
    """A cocktail row. Listing queries select only some columns."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    ingredients: str = ""
    instructions: Optional[str] = None
    image_path: Optional[str] = None
    strength: Optional[str] = None
    glass_type: Optional[str] = None
    garnish: Optional[str] = None
    tags: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def tag_list(self) -> list[str]:
        return [t.strip() for t in (self.tags or "").split(",") if t.strip()]


class OrderRead(BaseModel):
    """An order row."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_name: str
    cocktail_id: Optional[int] = None
    cocktail_name: str
    note: Optional[str] = None
    created_at: Optional[datetime] = None


# =============================================================================
# FORM SCHEMAS
# =============================================================================

class CocktailForm(BaseModel):
    """Fields submitted by the create/update cocktail forms, whitespace-trimmed."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = ""
    ingredients: str = ""
    instructions: str = ""
    strength: Optional[str] = None
    glass_type: Optional[str] = None
    garnish: Optional[str] = None
    tags: Optional[str] = None

    @field_validator("name", "ingredients", "instructions", mode="before")
    @classmethod
    def none_to_empty(cls, v: Optional[str]) -> str:
        return v or ""

    @field_validator("strength", "glass_type", "garnish", "tags", mode="after")
    @classmethod
    def empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    def missing_fields(self, require_instructions: bool = False) -> list[str]:
        """Names of required fields left blank."""
        missing = []
        if not self.name:
            missing.append("name")
        if not self.ingredients:
            missing.append("ingredients")
        if require_instructions and not self.instructions:
            missing.append("instructions")
        return missing


# =============================================================================
# INPUT HELPERS
# =============================================================================

# SQLite INTEGER is a signed 64-bit value
MIN_ID = -(2 ** 63)
MAX_ID = 2 ** 63 - 1

_ID_PATTERN = re.compile(r"[+-]?[0-9]+")


def parse_id(value: Optional[object]) -> Optional[int]:
    """
    Parse an id from a form field, query string or path segment.

    Only an optional sign followed by ASCII digits is accepted, and the value
    must fit a database integer. Anything else is None.
    """
    if value is None:
        return None
    raw = str(value).strip()
    if not raw.isascii() or not _ID_PATTERN.fullmatch(raw):
        return None
    parsed = int(raw)
    if not MIN_ID <= parsed <= MAX_ID:
        return None
    return parsed
