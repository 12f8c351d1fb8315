"""
SQLAlchemy Database Models

Table definitions for the menu and the orders placed from it. Rows are read
and written through textual SQL in the services; these classes own the schema.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from cocktail_menu.database import Base


class Cocktail(Base):
    """A menu item, managed from the admin dashboard."""
    __tablename__ = "cocktails"

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String, nullable=False)
    ingredients = Column(Text, nullable=False)
    instructions = Column(Text, nullable=False, default="")

    # /uploads/<file>, relative to the managed upload directory
    image_path = Column(String, nullable=True)

    strength = Column(String, nullable=True)
    glass_type = Column(String, nullable=True)
    garnish = Column(String, nullable=True)
    tags = Column(String, nullable=True)

    created_at = Column(DateTime, server_default=func.current_timestamp())


class Order(Base):
    """
    A guest's order.

    ``cocktail_name`` is a snapshot taken when the order is placed, so renaming
    the cocktail later does not rewrite order history.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_name = Column(String, nullable=False)
    cocktail_id = Column(
        Integer,
        ForeignKey("cocktails.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    cocktail_name = Column(String, nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.current_timestamp())
