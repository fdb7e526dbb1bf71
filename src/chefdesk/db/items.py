"""
Menu items and recipes - the source a prep list is built from.

Items come from `menu_items` (the chef's available ones, by name) and are
joined client-side with `recipes` on menu_item_id. This module only reads;
recipe content is owned elsewhere.
"""

import asyncio
import logging
from typing import Any

from chefdesk.db.adapter import DatabaseAdapter
from chefdesk.scheduling.entities import AvailableItem, Recipe

logger = logging.getLogger(__name__)


def _fetch_menu_items(db: DatabaseAdapter, chef_id: str) -> list[dict[str, Any]]:
    response = (
        db.table("menu_items")
        .select("*")
        .eq("chef_id", chef_id)
        .eq("is_available", True)
        .order("name")
        .execute()
    )
    return response.data or []


def _fetch_recipes(db: DatabaseAdapter, menu_item_ids: list[str]) -> list[dict[str, Any]]:
    response = db.table("recipes").select("*").in_("menu_item_id", menu_item_ids).execute()
    return response.data or []


def join_items_with_recipes(
    menu_items: list[dict[str, Any]],
    recipes: list[dict[str, Any]],
) -> list[AvailableItem]:
    """Attach each item's recipe (first match wins; items may have none)."""
    recipe_by_item: dict[str, dict[str, Any]] = {}
    for recipe in recipes:
        item_id = recipe.get("menu_item_id")
        if item_id and item_id not in recipe_by_item:
            recipe_by_item[item_id] = recipe

    items = []
    for row in menu_items:
        recipe_row = recipe_by_item.get(row["id"])
        items.append(
            AvailableItem(
                id=row["id"],
                name=row["name"],
                description=row.get("description"),
                cuisine_type=row.get("cuisine_type"),
                recipe=Recipe.model_validate(_clean_recipe(recipe_row)) if recipe_row else None,
            )
        )
    return items


def _clean_recipe(row: dict[str, Any]) -> dict[str, Any]:
    """Null columns become the model defaults."""
    return {k: v for k, v in row.items() if v is not None}


async def load_available_items(db: DatabaseAdapter, chef_id: str) -> list[AvailableItem]:
    """
    Available menu items for a chef, each joined with its recipe.

    Menu item errors propagate; a failed recipe fetch is logged and the items
    come back without recipes.
    """
    menu_items = await asyncio.to_thread(_fetch_menu_items, db, chef_id)
    if not menu_items:
        return []

    try:
        recipes = await asyncio.to_thread(_fetch_recipes, db, [row["id"] for row in menu_items])
    except Exception as e:
        logger.error(f"Error loading recipes for chef {chef_id}: {e}")
        recipes = []

    return join_items_with_recipes(menu_items, recipes)


def filter_items(items: list[AvailableItem], term: str) -> list[AvailableItem]:
    """Case-insensitive search on name or cuisine type."""
    needle = term.strip().lower()
    if not needle:
        return list(items)
    return [
        item
        for item in items
        if needle in item.name.lower() or (item.cuisine_type and needle in item.cuisine_type.lower())
    ]
