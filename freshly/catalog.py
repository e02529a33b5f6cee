"""Food catalog and canonical asset keys.

Every asset key is built here so that differently-cased or translated
category names always resolve to the same persisted entry.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from .expiry import to_day
from .models import InventoryItem

FALLBACK_CATEGORY = "other"


@dataclass(frozen=True)
class CatalogFood:
    name: str
    shelf_life: int  # days


@dataclass(frozen=True)
class FoodCategory:
    id: str
    name: str
    icon_subject: str  # what the generated category icon depicts
    foods: tuple[CatalogFood, ...]


FOOD_CATEGORIES: tuple[FoodCategory, ...] = (
    FoodCategory(
        id="grains",
        name="Grains",
        icon_subject="a bowl of rice",
        foods=(
            CatalogFood("Rice", 365),
            CatalogFood("Lentils", 365),
            CatalogFood("Beans", 365),
            CatalogFood("Pasta", 365),
            CatalogFood("Oats", 180),
        ),
    ),
    FoodCategory(
        id="vegetables",
        name="Vegetables",
        icon_subject="a fresh head of broccoli",
        foods=(
            CatalogFood("Spinach", 5),
            CatalogFood("Tomatoes", 7),
            CatalogFood("Carrots", 21),
            CatalogFood("Broccoli", 7),
            CatalogFood("Onions", 30),
        ),
    ),
    FoodCategory(
        id="fruits",
        name="Fruits",
        icon_subject="a red apple",
        foods=(
            CatalogFood("Apples", 14),
            CatalogFood("Bananas", 5),
            CatalogFood("Strawberries", 3),
            CatalogFood("Oranges", 14),
            CatalogFood("Grapes", 7),
        ),
    ),
    FoodCategory(
        id="dairy",
        name="Dairy",
        icon_subject="a bottle of milk",
        foods=(
            CatalogFood("Milk", 7),
            CatalogFood("Yogurt", 14),
            CatalogFood("Cheese", 21),
            CatalogFood("Butter", 60),
            CatalogFood("Eggs", 30),
        ),
    ),
    FoodCategory(
        id="proteins",
        name="Proteins",
        icon_subject="a beef steak",
        foods=(
            CatalogFood("Chicken", 3),
            CatalogFood("Beef", 3),
            CatalogFood("Fish", 2),
            CatalogFood("Pork", 3),
            CatalogFood("Tofu", 7),
        ),
    ),
)

_CATEGORIES_BY_ID = {c.id: c for c in FOOD_CATEGORIES}

# Alternative spellings seen from the vision model and older clients
CATEGORY_ALIASES: dict[str, str] = {
    "grain": "grains",
    "granos": "grains",
    "pantry": "grains",
    "vegetable": "vegetables",
    "veggies": "vegetables",
    "verduras": "vegetables",
    "fruit": "fruits",
    "frutas": "fruits",
    "lacteos": "dairy",
    "milk": "dairy",
    "protein": "proteins",
    "proteinas": "proteins",
    "meat": "proteins",
    "otros": FALLBACK_CATEGORY,
}


def normalize_name(name: str) -> str:
    """Fold a display name to its key form.

    Accents are stripped, case is folded and runs of whitespace collapse to
    a single space.
    """
    decomposed = unicodedata.normalize("NFKD", name)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return re.sub(r"\s+", " ", stripped).strip().casefold()


def canonical_category(name: str) -> str:
    """Map any known category spelling to its canonical id."""
    norm = normalize_name(name)
    if norm in _CATEGORIES_BY_ID:
        return norm
    return CATEGORY_ALIASES.get(norm, FALLBACK_CATEGORY)


def get_category(name: str) -> FoodCategory | None:
    return _CATEGORIES_BY_ID.get(canonical_category(name))


def category_key(name: str) -> str:
    return f"category:{canonical_category(name)}"


def item_key(name: str) -> str:
    norm = normalize_name(name)
    if not norm:
        raise ValueError("item name must not be empty")
    return f"item:{norm}"


def onboarding_key(step: int) -> str:
    return f"onboarding:{step}"


def recipe_key(title: str) -> str:
    norm = normalize_name(title)
    if not norm:
        raise ValueError("recipe title must not be empty")
    return f"recipe:{norm}"


def split_key(key: str) -> tuple[str, str]:
    """Split ``kind:value``.

    Raises:
        ValueError: If the key has no kind prefix.
    """
    kind, sep, value = key.partition(":")
    if not sep or not kind or not value:
        raise ValueError(f"Invalid asset key: {key!r}")
    return kind, value


def manual_item(
    category: str,
    food: str,
    today: date | datetime | str | None = None,
) -> InventoryItem:
    """Build an inventory item for a catalog food.

    The expiry date is ``today`` plus the food's shelf life.

    Raises:
        ValueError: If the category or food is not in the catalog.
    """
    cat = get_category(category)
    if cat is None:
        raise ValueError(f"Unknown category: {category!r}")

    wanted = normalize_name(food)
    match = next((f for f in cat.foods if normalize_name(f.name) == wanted), None)
    if match is None:
        raise ValueError(f"{food!r} is not in the {cat.name} catalog")

    start = to_day(today if today is not None else datetime.now())
    expiry = start + timedelta(days=match.shelf_life)
    item = InventoryItem(
        name=match.name,
        category=cat.id,
        expiry_date=expiry.isoformat(),
    )
    return item.with_status(start)
