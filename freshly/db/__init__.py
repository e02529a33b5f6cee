"""SQLite database module for the food inventory and generated assets."""

from .assets import AssetStore, SQLiteAssetStore
from .inventory import InventoryDB
from .schema import ensure_schema

__all__ = [
    "AssetStore",
    "InventoryDB",
    "SQLiteAssetStore",
    "ensure_schema",
]
