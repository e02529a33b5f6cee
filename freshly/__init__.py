"""Freshly: grocery freshness tracking with AI-generated imagery."""

from .assets import AssetCache, AssetEntry, AssetState, create_asset_cache
from .catalog import (
    FOOD_CATEGORIES,
    canonical_category,
    category_key,
    item_key,
    manual_item,
    onboarding_key,
    recipe_key,
)
from .config import (
    DatabaseConfig,
    FreshlyConfig,
    ImageGenConfig,
    SchedulerConfig,
    ThrottleConfig,
    VisionConfig,
    load_config,
)
from .expiry import ExpiryStatus, Freshness, classify
from .imagegen import (
    AspectRatio,
    GeneratedImage,
    GenerationFailed,
    ImageProvider,
    ImageRequest,
    create_provider,
)
from .imagegen.throttle import ThrottledGenerator
from .models import InventoryItem

__all__ = [
    "AssetCache",
    "AssetEntry",
    "AssetState",
    "create_asset_cache",
    "FOOD_CATEGORIES",
    "canonical_category",
    "category_key",
    "item_key",
    "manual_item",
    "onboarding_key",
    "recipe_key",
    "FreshlyConfig",
    "DatabaseConfig",
    "ImageGenConfig",
    "SchedulerConfig",
    "ThrottleConfig",
    "VisionConfig",
    "load_config",
    "ExpiryStatus",
    "Freshness",
    "classify",
    "AspectRatio",
    "GeneratedImage",
    "GenerationFailed",
    "ImageProvider",
    "ImageRequest",
    "create_provider",
    "ThrottledGenerator",
    "InventoryItem",
]
