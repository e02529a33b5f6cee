"""Food photo analysis: base class, data types, and factory."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from ..catalog import canonical_category
from ..expiry import to_day
from ..models import InventoryItem

if TYPE_CHECKING:
    from ..config import FreshlyConfig

ANALYSIS_PROMPT = """\
Analyze this food item or receipt.
Identify the main food item and its category.
Use ONLY these categories: Grains, Vegetables, Fruits, Dairy, Proteins.
Estimate its shelf life in days from today.
If it's a receipt, identify the most perishable item.

Return only a JSON object (no other text):
{"name": "food name", "category": "category", "estimated_days_left": 0}
"""


@dataclass
class AnalyzedFood:
    name: str
    category: str  # canonical category id
    estimated_days_left: int

    def to_item(
        self,
        today: date | datetime | str | None = None,
        image_url: str | None = None,
    ) -> InventoryItem:
        start = to_day(today if today is not None else datetime.now())
        expiry = start + timedelta(days=self.estimated_days_left)
        item = InventoryItem(
            name=self.name,
            category=self.category,
            expiry_date=expiry.isoformat(),
            image_url=image_url,
        )
        return item.with_status(start)


class VisionBackend(ABC):
    """Abstract base for identifying a food item from photos."""

    @abstractmethod
    async def analyze_food(self, image_paths: list[str]) -> AnalyzedFood:
        """Identify the main (or most perishable) food in the images."""
        ...


def parse_analysis(text: str) -> AnalyzedFood:
    """Parse the JSON object a vision model returned.

    Markdown code fences around the JSON are ignored.

    Raises:
        ValueError: If the reply is not a JSON object with a name.
    """
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)

    data = json.loads(cleaned)
    if not isinstance(data, dict) or not data.get("name"):
        raise ValueError(f"Unexpected analysis result: {text!r}")

    days = data.get("estimated_days_left", 0)
    return AnalyzedFood(
        name=str(data["name"]).strip(),
        category=canonical_category(str(data.get("category", ""))),
        estimated_days_left=int(round(float(days))),
    )


def create_backend(config: FreshlyConfig) -> VisionBackend:
    """Create a vision backend based on configuration."""
    backend_name = config.vision.backend

    match backend_name:
        case "gemini":
            from .gemini import GeminiVisionBackend

            return GeminiVisionBackend(
                api_key=config.vision.gemini.api_key,
                model=config.vision.gemini.model,
            )
        case "claude":
            from .claude import ClaudeVisionBackend

            return ClaudeVisionBackend(
                api_key=config.vision.claude.api_key,
                model=config.vision.claude.model,
            )
        case _:
            raise ValueError(
                f"Unknown vision backend: {backend_name!r} "
                f"(choose from: gemini, claude)"
            )
