"""Prompt builders for every kind of generated asset."""

from __future__ import annotations

from dataclasses import dataclass

from .catalog import (
    FOOD_CATEGORIES,
    canonical_category,
    category_key,
    get_category,
    onboarding_key,
    split_key,
)
from .imagegen import AspectRatio, ImageRequest

_RENDER_STYLE = (
    "3D render, high quality, isolated on pure white background, "
    "vibrant colors, soft lighting."
)


@dataclass(frozen=True)
class OnboardingStep:
    title: str
    description: str
    prompt: str


ONBOARDING_STEPS: tuple[OnboardingStep, ...] = (
    OnboardingStep(
        title="Say goodbye to waste,\nhello to savings.",
        description=(
            "Transform what you have into delicious meals and never waste "
            "a single ingredient."
        ),
        prompt=(
            "Generate a hyperrealistic 3D illustration of a modern, sleek "
            "double-door refrigerator. The fridge should be fully stocked with "
            "neatly organized fresh groceries in clear containers, fruits, and "
            "vegetables. One of the bottom crisper drawers should have a subtle "
            "green glow emanating from the vegetables. Soft studio lighting, "
            "Octane Render style, front 3/4 view, pure white background."
        ),
    ),
    OnboardingStep(
        title="Your kitchen, now with\nsuperpowers.",
        description=(
            "Organize your fridge, predict expiration dates, and keep your "
            "monthly spending to a minimum."
        ),
        prompt=(
            "Generate a hyperrealistic 3D illustration of a hand holding a "
            "modern smartphone. The phone screen displays an open camera app "
            "interface, actively scanning a bunch of fresh spinach and a "
            "half-cut avocado on a light wooden surface. A clean, minimalist UI "
            "overlay with a green scanning box and subtle text 'Spinach - Fresh' "
            "and '8 days' should be visible. Soft studio lighting, Octane Render "
            "style, eye-level perspective, pure white background."
        ),
    ),
    OnboardingStep(
        title="Get inspired by what\nyou already have.",
        description=(
            "We suggest delicious recipes based on the ingredients that are "
            "about to expire."
        ),
        prompt=(
            "Generate a hyperrealistic 3D illustration of a simple, elegant bowl "
            "of spaghetti with red sauce and fresh basil on top, placed slightly "
            "off-center. Around the bowl, various 3D ingredients like a red "
            "tomato, basil leaves, orecchiette pasta, and other small pasta "
            "shapes should be gently floating. In the background, a modern "
            "smartphone is levitating, displaying a recipe app interface with "
            "'5 Steps' visible. Soft studio lighting, Octane Render style, "
            "slightly elevated perspective, pure white background."
        ),
    ),
)


def _style_for(category: str) -> str:
    match canonical_category(category):
        case "proteins":
            return (
                "professionally plated or on a simple wooden board, "
                "high-end food photography style"
            )
        case "dairy" | "grains":
            return "in a simple elegant ceramic bowl or glass container"
        case _:
            return "fresh and vibrant, individual object"


def icon_request(subject: str, category: str) -> ImageRequest:
    """Square icon of a single food, styled by its category."""
    prompt = (
        f"3D hyperrealistic render of {subject} ({category}), "
        f"{_style_for(category)}, pure white background, isolated, soft studio "
        "lighting, natural detailed textures, vibrant colors, Octane Render "
        "style, high quality, 8k resolution."
    )
    return ImageRequest(prompt=prompt, aspect_ratio=AspectRatio.SQUARE)


def onboarding_request(step: int) -> ImageRequest:
    if not 0 <= step < len(ONBOARDING_STEPS):
        raise ValueError(f"No onboarding step {step}")
    prompt = f"{ONBOARDING_STEPS[step].prompt} {_RENDER_STYLE}"
    return ImageRequest(prompt=prompt, aspect_ratio=AspectRatio.SQUARE)


def category_request(category: str) -> ImageRequest:
    cat = get_category(category)
    if cat is None:
        return icon_request(f"an assortment of {category} groceries", category)
    return icon_request(cat.icon_subject, cat.name)


def recipe_request(title: str) -> ImageRequest:
    prompt = (
        f"Professional food photography of {title}, high-end restaurant "
        "plating, close-up, soft natural lighting, vibrant colors, bokeh "
        "background, 8k resolution, appetizing."
    )
    return ImageRequest(prompt=prompt, aspect_ratio=AspectRatio.WIDE)


def item_prompt_builder(category: str):
    """Prompt builder for ``item:`` keys whose category is known."""

    def build(key: str) -> ImageRequest:
        _, name = split_key(key)
        return icon_request(name, category)

    return build


def prompt_for_key(key: str) -> ImageRequest:
    """Build the request for any canonical asset key.

    ``item:`` keys get generic styling here; use :func:`item_prompt_builder`
    when the item's category is known.

    Raises:
        ValueError: For malformed keys or unknown key kinds.
    """
    kind, value = split_key(key)
    match kind:
        case "onboarding":
            try:
                step = int(value)
            except ValueError:
                raise ValueError(f"Invalid onboarding key: {key!r}") from None
            return onboarding_request(step)
        case "category":
            return category_request(value)
        case "item":
            return icon_request(value, "food")
        case "recipe":
            return recipe_request(value)
        case _:
            raise ValueError(f"Unknown asset kind {kind!r} in key {key!r}")


def onboarding_keys() -> list[str]:
    return [onboarding_key(i) for i in range(len(ONBOARDING_STEPS))]


def category_keys() -> list[str]:
    return [category_key(c.id) for c in FOOD_CATEGORIES]
