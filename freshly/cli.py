"""CLI entry point."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from .catalog import FOOD_CATEGORIES, manual_item
from .config import load_config
from .db import InventoryDB
from .expiry import Freshness
from .inventory_view import (
    filter_items,
    icon_key_for,
    image_key_for,
    parse_filter,
    show_filter_chips,
    status_counts,
)

PLACEHOLDER = "[no image]"

_STATUS_MARKS = {
    Freshness.URGENT: "!!",
    Freshness.SOON: "! ",
    Freshness.FRESH: "  ",
}


def main(argv: list[str] | None = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="freshly",
        description="Freshly: track groceries before they go bad",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to the config file (TOML)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show log output"
    )

    sub = parser.add_subparsers(dest="command")

    # categories
    sub.add_parser("categories", help="Show the food catalog")

    # list
    list_parser = sub.add_parser("list", help="List inventory by expiry")
    list_parser.add_argument(
        "--filter", default="All", help="All, Urgent, Soon or Fresh"
    )
    list_parser.add_argument("--json", action="store_true", help="Output JSON")

    # add
    add_parser = sub.add_parser("add", help="Add a catalog food")
    add_parser.add_argument("category", help="Category (e.g. dairy)")
    add_parser.add_argument("food", help="Food name (e.g. Milk)")

    # scan
    scan_parser = sub.add_parser("scan", help="Identify a food from a photo and add it")
    scan_parser.add_argument(
        "--image", type=str, nargs="+", required=True, help="Image file(s)"
    )
    scan_parser.add_argument("--json", action="store_true", help="Output JSON")

    # remove
    remove_parser = sub.add_parser("remove", help="Remove (consume) an item")
    remove_parser.add_argument("id", type=int)

    # refresh
    sub.add_parser("refresh", help="Recompute stored freshness statuses")

    # warm
    sub.add_parser("warm", help="Pre-generate category icons and onboarding art")

    # asset
    asset_parser = sub.add_parser("asset", help="Fetch or generate one image")
    asset_parser.add_argument(
        "key", help="Asset key (category:dairy, item:milk, onboarding:0, recipe:...)"
    )
    asset_parser.add_argument(
        "--out", type=str, default=None, metavar="FILE", help="Write the image to FILE"
    )

    # image
    image_parser = sub.add_parser(
        "image", help="Fetch or generate the picture of one inventory item"
    )
    image_parser.add_argument("id", type=int)
    image_parser.add_argument(
        "--out", type=str, default=None, metavar="FILE", help="Write the image to FILE"
    )

    # schedule
    sub.add_parser("schedule", help="Run the scheduled jobs until interrupted")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    config = load_config(args.config)

    match args.command:
        case "categories":
            _cmd_categories()
        case "list":
            _cmd_list(config, args)
        case "add":
            _cmd_add(config, args)
        case "scan":
            asyncio.run(_cmd_scan(config, args))
        case "remove":
            _cmd_remove(config, args)
        case "refresh":
            _cmd_refresh(config)
        case "warm":
            asyncio.run(_cmd_warm(config))
        case "asset":
            asyncio.run(_cmd_asset(config, args))
        case "image":
            asyncio.run(_cmd_image(config, args))
        case "schedule":
            asyncio.run(_cmd_schedule(config))


def _cmd_categories() -> None:
    for cat in FOOD_CATEGORIES:
        foods = ", ".join(f"{f.name} ({f.shelf_life}d)" for f in cat.foods)
        print(f"{cat.id:<12} {foods}")


def _cmd_list(config, args) -> None:
    try:
        status_filter = parse_filter(args.filter)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        sys.exit(2)

    db = InventoryDB(config.database.path)
    try:
        items = db.list()
    finally:
        db.close()

    shown = filter_items(items, status_filter)

    if args.json:
        data = []
        for item in shown:
            status = item.freshness()
            data.append({
                "id": item.id,
                "name": item.name,
                "category": item.category,
                "expiry_date": item.expiry_date,
                "status": status.category.value,
                "days_left": status.days_left,
                "icon_key": icon_key_for(item),
                "image_key": image_key_for(item),
                "has_image": item.image_url is not None,
            })
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return

    if not items:
        print("Your fridge is empty.")
        return
    if show_filter_chips(items):
        counts = status_counts(items)
        print("  ".join(f"{s.value}: {n}" for s, n in counts.items()))
        print()
    if not shown:
        print("No items in this category.")
        return
    for item in shown:
        status = item.freshness()
        mark = _STATUS_MARKS[status.category]
        print(
            f"{mark} #{item.id:<4} {item.name:<16} {item.category:<11} "
            f"{status.days_left:>4} days left  [{status.category.value}]"
        )


def _cmd_add(config, args) -> None:
    try:
        item = manual_item(args.category, args.food)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        sys.exit(2)

    db = InventoryDB(config.database.path)
    try:
        item_id = db.create(item)
    finally:
        db.close()
    print(f"Added #{item_id}: {item.name} (expires {item.expiry_date})")


async def _cmd_scan(config, args) -> None:
    from .vision import create_backend

    backend = create_backend(config)
    print("Analyzing photo...")
    food = await backend.analyze_food(args.image)
    item = food.to_item()

    db = InventoryDB(config.database.path)
    try:
        item_id = db.create(item)
    finally:
        db.close()

    if args.json:
        data = {
            "id": item_id,
            "name": item.name,
            "category": item.category,
            "expiry_date": item.expiry_date,
            "estimated_days_left": food.estimated_days_left,
        }
        print(json.dumps(data, ensure_ascii=False, indent=2))
    else:
        print(
            f"Added #{item_id}: {item.name} [{item.category}], "
            f"about {food.estimated_days_left} days left"
        )


def _cmd_remove(config, args) -> None:
    db = InventoryDB(config.database.path)
    try:
        removed = db.delete(args.id)
    finally:
        db.close()
    if not removed:
        print(f"No item #{args.id}", file=sys.stderr)
        sys.exit(1)
    print(f"Removed #{args.id}")


def _cmd_refresh(config) -> None:
    db = InventoryDB(config.database.path)
    try:
        count = db.refresh_statuses()
    finally:
        db.close()
    print(f"Updated {count} items")


async def _cmd_warm(config) -> None:
    from .assets import AssetState, create_asset_cache
    from .prompts import category_keys, onboarding_keys, prompt_for_key

    cache = create_asset_cache(config)
    try:
        keys = category_keys() + onboarding_keys()
        print(f"Warming {len(keys)} images (this respects the provider's rate limit)...")
        for key in keys:
            entry = await cache.ensure(key, prompt_for_key)
            mark = "ok" if entry.state is AssetState.READY else PLACEHOLDER
            print(f"  {key:<22} {mark}")
    finally:
        cache.close()


async def _cmd_asset(config, args) -> None:
    from .assets import create_asset_cache
    from .prompts import prompt_for_key

    cache = create_asset_cache(config)
    try:
        entry = await cache.ensure(args.key, prompt_for_key)
    finally:
        cache.close()
    _print_asset(args.key, entry, args.out)


async def _cmd_image(config, args) -> None:
    from .assets import AssetState, create_asset_cache
    from .prompts import item_prompt_builder

    db = InventoryDB(config.database.path)
    try:
        item = db.get(args.id)
        if item is None:
            print(f"No item #{args.id}", file=sys.stderr)
            sys.exit(1)

        key = image_key_for(item)
        cache = create_asset_cache(config)
        try:
            entry = await cache.ensure(key, item_prompt_builder(item.category))
        finally:
            cache.close()

        if entry.state is AssetState.READY and entry.value is not None:
            db.set_image_url(item.id, entry.value.to_data_url())
    finally:
        db.close()
    _print_asset(f"#{item.id} {item.name}", entry, args.out)


def _print_asset(label: str, entry, out: str | None) -> None:
    from .assets import AssetState

    if entry.state is not AssetState.READY or entry.value is None:
        print(f"{label}: {PLACEHOLDER} ({entry.error})")
        sys.exit(1)

    if out:
        Path(out).write_bytes(entry.value.data)
        print(f"{label}: saved to {out}")
    else:
        print(f"{label}: {entry.value.mime_type}, {len(entry.value.data)} bytes")


async def _cmd_schedule(config) -> None:
    from .scheduler import FreshlyScheduler

    scheduler = FreshlyScheduler(config)
    scheduler.start()
    for job in scheduler.get_jobs():
        print(f"  {job['id']:<18} next run: {job['next_run']}")
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.stop()
