"""Tests for the CLI commands (image generation is scripted)."""

import json

import pytest

from freshly.cli import PLACEHOLDER, main
from freshly.db import InventoryDB
from freshly.imagegen import GeneratedImage, ImageGenerationError, ImageProvider


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "freshly.toml"
    db_path = (tmp_path / "freshly.db").as_posix()
    path.write_text(
        f"[database]\npath = \"{db_path}\"\n\n"
        "[throttle]\nmin_interval = 0\nbase_delay = 0\n"
    )
    return str(path)


def _db(config_path):
    return InventoryDB(config_path.replace("freshly.toml", "freshly.db"))


def test_no_command_prints_help(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 1
    assert "usage" in capsys.readouterr().out


def test_categories(capsys):
    main(["categories"])
    out = capsys.readouterr().out
    assert "dairy" in out
    assert "Milk (7d)" in out


def test_add_then_list_json(config_path, capsys):
    main(["-c", config_path, "add", "Lácteos", "milk"])
    assert "Added #1: Milk" in capsys.readouterr().out

    main(["-c", config_path, "list", "--json"])
    data = json.loads(capsys.readouterr().out)
    assert len(data) == 1
    assert data[0]["name"] == "Milk"
    assert data[0]["category"] == "dairy"
    assert data[0]["status"] == "Fresh"
    assert data[0]["icon_key"] == "category:dairy"


def test_add_unknown_food_exits_2(config_path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["-c", config_path, "add", "fruits", "Durian"])
    assert exc_info.value.code == 2
    assert "catalog" in capsys.readouterr().err


def test_list_bad_filter_exits_2(config_path):
    with pytest.raises(SystemExit) as exc_info:
        main(["-c", config_path, "list", "--filter", "stale"])
    assert exc_info.value.code == 2


def test_list_empty(config_path, capsys):
    main(["-c", config_path, "list"])
    assert "empty" in capsys.readouterr().out


def test_list_filter_without_matches(config_path, capsys):
    main(["-c", config_path, "add", "grains", "Rice"])
    capsys.readouterr()

    main(["-c", config_path, "list", "--filter", "Urgent"])
    assert "No items in this category." in capsys.readouterr().out


def test_remove(config_path, capsys):
    main(["-c", config_path, "add", "fruits", "Bananas"])
    capsys.readouterr()

    main(["-c", config_path, "remove", "1"])
    assert "Removed #1" in capsys.readouterr().out

    db = _db(config_path)
    try:
        assert db.list() == []
    finally:
        db.close()


def test_remove_missing_exits_1(config_path):
    with pytest.raises(SystemExit) as exc_info:
        main(["-c", config_path, "remove", "42"])
    assert exc_info.value.code == 1


def test_refresh(config_path, capsys):
    main(["-c", config_path, "refresh"])
    assert "Updated 0 items" in capsys.readouterr().out


class ScriptedProvider(ImageProvider):
    """Returns a PNG unless the prompt mentions one of ``fail_on``."""

    def __init__(self, fail_on=()):
        self.fail_on = tuple(fail_on)
        self.prompts: list[str] = []

    async def generate(self, prompt, aspect_ratio):
        self.prompts.append(prompt)
        if any(word in prompt for word in self.fail_on):
            raise ImageGenerationError("500 internal")
        return GeneratedImage(data=b"\x89PNG")


@pytest.fixture
def provider(monkeypatch):
    scripted = ScriptedProvider()
    monkeypatch.setattr("freshly.assets.create_provider", lambda config: scripted)
    return scripted


def test_asset_ready(config_path, provider, capsys):
    main(["-c", config_path, "asset", "category:dairy"])
    assert "category:dairy: image/png, 4 bytes" in capsys.readouterr().out
    assert len(provider.prompts) == 1


def test_asset_written_to_file(config_path, provider, tmp_path, capsys):
    out = tmp_path / "dairy.png"
    main(["-c", config_path, "asset", "category:dairy", "--out", str(out)])
    assert out.read_bytes() == b"\x89PNG"
    assert "saved to" in capsys.readouterr().out


def test_asset_is_reused_across_runs(config_path, provider, capsys):
    main(["-c", config_path, "asset", "recipe:tomato soup"])
    main(["-c", config_path, "asset", "recipe:tomato soup"])
    assert len(provider.prompts) == 1


def test_asset_failure_prints_placeholder(config_path, provider, capsys):
    provider.fail_on = ("Burnt Toast",)
    with pytest.raises(SystemExit) as exc_info:
        main(["-c", config_path, "asset", "recipe:Burnt Toast"])
    assert exc_info.value.code == 1
    assert PLACEHOLDER in capsys.readouterr().out


def test_warm_lists_every_key(config_path, provider, capsys):
    provider.fail_on = ("(Dairy)",)
    main(["-c", config_path, "warm"])
    lines = capsys.readouterr().out.splitlines()

    dairy = next(line for line in lines if "category:dairy" in line)
    fruits = next(line for line in lines if "category:fruits" in line)
    assert PLACEHOLDER in dairy
    assert fruits.rstrip().endswith("ok")
    assert sum(1 for line in lines if "onboarding:" in line) == 3
    assert len(provider.prompts) == 8


def test_image_uses_item_category_and_records_url(config_path, provider, capsys):
    main(["-c", config_path, "add", "dairy", "Milk"])
    capsys.readouterr()

    main(["-c", config_path, "image", "1"])
    assert "#1 Milk: image/png" in capsys.readouterr().out
    assert "ceramic bowl" in provider.prompts[0]

    db = _db(config_path)
    try:
        assert db.get(1).image_url == GeneratedImage(data=b"\x89PNG").to_data_url()
    finally:
        db.close()

    main(["-c", config_path, "list", "--json"])
    data = json.loads(capsys.readouterr().out)
    assert data[0]["image_key"] == "item:milk"
    assert data[0]["has_image"] is True


def test_image_failure_leaves_item_without_url(config_path, provider, capsys):
    provider.fail_on = ("milk",)
    main(["-c", config_path, "add", "dairy", "Milk"])
    capsys.readouterr()

    with pytest.raises(SystemExit) as exc_info:
        main(["-c", config_path, "image", "1"])
    assert exc_info.value.code == 1
    assert PLACEHOLDER in capsys.readouterr().out

    db = _db(config_path)
    try:
        assert db.get(1).image_url is None
    finally:
        db.close()


def test_image_unknown_item(config_path, provider):
    with pytest.raises(SystemExit) as exc_info:
        main(["-c", config_path, "image", "7"])
    assert exc_info.value.code == 1
    assert provider.prompts == []
