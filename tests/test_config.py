"""Tests for edition configuration and runtime settings."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from layergen.config import (
    DEFAULT_IMAGE_SIZE,
    EditionConfig,
    EditionGroup,
    PlanEntry,
    Settings,
    load_edition_config,
)
from layergen.errors import ConfigError
from layergen.fingerprint import sha256_hex

SAMPLE = {
    "namePrefix": "Creature",
    "description": "A generated creature",
    "baseUri": "ipfs://cid/",
    "layers": [
        {
            "size": 5,
            "order": [
                {"name": "background"},
                {"name": "eyes", "pickMin": 1, "pickMax": 2},
            ],
        }
    ],
}


class TestPlanEntry:
    def test_picks_default_to_one(self) -> None:
        entry = PlanEntry(name="eyes")
        assert (entry.pick_min, entry.pick_max) == (1, 1)

    def test_camel_case_aliases(self) -> None:
        entry = PlanEntry.model_validate({"name": "eyes", "pickMin": 0, "pickMax": 3})
        assert (entry.pick_min, entry.pick_max) == (0, 3)

    def test_min_above_max_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PlanEntry(name="eyes", pick_min=3, pick_max=2)

    def test_negative_pick_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PlanEntry(name="eyes", pick_min=-1)

    def test_is_frozen(self) -> None:
        entry = PlanEntry(name="eyes")
        with pytest.raises(ValidationError):
            entry.pick_max = 4  # type: ignore[misc]


class TestEditionGroup:
    def test_fingerprint_computed_eagerly(self) -> None:
        group = EditionGroup(size=3, order=[PlanEntry(name="a"), PlanEntry(name="b")])
        assert group.fingerprint == sha256_hex("a:b")

    def test_fingerprint_depends_on_order(self) -> None:
        ab = EditionGroup(size=1, order=[PlanEntry(name="a"), PlanEntry(name="b")])
        ba = EditionGroup(size=1, order=[PlanEntry(name="b"), PlanEntry(name="a")])
        assert ab.fingerprint != ba.fingerprint

    def test_empty_order_rejected(self) -> None:
        with pytest.raises(ValidationError):
            EditionGroup(size=1, order=[])


class TestEditionConfig:
    def test_parse_sample(self) -> None:
        config = EditionConfig.model_validate(SAMPLE)
        assert config.name_prefix == "Creature"
        assert config.base_uri == "ipfs://cid/"
        assert len(config.groups) == 1
        assert config.groups[0].target_count == 5
        assert [e.name for e in config.groups[0].order] == ["background", "eyes"]

    def test_ipfs_uri_alias(self) -> None:
        data = dict(SAMPLE)
        data.pop("baseUri")
        data["ipfsUri"] = "ipfs://legacy/"
        assert EditionConfig.model_validate(data).base_uri == "ipfs://legacy/"


class TestLoadEditionConfig:
    def test_load_from_file(self, config_file) -> None:
        config = load_edition_config(config_file(SAMPLE))
        assert config.groups[0].order[1].pick_max == 2

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            load_edition_config(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError) as exc:
            load_edition_config(path)
        assert "broken.json" in str(exc.value)

    def test_schema_violation(self, config_file) -> None:
        data = dict(SAMPLE, layers=[{"size": 1, "order": [{"name": "x", "pickMin": 2, "pickMax": 1}]}])
        with pytest.raises(ConfigError):
            load_edition_config(config_file(data))


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.image_size == DEFAULT_IMAGE_SIZE
        assert settings.resize is False
        assert settings.shared_registry is False

    def test_from_env(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setenv("LAYERGEN_LAYERS_DIR", str(tmp_path / "in"))
        monkeypatch.setenv("LAYERGEN_IMAGE_SIZE", "256")
        monkeypatch.setenv("LAYERGEN_RESIZE", "true")
        monkeypatch.setenv("LAYERGEN_MAX_RETRIES", "12")
        monkeypatch.setenv("LAYERGEN_SEED", "3")
        settings = Settings.from_env(dotenv_path=tmp_path / "absent.env")
        assert settings.layers_dir == tmp_path / "in"
        assert settings.image_size == 256
        assert settings.resize is True
        assert settings.max_retries == 12
        assert settings.seed == 3

    def test_bad_env_integer(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setenv("LAYERGEN_IMAGE_SIZE", "big")
        with pytest.raises(ConfigError):
            Settings.from_env(dotenv_path=tmp_path / "absent.env")

    def test_non_positive_size_rejected(self) -> None:
        with pytest.raises(ConfigError):
            Settings(image_size=0)

    def test_prepare_directories_idempotent(self, tmp_path: Path) -> None:
        settings = Settings(layers_dir=tmp_path / "layers", destination_dir=tmp_path / "build")
        (tmp_path / "build").mkdir()
        keep = tmp_path / "build" / "keep.txt"
        keep.write_text("x", encoding="utf-8")

        settings.prepare_directories()
        settings.prepare_directories()

        assert (tmp_path / "layers").is_dir()
        assert keep.read_text(encoding="utf-8") == "x"
