"""
config.py — Edition configuration (JSON) and runtime settings (.env / CLI).

Edition configuration file, camelCase keys:

  {
    "namePrefix":  "Creature",
    "description": "A generated creature",
    "baseUri":     "ipfs://<CID>/",
    "layers": [
      {"size": 5, "order": [{"name": "background"},
                            {"name": "eyes", "pickMin": 1, "pickMax": 2}]}
    ]
  }

Each entry of "layers" is an EditionGroup: how many unique editions to produce
(`size`) and which layers to stack, bottom first (`order`).

Runtime settings come from LAYERGEN_* environment variables (a .env file is
honoured) and are overridden by CLI flags.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    ValidationError,
    model_validator,
)

from .errors import ConfigError
from .fingerprint import sha256_hex

GROUP_SEPARATOR = ":"


# ── Edition configuration ─────────────────────────────────────────────────────

class PlanEntry(BaseModel):
    """How many files to pick from one layer per edition."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(min_length=1, description="Layer (sub-directory) name")
    pick_min: int = Field(default=1, ge=0, alias="pickMin")
    pick_max: int = Field(default=1, ge=0, alias="pickMax")

    @model_validator(mode="after")
    def _check_range(self) -> "PlanEntry":
        if self.pick_min > self.pick_max:
            raise ValueError(
                f"pickMin ({self.pick_min}) must be lower or equal to "
                f"pickMax ({self.pick_max}) for layer '{self.name}'"
            )
        return self


class EditionGroup(BaseModel):
    """A target edition count plus the ordered layers to composite."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    size: int = Field(ge=0, description="Number of unique editions to produce")
    order: List[PlanEntry] = Field(min_length=1)

    _fingerprint: str = PrivateAttr(default="")

    def model_post_init(self, __context) -> None:
        # layer names joined with ":" identify the group in output file names
        chained = GROUP_SEPARATOR.join(entry.name for entry in self.order)
        self._fingerprint = sha256_hex(chained)

    @property
    def fingerprint(self) -> str:
        return self._fingerprint

    @property
    def target_count(self) -> int:
        return self.size


class EditionConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name_prefix: str = Field(alias="namePrefix")
    description: str = ""
    base_uri: str = Field(default="", alias="baseUri")
    layers: List[EditionGroup] = Field(min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _accept_ipfs_uri(cls, data):
        if isinstance(data, dict) and "ipfsUri" in data and "baseUri" not in data:
            data = dict(data)
            data["baseUri"] = data.pop("ipfsUri")
        return data

    @property
    def groups(self) -> List[EditionGroup]:
        return self.layers


def load_edition_config(path: Path) -> EditionConfig:
    """Read and validate the edition configuration file."""
    path = Path(path)
    if not path.is_file():
        raise ConfigError("Edition configuration is not a file", path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Couldn't read edition configuration: {e}", path) from e
    try:
        return EditionConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid edition configuration:\n{e}", path) from e


# ── Runtime settings ──────────────────────────────────────────────────────────

ENV_PREFIX = "LAYERGEN_"

DEFAULT_LAYERS_DIR = Path("layers")
DEFAULT_DESTINATION_DIR = Path("build")
DEFAULT_CONFIG_PATH = Path("config/layer_configuration.json")
DEFAULT_IMAGE_SIZE = 1024
DEFAULT_MAX_RETRIES = 10_000


def _env(name: str) -> Optional[str]:
    value = os.environ.get(ENV_PREFIX + name)
    return value if value not in (None, "") else None


def _env_bool(name: str, default: bool) -> bool:
    value = _env(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    value = _env(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {value!r}") from e


@dataclass
class Settings:
    """Where to read layers from, where to write editions, and engine limits."""
    layers_dir: Path = DEFAULT_LAYERS_DIR
    destination_dir: Path = DEFAULT_DESTINATION_DIR
    config_path: Path = DEFAULT_CONFIG_PATH
    image_size: int = DEFAULT_IMAGE_SIZE
    resize: bool = False
    max_retries: int = DEFAULT_MAX_RETRIES
    cleanup: bool = False
    seed: Optional[int] = None
    shared_registry: bool = False

    def __post_init__(self) -> None:
        self.layers_dir = Path(self.layers_dir)
        self.destination_dir = Path(self.destination_dir)
        self.config_path = Path(self.config_path)
        if self.image_size <= 0:
            raise ConfigError(f"image size must be positive, got {self.image_size}")
        if self.max_retries < 0:
            raise ConfigError(f"max retries must not be negative, got {self.max_retries}")

    @classmethod
    def from_env(cls, dotenv_path: Optional[Path] = None) -> "Settings":
        """Defaults overridden by LAYERGEN_* variables (and a .env file)."""
        load_dotenv(dotenv_path=dotenv_path)
        return cls(
            layers_dir=Path(_env("LAYERS_DIR") or DEFAULT_LAYERS_DIR),
            destination_dir=Path(_env("DESTINATION_DIR") or DEFAULT_DESTINATION_DIR),
            config_path=Path(_env("CONFIG") or DEFAULT_CONFIG_PATH),
            image_size=_env_int("IMAGE_SIZE", DEFAULT_IMAGE_SIZE),
            resize=_env_bool("RESIZE", False),
            max_retries=_env_int("MAX_RETRIES", DEFAULT_MAX_RETRIES),
            cleanup=_env_bool("CLEANUP", False),
            seed=_env_int("SEED", None),
            shared_registry=_env_bool("SHARED_REGISTRY", False),
        )

    def prepare_directories(self) -> None:
        """Create the layers and destination directories if they are absent."""
        for directory in (self.layers_dir, self.destination_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ConfigError(f"Couldn't create directory: {e}", directory) from e
