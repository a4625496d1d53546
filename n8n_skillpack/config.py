"""
Configuration loading for the n8n skill pack builder
Reads the JSON configuration documents once at startup and validates them
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from .models.schemas import (
    BuildConfig,
    CategoryConfig,
    CommunityPackage,
    GroupingRules,
    PriorityConfig,
)

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).parent / "config"

DEFAULT_CATEGORIES_PATH = CONFIG_DIR / "categories.json"
DEFAULT_PRIORITIES_PATH = CONFIG_DIR / "priorities.json"
DEFAULT_GROUPING_RULES_PATH = CONFIG_DIR / "grouping-rules.json"
DEFAULT_BUILD_CONFIG_PATH = CONFIG_DIR / "build-config.json"

ModelT = TypeVar("ModelT", bound=BaseModel)
PathLike = Union[str, Path]


class ConfigurationError(Exception):
    """A configuration document is missing or malformed"""


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e


def _load_model(path: PathLike, model: Type[ModelT]) -> ModelT:
    path = Path(path)
    data = _read_json(path)
    try:
        config = model.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid {model.__name__} in {path}:\n{e}") from e
    logger.info(f"Loaded {model.__name__} from {path}")
    return config


def load_category_config(path: Optional[PathLike] = None) -> CategoryConfig:
    return _load_model(path or DEFAULT_CATEGORIES_PATH, CategoryConfig)


def load_priority_config(path: Optional[PathLike] = None) -> PriorityConfig:
    return _load_model(path or DEFAULT_PRIORITIES_PATH, PriorityConfig)


def load_grouping_rules(path: Optional[PathLike] = None) -> GroupingRules:
    return _load_model(path or DEFAULT_GROUPING_RULES_PATH, GroupingRules)


def load_build_config(path: Optional[PathLike] = None) -> BuildConfig:
    return _load_model(path or DEFAULT_BUILD_CONFIG_PATH, BuildConfig)


def load_community_packages(path: PathLike) -> List[CommunityPackage]:
    """Load the optional auxiliary package list (a JSON array or {"packages": [...]})"""
    path = Path(path)
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("packages", [])
    if not isinstance(data, list):
        raise ConfigurationError(f"Expected a list of packages in {path}")

    packages = []
    for i, item in enumerate(data):
        try:
            packages.append(CommunityPackage.model_validate(item))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid package #{i} in {path}:\n{e}") from e

    logger.info(f"Loaded {len(packages)} community packages from {path}")
    return packages
