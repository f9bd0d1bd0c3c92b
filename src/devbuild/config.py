"""
devbuild configuration

Loads the run configuration (host source, extensions, placement override,
host conventions) from a JSON or YAML file, applies environment overrides
and validates the result.
"""

import json
import os
from functools import cached_property, partial
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError

from .codegen.coordinator import PatchCoordinator
from .codegen.names import NAME_TEMPLATE, resolve_package_names
from .codegen.patcher import DIRECTIVES_FILE, ENTRY_POINT, LIST_NAME, SourcePatcher
from .core.errors import ConfigInvalid
from .core.models import Extension
from .core.ordering import DEFAULT_ORDER, DefaultOrderIndex

CONFIG_FILE = "middleware.json"


class DevConfig(BaseModel):
    """Configuration of one patch/build/run cycle"""

    # Host source tree
    source: Optional[str] = None
    import_path: Optional[str] = None

    # Extensions and placement
    extensions: List[Extension] = Field(default_factory=list)
    after: Optional[str] = None
    default_order: Optional[List[str]] = None

    # Host conventions
    target_file: str = DIRECTIVES_FILE
    list_name: str = LIST_NAME
    entry_point: str = ENTRY_POINT
    name_template: str = NAME_TEMPLATE

    # Toolchain
    python: Optional[str] = None
    use_network: bool = False

    @cached_property
    def order_index(self) -> DefaultOrderIndex:
        """Default order, built once per configuration"""
        if self.default_order is None:
            return DEFAULT_ORDER
        return DefaultOrderIndex(self.default_order)

    @property
    def packages(self) -> List[str]:
        return list(dict.fromkeys(ext.package for ext in self.extensions))

    def resolved_import_path(self) -> str:
        if self.import_path:
            return self.import_path
        if self.source:
            return Path(self.source).resolve().name
        raise ConfigInvalid("Neither import_path nor source is set")

    def coordinator(self) -> PatchCoordinator:
        """Patch callback for this configuration"""
        return PatchCoordinator(
            self.extensions,
            after=self.after,
            order_index=self.order_index,
            patcher=SourcePatcher(self.list_name, self.entry_point),
            target_file=self.target_file,
            name_resolver=partial(
                resolve_package_names,
                python=self.python,
                template=self.name_template,
            ),
        )


def get_default_config() -> DevConfig:
    """Configuration with no extension and the built-in conventions"""
    return DevConfig()


def load_config_from_file(config_path: Union[str, Path]) -> DevConfig:
    """
    Load configuration from a JSON or YAML file

    A relative ``source`` is resolved against the config file's directory.

    Args:
        config_path: Path to configuration file

    Returns:
        DevConfig instance
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigInvalid(
            f"Configuration file not found: {config_path}",
            {"path": str(config_path)},
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.suffix.lower() in [".yaml", ".yml"]:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (yaml.YAMLError, json.JSONDecodeError, OSError) as e:
        raise ConfigInvalid(
            f"Cannot read configuration {config_path}: {e}",
            {"path": str(config_path)},
        ) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigInvalid(
            f"Configuration {config_path} must be a mapping",
            {"path": str(config_path)},
        )

    source = data.get("source")
    if isinstance(source, str) and not Path(source).is_absolute():
        data["source"] = str((config_path.parent / source).resolve())

    return config_from_dict(data)


def apply_env_overrides(config: DevConfig) -> DevConfig:
    """
    Override configuration from environment variables

    Recognized: DEVBUILD_SOURCE, DEVBUILD_IMPORT_PATH, DEVBUILD_AFTER,
    DEVBUILD_PYTHON, DEVBUILD_USE_NETWORK
    """
    env_mappings = {
        "DEVBUILD_SOURCE": ("source", str),
        "DEVBUILD_IMPORT_PATH": ("import_path", str),
        "DEVBUILD_AFTER": ("after", str),
        "DEVBUILD_PYTHON": ("python", str),
        "DEVBUILD_USE_NETWORK": (
            "use_network",
            lambda x: x.lower() in ["true", "1", "yes"],
        ),
    }

    overrides = {}
    for env_var, (attr_name, converter) in env_mappings.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[attr_name] = converter(value)

    if not overrides:
        return config
    return config.model_copy(update=overrides)


def validate_config(config: DevConfig) -> List[str]:
    """
    Validate configuration and return list of issues

    Returns:
        List of validation error messages (empty if valid)
    """
    issues = []

    if config.source is not None and not Path(config.source).is_dir():
        issues.append(f"source directory not found: {config.source}")

    if config.import_path is not None and not all(
        part.isidentifier() for part in config.import_path.split(".")
    ):
        issues.append(f"Invalid import_path: {config.import_path}")

    if not config.list_name.isidentifier():
        issues.append(f"Invalid list_name: {config.list_name}")

    if not config.entry_point.isidentifier():
        issues.append(f"Invalid entry_point: {config.entry_point}")

    if Path(config.target_file).is_absolute():
        issues.append("target_file must be relative to the source tree")

    return issues


def config_from_dict(data: Dict[str, Any]) -> DevConfig:
    """
    Create DevConfig from dictionary

    The single-extension form ``{"directive", "import", "after"}`` becomes
    a one-element extension list; its ``after`` stays the run-wide anchor.
    """
    data = dict(data)
    if "directive" in data or "import" in data:
        legacy = {
            "directive": data.pop("directive", None),
            "import": data.pop("import", None),
        }
        data["extensions"] = [legacy] + list(data.get("extensions") or [])

    try:
        return DevConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigInvalid(f"Invalid configuration: {e}", {"errors": e.errors()}) from e


def load_config(config_path: Union[str, Path] = CONFIG_FILE) -> DevConfig:
    """Load, override from environment and validate"""
    config = apply_env_overrides(load_config_from_file(config_path))
    issues = validate_config(config)
    if issues:
        raise ConfigInvalid(
            f"Invalid configuration {config_path}: {'; '.join(issues)}",
            {"issues": issues},
        )
    return config
