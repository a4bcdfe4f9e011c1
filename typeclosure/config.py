"""Configuration loading for typeclosure (.typeclosure.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError
from .logging import resolve_level
from .walker import WalkerOptions

CONFIG_FILENAME = ".typeclosure.yml"


@dataclass
class WalkerConfig:
    """Closure walk settings."""

    traverse_supertype: bool = True
    recursion_limit: Optional[int] = None

    def options(self) -> WalkerOptions:
        return WalkerOptions(traverse_supertype=self.traverse_supertype)


@dataclass
class PythonProviderConfig:
    """Settings for the reflection provider over Python classes."""

    ignored_modules: List[str] = field(default_factory=list)


@dataclass
class ProvidersConfig:
    """Provider enablement; an empty list enables every discovered provider."""

    enabled: List[str] = field(default_factory=list)


@dataclass
class TypeClosureConfig:
    """Represents the settings defined in .typeclosure.yml."""

    root: Path
    walker: WalkerConfig = field(default_factory=WalkerConfig)
    python: PythonProviderConfig = field(default_factory=PythonProviderConfig)
    providers: ProvidersConfig = field(default_factory=ProvidersConfig)
    log_file: Optional[Path] = None
    log_level: Optional[str] = None


def load_config(config_path: Path) -> TypeClosureConfig:
    """Load configuration from disk, returning defaults when the file is absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return TypeClosureConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    walker = WalkerConfig()
    walker_data = _as_dict(data.get("walker"))
    if walker_data:
        traverse = _as_bool(walker_data.get("traverse_supertype"))
        if traverse is not None:
            walker.traverse_supertype = traverse
        limit = _as_int(walker_data.get("recursion_limit"))
        if limit is not None and limit <= 0:
            raise ConfigError("walker.recursion_limit must be a positive integer")
        walker.recursion_limit = limit

    python = PythonProviderConfig()
    python_data = _as_dict(data.get("python"))
    if python_data:
        python.ignored_modules = _as_str_list(python_data.get("ignored_modules"))

    providers = ProvidersConfig()
    providers_data = _as_dict(data.get("providers"))
    if providers_data:
        providers.enabled = _as_str_list(providers_data.get("enabled"))

    log_file_str = _as_str(data.get("log_file"))
    log_file = root / log_file_str if log_file_str else None
    log_level = _as_str(data.get("log_level"))
    if log_level is not None:
        resolve_level(log_level)

    return TypeClosureConfig(
        root=root,
        walker=walker,
        python=python,
        providers=providers,
        log_file=log_file,
        log_level=log_level,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ProvidersConfig",
    "PythonProviderConfig",
    "TypeClosureConfig",
    "WalkerConfig",
    "load_config",
]
