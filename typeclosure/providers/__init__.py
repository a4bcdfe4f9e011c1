"""Metadata provider implementations and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Any, Callable, Dict, Iterable, Sequence, Set

from .base import MetadataProvider
from .reflection import PythonTypeProvider
from .registry import RegistryProvider, TypeEnvironment, load_environment

_ENTRY_POINT_GROUP = "typeclosure.providers"

_BUILTIN_FACTORIES: dict[str, Callable[..., MetadataProvider]] = {
    "registry": RegistryProvider,
    "python": PythonTypeProvider,
}


def discover_providers(
    enabled: Sequence[str] | None = None,
) -> Dict[str, Callable[..., MetadataProvider]]:
    """Return provider factories keyed by name, honoring optional enabled names."""

    enabled_set: Set[str] | None = None
    if enabled is not None:
        enabled_set = {name.lower() for name in enabled}

    factories: Dict[str, Callable[..., MetadataProvider]] = {}

    def _add(name: str, factory: Callable[..., MetadataProvider]) -> None:
        key = name.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in factories:
            return
        factories[key] = factory
        if enabled_set is not None:
            enabled_set.discard(key)

    for name, factory in _BUILTIN_FACTORIES.items():
        _add(name, factory)

    for entry in _iter_entry_points():
        name = entry.name
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - defensive guard
            raise RuntimeError(f"Failed to load provider entry point '{name}': {exc}") from exc

        def _factory(obj: object = loaded, **options: Any) -> MetadataProvider:
            return _coerce_provider(obj, **options)

        _add(name, _factory)

    if enabled_set:
        missing = ", ".join(sorted(enabled_set))
        raise ValueError(f"Unknown providers requested: {missing}")

    return factories


def create_provider(
    name: str, enabled: Sequence[str] | None = None, **options: Any
) -> MetadataProvider:
    """Instantiate the provider registered under ``name``, passing ``options`` to its factory."""
    factories = discover_providers(enabled)
    factory = factories.get(name.lower())
    if factory is None:
        raise ValueError(f"Provider '{name}' is not enabled")
    instance = factory(**options)
    if not isinstance(instance, MetadataProvider):
        raise TypeError(f"Provider factory for '{name}' did not return a MetadataProvider instance")
    return instance


def _coerce_provider(obj: object, **options: Any) -> MetadataProvider:
    if isinstance(obj, MetadataProvider):
        return obj
    if isinstance(obj, type) and issubclass(obj, MetadataProvider):
        return obj(**options)
    if callable(obj):
        instance = obj(**options)
        if isinstance(instance, MetadataProvider):
            return instance
    raise TypeError("Provider entry point must be a MetadataProvider subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    try:
        entry_points = metadata.entry_points()
    except Exception:  # pragma: no cover - defensive guard
        return []

    if hasattr(entry_points, "select"):
        return entry_points.select(group=_ENTRY_POINT_GROUP)  # type: ignore[return-value]

    return entry_points.get(_ENTRY_POINT_GROUP, [])  # type: ignore[return-value]


__all__ = [
    "MetadataProvider",
    "PythonTypeProvider",
    "RegistryProvider",
    "TypeEnvironment",
    "create_provider",
    "discover_providers",
    "load_environment",
]
