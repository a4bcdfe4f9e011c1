"""Tests for metadata provider discovery utilities."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from typeclosure.providers import (
    MetadataProvider,
    PythonTypeProvider,
    RegistryProvider,
    TypeEnvironment,
    create_provider,
    discover_providers,
)


class DummyProvider(RegistryProvider):
    """Test provider used for plugin discovery validation."""

    name = "dummy"


def test_discover_providers_returns_builtin_providers() -> None:
    factories = discover_providers()
    assert {"registry", "python"} <= set(factories)


def test_discover_providers_respects_enabled_filter() -> None:
    factories = discover_providers(["Registry"])
    assert list(factories) == ["registry"]


def test_create_provider_passes_options() -> None:
    environment = TypeEnvironment()
    provider = create_provider("registry", environment=environment)
    assert isinstance(provider, RegistryProvider)
    assert provider.environment is environment

    python = create_provider("python", ignored_modules=["vendor"])
    assert isinstance(python, PythonTypeProvider)


def test_create_provider_rejects_disabled_provider() -> None:
    with pytest.raises(ValueError):
        create_provider("python", ["registry"])


def test_discover_providers_loads_entry_points(monkeypatch) -> None:
    dummy_entry = SimpleNamespace(
        name="dummy",
        load=lambda: DummyProvider,
    )

    class DummyEntryPoints(list):
        def select(self, **kwargs):
            if kwargs.get("group") == "typeclosure.providers":
                return self
            return []

    monkeypatch.setattr(
        "typeclosure.providers.metadata.entry_points",
        lambda: DummyEntryPoints([dummy_entry]),
        raising=False,
    )

    provider = create_provider("dummy", ["dummy"])
    assert isinstance(provider, DummyProvider)
    assert isinstance(provider, MetadataProvider)


def test_entry_point_must_yield_a_provider(monkeypatch) -> None:
    bogus_entry = SimpleNamespace(name="bogus", load=lambda: object)

    class DummyEntryPoints(list):
        def select(self, **kwargs):
            return self

    monkeypatch.setattr(
        "typeclosure.providers.metadata.entry_points",
        lambda: DummyEntryPoints([bogus_entry]),
        raising=False,
    )

    with pytest.raises(TypeError):
        create_provider("bogus")


def test_discover_providers_raises_for_unknown_name() -> None:
    with pytest.raises(ValueError):
        discover_providers(["does-not-exist"])
