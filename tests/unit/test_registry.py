"""Unit tests for the shared provider registry behind the factories."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from lexiclear.core.registry import ProviderRegistry


class Widget:
    def __init__(self, settings, **kwargs) -> None:
        self.settings = settings
        self.kwargs = kwargs


class FancyWidget(Widget):
    pass


class BrokenWidget(Widget):
    def __init__(self, settings, **kwargs) -> None:
        raise OSError("no device")


class WidgetFactory(ProviderRegistry[Widget]):
    kind = "Widget"
    base_class = Widget
    section = "widgets"


class OtherFactory(ProviderRegistry[Widget]):
    kind = "Other"
    base_class = Widget
    section = "other"


def _settings(provider: str) -> SimpleNamespace:
    return SimpleNamespace(widgets=SimpleNamespace(provider=provider))


def test_create_passes_settings_and_overrides() -> None:
    WidgetFactory.register_provider("Fancy", FancyWidget)
    settings = _settings("FANCY")

    widget = WidgetFactory.create(settings, colour="red")

    assert isinstance(widget, FancyWidget)
    assert widget.settings is settings
    assert widget.kwargs == {"colour": "red"}


def test_registries_are_independent() -> None:
    WidgetFactory.register_provider("plain", Widget)

    assert "plain" in WidgetFactory.list_providers()
    assert "plain" not in OtherFactory.list_providers()


def test_rejects_foreign_class() -> None:
    with pytest.raises(ValueError, match="must inherit from Widget"):
        WidgetFactory.register_provider("str", str)


def test_unknown_provider() -> None:
    with pytest.raises(ValueError, match="Unsupported Widget provider: 'missing'"):
        WidgetFactory.create(_settings("missing"))


def test_missing_configuration() -> None:
    with pytest.raises(ValueError, match="Missing required configuration: settings.widgets.provider"):
        WidgetFactory.create(SimpleNamespace())


def test_instantiation_failure_is_wrapped() -> None:
    WidgetFactory.register_provider("broken", BrokenWidget)

    with pytest.raises(RuntimeError, match="Failed to instantiate Widget provider 'broken'"):
        WidgetFactory.create(_settings("broken"))
