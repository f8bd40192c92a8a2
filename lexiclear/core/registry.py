"""Name-to-class registries behind the provider factories.

Embedding, LLM and splitter factories share one lookup scheme: a provider
name read from a settings section selects a registered class, which is then
instantiated with the settings and any caller overrides.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Dict, Generic, List, Type, TypeVar

if TYPE_CHECKING:
    from lexiclear.core.settings import Settings

P = TypeVar("P")


class ProviderRegistry(Generic[P]):
    """Base for factories selecting a provider class from configuration.

    Subclasses set :attr:`kind` (used in error messages), :attr:`base_class`
    and the ``section``/``key`` pair naming the configuration field, e.g.
    ``settings.embedding.provider``. Each subclass keeps its own registry.
    """

    kind: ClassVar[str] = "Provider"
    base_class: ClassVar[type] = object
    section: ClassVar[str] = ""
    key: ClassVar[str] = "provider"

    _PROVIDERS: ClassVar[Dict[str, type]]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._PROVIDERS = {}

    @classmethod
    def register_provider(cls, name: str, provider_class: Type[P]) -> None:
        """Register ``provider_class`` under ``name`` (case-insensitive).

        Raises:
            ValueError: If provider_class doesn't inherit from the base class.
        """
        if not (isinstance(provider_class, type) and issubclass(provider_class, cls.base_class)):
            raise ValueError(
                f"Provider class {getattr(provider_class, '__name__', provider_class)} "
                f"must inherit from {cls.base_class.__name__}"
            )
        cls._PROVIDERS[name.lower()] = provider_class

    @classmethod
    def provider_name(cls, settings: Settings) -> str:
        field = f"{cls.section}.{cls.key}"
        try:
            return getattr(getattr(settings, cls.section), cls.key).lower()
        except AttributeError as e:
            raise ValueError(
                f"Missing required configuration: settings.{field}. "
                f"Please ensure '{field}' is specified in settings.yaml"
            ) from e

    @classmethod
    def create(cls, settings: Settings, **override_kwargs: Any) -> P:
        """Instantiate the configured provider.

        Args:
            settings: Application settings.
            **override_kwargs: Constructor overrides passed to the provider.

        Raises:
            ValueError: If the configured provider is missing or unknown.
            RuntimeError: If the provider cannot be instantiated.
        """
        name = cls.provider_name(settings)
        provider_class = cls._PROVIDERS.get(name)
        if provider_class is None:
            available = ", ".join(cls.list_providers()) or "none"
            raise ValueError(
                f"Unsupported {cls.kind} provider: '{name}'. Available providers: {available}"
            )

        try:
            return provider_class(settings=settings, **override_kwargs)
        except Exception as e:
            raise RuntimeError(f"Failed to instantiate {cls.kind} provider '{name}': {e}") from e

    @classmethod
    def list_providers(cls) -> List[str]:
        return sorted(cls._PROVIDERS)
