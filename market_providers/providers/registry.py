"""
Market Providers - Provider Registry
====================================
Two layers:

``ProviderRegistry``
    Plugin-style table mapping provider keys to implementation classes.
    Concrete providers register themselves at import time; registration
    rejects classes that do not fully implement a concept.

``Registry``
    Process-wide directory of *configured* provider instances: concept ->
    ordered ``ProviderGroup`` and key -> single instance.  Built once from
    configuration, immutable afterwards, no I/O.

Usage:
    # In providers/frankfurter.py (at module level):
    ProviderRegistry.register("frankfurter", FrankfurterProvider)

    # Callers:
    from market_providers.providers.registry import for_concept, get_provider
    for provider in for_concept("exchange_rates"):
        response = provider.fetch_exchange_rate("USD", "EUR", date.today())
"""

import inspect
import logging
import threading
from typing import Dict, Iterator, List, Optional, Tuple, Type, Union

from market_providers.providers.base import BaseProvider, concepts_of
from market_providers.providers.errors import (
    ProviderConfigurationError,
    ProviderNotConfiguredError,
)
from market_providers.providers.types import Concept

logger = logging.getLogger('market_providers.registry')


class ProviderRegistry:
    """Central registry mapping provider keys -> implementation classes."""

    _providers: Dict[str, Type[BaseProvider]] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    @classmethod
    def register(cls, key: str, provider_class: Type[BaseProvider]):
        """Register *provider_class* under *key*.

        Raises:
            ProviderConfigurationError: the class serves no concept or leaves
                a concept operation unimplemented.
        """
        if not concepts_of(provider_class):
            raise ProviderConfigurationError(
                f"{provider_class!r} does not implement any provider concept"
            )
        if inspect.isabstract(provider_class):
            missing = ", ".join(sorted(provider_class.__abstractmethods__))
            raise ProviderConfigurationError(
                f"{provider_class.__name__} cannot be registered as '{key}': "
                f"missing operations {missing}"
            )
        if key in cls._providers and cls._providers[key] is not provider_class:
            logger.warning("Overwriting provider '%s'", key)
        cls._providers[key] = provider_class
        logger.debug("Registered provider: %s (%s)", key, provider_class.__name__)

    @classmethod
    def unregister(cls, key: str):
        cls._providers.pop(key, None)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @classmethod
    def get(cls, key: str) -> Optional[Type[BaseProvider]]:
        return cls._providers.get(key)

    @classmethod
    def concepts_of(cls, key: str) -> List[Concept]:
        provider_class = cls.get(key)
        return concepts_of(provider_class) if provider_class else []

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @classmethod
    def list_keys(cls) -> List[str]:
        return list(cls._providers.keys())

    @classmethod
    def list_all(cls) -> Dict[str, List[str]]:
        """Registered keys grouped by concept value."""
        result: Dict[str, List[str]] = {c.value: [] for c in Concept}
        for key, provider_class in cls._providers.items():
            for concept in concepts_of(provider_class):
                result[concept.value].append(key)
        return result


class ProviderGroup:
    """Ordered, immutable list of active providers for one concept."""

    def __init__(self, concept: Concept, providers: Tuple[BaseProvider, ...] = ()):
        self._concept = concept
        self._providers = tuple(providers)

    @property
    def concept(self) -> Concept:
        return self._concept

    @property
    def providers(self) -> Tuple[BaseProvider, ...]:
        return self._providers

    @property
    def primary(self) -> Optional[BaseProvider]:
        """Highest-priority provider, or None for an empty group."""
        return self._providers[0] if self._providers else None

    @property
    def keys(self) -> List[str]:
        return [p.key for p in self._providers]

    def __iter__(self) -> Iterator[BaseProvider]:
        return iter(self._providers)

    def __len__(self) -> int:
        return len(self._providers)

    def __getitem__(self, index):
        return self._providers[index]

    def __bool__(self) -> bool:
        return bool(self._providers)

    def __repr__(self) -> str:
        return f"<ProviderGroup {self._concept.value} {self.keys}>"


class Registry:
    """Configured provider directory.

    The concept table is resolved at construction; instances are created
    lazily (and memoized) by the ``ProviderFactory`` on first lookup.
    """

    def __init__(self, config: Optional[Dict] = None, factory=None):
        if factory is None:
            from market_providers.providers.factory import ProviderFactory
            factory = ProviderFactory(config)
        self._factory = factory
        self._concepts: Dict[Concept, Tuple[str, ...]] = self._build_concept_table(
            factory.concepts_config
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_provider(self, key: str) -> BaseProvider:
        """Return the configured instance for *key*.

        Raises:
            ProviderNotConfiguredError: unknown or disabled key
        """
        return self._factory.get(key)

    def for_concept(self, concept: Union[Concept, str]) -> ProviderGroup:
        """Active providers for *concept* in configured priority order.

        An empty group is valid configuration.

        Raises:
            ProviderNotConfiguredError: *concept* names no known concept
        """
        try:
            parsed = Concept.parse(concept)
        except ValueError:
            raise ProviderNotConfiguredError(
                str(concept), available=[c.value for c in Concept]
            ) from None
        keys = self._concepts.get(parsed, ())
        return ProviderGroup(parsed, tuple(self._factory.get(k) for k in keys))

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def keys(self) -> List[str]:
        """Every enabled provider key."""
        return self._factory.enabled_keys()

    def concept_keys(self, concept: Union[Concept, str]) -> Tuple[str, ...]:
        return self._concepts.get(Concept.parse(concept), ())

    def providers(self) -> List[BaseProvider]:
        return [self._factory.get(k) for k in self.keys()]

    def close(self):
        self._factory.close_all()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _build_concept_table(self, concepts_config: Dict) -> Dict[Concept, Tuple[str, ...]]:
        table: Dict[Concept, Tuple[str, ...]] = {c: () for c in Concept}
        for concept_name, keys in (concepts_config or {}).items():
            try:
                concept = Concept.parse(concept_name)
            except ValueError:
                logger.warning("Ignoring unknown concept '%s' in configuration", concept_name)
                continue

            active = []
            for key in keys or []:
                provider_class = ProviderRegistry.get(key)
                if provider_class is None:
                    logger.warning(
                        "Provider '%s' listed for %s is not registered; omitted",
                        key, concept.value,
                    )
                    continue
                if concept not in concepts_of(provider_class):
                    raise ProviderConfigurationError(
                        f"Provider '{key}' ({provider_class.__name__}) does not "
                        f"implement the {concept.value} concept"
                    )
                if not self._factory.is_enabled(key):
                    logger.info("Provider '%s' is disabled; omitted from %s", key, concept.value)
                    continue
                if key not in active:
                    active.append(key)

            table[concept] = tuple(active)
            logger.debug("Concept %s -> %s", concept.value, active)
        return table


# ---------------------------------------------------------------------------
# Process-wide registry
# ---------------------------------------------------------------------------

_registry: Optional[Registry] = None
_registry_lock = threading.Lock()


def get_registry() -> Registry:
    """Process-wide registry, built once from the loaded configuration."""
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = Registry()
    return _registry


def reset_registry(registry: Optional[Registry] = None):
    """Replace (or drop, with None) the process-wide registry."""
    global _registry
    with _registry_lock:
        _registry = registry


def get_provider(key: str) -> BaseProvider:
    return get_registry().get_provider(key)


def for_concept(concept: Union[Concept, str]) -> ProviderGroup:
    return get_registry().for_concept(concept)
