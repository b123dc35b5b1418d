"""
Authorization provider registry.

Providers register themselves with a decorator and are selected by name
through AUTH_AUTHORIZATION_PROVIDER.

Usage:
    @AuthRegistry.authorization_provider("my_provider")
    class MyProvider(DefaultAuthorizationProvider):
        ...

    # Later, get by name:
    provider = AuthRegistry.get_authorization_provider("my_provider", store=store)
"""

import logging
from typing import Any, Callable, Type

from .interfaces import ResourceAuthorizationProvider

logger = logging.getLogger(__name__)


class AuthRegistry:
    """
    Central registry for authorization providers.

    Components register themselves using decorators.
    This enables extensibility without modifying factory code.
    """

    _authorization_providers: dict[str, Type[ResourceAuthorizationProvider]] = {}

    @classmethod
    def authorization_provider(
        cls, name: str
    ) -> Callable[[Type[ResourceAuthorizationProvider]], Type[ResourceAuthorizationProvider]]:
        """
        Decorator to register an authorization provider.

        Usage:
            @AuthRegistry.authorization_provider("default")
            class DefaultAuthorizationProvider(ResourceAuthorizationProvider):
                ...
        """
        def decorator(provider_class: Type[ResourceAuthorizationProvider]) -> Type[ResourceAuthorizationProvider]:
            if name in cls._authorization_providers:
                logger.warning("Authorization provider '%s' re-registered by %s", name, provider_class.__name__)
            cls._authorization_providers[name] = provider_class
            return provider_class
        return decorator

    @classmethod
    def get_authorization_provider(cls, name: str, **kwargs: Any) -> ResourceAuthorizationProvider:
        """
        Get an authorization provider by name.

        Args:
            name: Registered name of the provider
            **kwargs: Arguments to pass to provider constructor

        Raises:
            ValueError: If provider not found
        """
        provider_class = cls._authorization_providers.get(name)
        if not provider_class:
            available = list(cls._authorization_providers.keys())
            raise ValueError(
                f"Unknown authorization provider: '{name}'. "
                f"Available: {available}"
            )
        return provider_class(**kwargs)

    @classmethod
    def list_authorization_providers(cls) -> list[str]:
        """List all registered provider names."""
        return list(cls._authorization_providers.keys())

    @classmethod
    def has_authorization_provider(cls, name: str) -> bool:
        return name in cls._authorization_providers
