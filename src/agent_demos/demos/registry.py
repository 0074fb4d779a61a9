"""
Registry for demos with decorator-based registration.
"""

from typing import Dict, List, Type

from agent_demos.demos.base import Demo


class DemoNotFoundError(Exception):
    """Raised when a requested demo is not registered."""

    pass


class DuplicateDemoError(Exception):
    """Raised when a demo with the same name is already registered."""

    pass


class DemoRegistry:
    """
    Central registry for demos.

    Demos register themselves via the @DemoRegistry.register decorator
    and can be retrieved by name.
    """

    _registry: Dict[str, Type[Demo]] = {}

    @classmethod
    def register(cls, demo_cls: Type[Demo]) -> Type[Demo]:
        """
        Decorator to register a demo class.

        Raises:
            DuplicateDemoError: If a demo with the same name is already registered.
        """
        name = demo_cls().name()
        if name in cls._registry:
            raise DuplicateDemoError(
                f"Demo '{name}' is already registered by {cls._registry[name].__name__}"
            )
        cls._registry[name] = demo_cls
        return demo_cls

    @classmethod
    def get(cls, name: str) -> Demo:
        """
        Return a new instance of the demo registered under ``name``.

        Raises:
            DemoNotFoundError: If no demo with that name is registered.
        """
        if name not in cls._registry:
            raise DemoNotFoundError(
                f"Demo '{name}' not found. Available: {cls.list_available()}"
            )
        return cls._registry[name]()

    @classmethod
    def list_available(cls) -> List[str]:
        return sorted(cls._registry.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Useful for testing."""
        cls._registry.clear()
