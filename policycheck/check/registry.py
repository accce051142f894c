"""Registry of check modules.

Check modules register a factory under their module name at import time;
the host pipeline creates check instances from configuration through
create_check().
"""

from typing import Any, Callable, Dict, List, Optional

from ..common.errors import ConfigError
from ..common.logger import get_logger

logger = get_logger("check_registry")

CheckFactory = Callable[[Any], Any]


class CheckRegistry:
    """Registry mapping check module names to factories."""

    _instance: Optional["CheckRegistry"] = None
    _factories: Dict[str, CheckFactory]

    def __new__(cls) -> "CheckRegistry":
        """Singleton pattern for global registry."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._factories = {}
        return cls._instance

    def register(self, module_name: str, factory: CheckFactory) -> None:
        """Register a check factory.

        Args:
            module_name: Name used in the 'module' key of check sections
            factory: Callable building a check from its parsed configuration
        """
        if module_name in self._factories:
            logger.warning(f"Overwriting existing check module: {module_name}")
        self._factories[module_name] = factory
        logger.debug(f"Registered check module: {module_name}")

    def unregister(self, module_name: str) -> None:
        if module_name in self._factories:
            del self._factories[module_name]
            logger.debug(f"Unregistered check module: {module_name}")

    def get_factory(self, module_name: str) -> Optional[CheckFactory]:
        return self._factories.get(module_name)

    def list_modules(self) -> List[str]:
        return list(self._factories.keys())

    def clear(self) -> None:
        """Clear all registered modules (mainly for testing)."""
        self._factories.clear()


_registry = CheckRegistry()


def get_registry() -> CheckRegistry:
    """Get the global check registry."""
    return _registry


def register_check(module_name: str, factory: CheckFactory) -> None:
    """Register a check factory in the global registry."""
    _registry.register(module_name, factory)


def create_check(config: Any) -> Any:
    """Create a check instance from its configuration.

    Args:
        config: Parsed check configuration with 'module' and 'name' attributes

    Returns:
        Check instance built by the registered factory

    Raises:
        ConfigError: If no factory is registered for the module
    """
    factory = _registry.get_factory(config.module)
    if factory is None:
        raise ConfigError(f"unknown check module: {config.module}", config.name)
    return factory(config)
