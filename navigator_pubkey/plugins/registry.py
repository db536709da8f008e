"""
Plugin registry — resolves a configured plugin id to an implementation.
"""
import logging
from typing import Any, Callable, Optional, TypeVar

from ..exceptions import PluginNotFound

logger = logging.getLogger("navigator.pubkey")

T = TypeVar("T")


class PluginRegistry:
    """Registry of plugin factories for one plugin kind.

    A factory is any callable accepting the plugin configuration mapping,
    usually a class. Implementations satisfy the kind's Protocol; they do
    not have to share a base class.
    """

    def __init__(self, kind: str):
        self.kind = kind
        self._factories: dict[str, Callable[..., Any]] = {}
        self._descriptions: dict[str, str] = {}

    def register(
        self,
        plugin_id: str,
        description: str = "",
    ) -> Callable[[Callable[..., T]], Callable[..., T]]:
        """Decorator registering a factory under ``plugin_id``."""
        def decorator(factory: Callable[..., T]) -> Callable[..., T]:
            if plugin_id in self._factories:
                logger.warning(
                    "Replacing %s plugin registered as %s", self.kind, plugin_id
                )
            self._factories[plugin_id] = factory
            self._descriptions[plugin_id] = description or (factory.__doc__ or "").strip()
            return factory
        return decorator

    def unregister(self, plugin_id: str) -> None:
        self._factories.pop(plugin_id, None)
        self._descriptions.pop(plugin_id, None)

    def create_instance(
        self,
        plugin_id: str,
        configuration: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Build the plugin registered as ``plugin_id``.

        Raises:
            PluginNotFound: If nothing is registered under ``plugin_id``.
        """
        try:
            factory = self._factories[plugin_id]
        except KeyError:
            raise PluginNotFound(
                f"No {self.kind} plugin registered as '{plugin_id}' "
                f"(available: {sorted(self._factories)})"
            ) from None
        return factory(dict(configuration or {}))

    def definitions(self) -> dict[str, str]:
        """Mapping of plugin id to description."""
        return dict(self._descriptions)

    def __contains__(self, plugin_id: object) -> bool:
        return plugin_id in self._factories

    def __repr__(self) -> str:
        return f"<PluginRegistry {self.kind}: {sorted(self._factories)}>"
