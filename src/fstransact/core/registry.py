"""Namespace registry.

Tracks which namespace identifiers currently have an active transaction and
the base directory each one is bound to. Managers register on their first
``begin()`` and unregister when the transaction ends. A process-default
registry is shared unless a manager is given its own.
"""

import threading

from fstransact.core.errors import NamespaceConflict

__all__ = ["NamespaceRegistry", "default_registry"]


class NamespaceRegistry:
    """Table of active namespace identifiers."""

    def __init__(self) -> None:
        self._active: dict[str, str] = {}
        self._lock = threading.Lock()

    def register(self, name: str, base_dir: str) -> bool:
        """Mark name active and bind it to base_dir.

        Raises:
            NamespaceConflict: If name is already active
        """
        with self._lock:
            if name in self._active:
                raise NamespaceConflict(name, self._active[name])
            self._active[name] = base_dir
        return True

    def unregister(self, name: str) -> bool:
        """Release name. Returns False if it was not active."""
        with self._lock:
            return self._active.pop(name, None) is not None

    def is_active(self, name: str) -> bool:
        return name in self._active

    def base_dir(self, name: str) -> str | None:
        return self._active.get(name)

    def active_namespaces(self) -> list[str]:
        return sorted(self._active)


_default_registry = NamespaceRegistry()


def default_registry() -> NamespaceRegistry:
    """Return the registry shared by managers created without one."""
    return _default_registry
