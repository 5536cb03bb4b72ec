"""Registry of contexts carrying a controller's release-phase listener.

A gesture may start inside one owning context (e.g. an embedded frame) and end
in another. The registry grows as contexts are discovered and is only emptied
by `unregister_all` when the controller detaches.
"""

from __future__ import annotations

import logging
from typing import Any, List

from .host import Listener

_logger = logging.getLogger(__name__)

__all__ = ["ContextRegistry"]


class ContextRegistry:
    def __init__(self, event_type: str, listener: Listener) -> None:
        self.event_type = event_type
        self._listener = listener
        self._contexts: List[Any] = []

    def ensure_registered(self, context: Any) -> bool:
        """Install the capture listener on ``context`` once. Returns True if newly added."""
        if context is None or context in self:
            return False
        context.add_listener(self.event_type, self._listener, True)
        self._contexts.append(context)
        _logger.debug("Registered %s listener on %r", self.event_type, context)
        return True

    def unregister_all(self) -> int:
        """Remove the listener from every registered context. Returns how many were removed."""
        contexts, self._contexts = self._contexts, []
        for context in contexts:
            context.remove_listener(self.event_type, self._listener, True)
        return len(contexts)

    @property
    def contexts(self) -> List[Any]:
        return list(self._contexts)

    def __contains__(self, context: object) -> bool:
        return any(c is context for c in self._contexts)

    def __len__(self) -> int:
        return len(self._contexts)
