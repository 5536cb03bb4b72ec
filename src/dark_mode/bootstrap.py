"""Registration of the shared dark mode services.

`configure()` is the one call an application (or a test) makes before creating
controllers. It registers a fresh event bus and preference cache, the runtime
settings and, for live GUI environments, the host. Calling it again replaces
the previous registrations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from .config import DarkModeSettings
from .host import Host
from .preferences import PreferenceCache
from .services.event_bus import EventBus
from .services.log_capture import LogCapture
from .services.service_locator import ServiceLocator, services

_logger = logging.getLogger(__name__)

__all__ = ["DarkModeContext", "configure", "reset"]


@dataclass
class DarkModeContext:
    """References created by `configure`.

    Attributes
    ----------
    services: The service locator the references were registered on.
    event_bus: Bus receiving controller notifications.
    preference_cache: Shared system preference feeds.
    settings: Runtime settings in effect.
    host: Live host, None for headless / mocked environments.
    log_capture: Ring buffer of ``dark_mode`` records when requested.
    """

    services: ServiceLocator
    event_bus: EventBus
    preference_cache: PreferenceCache
    settings: DarkModeSettings
    host: Optional[Host] = None
    log_capture: Optional[LogCapture] = None
    metadata: dict[str, Any] = field(default_factory=dict)


def configure(
    *,
    host: Optional[Host] = None,
    settings: Optional[DarkModeSettings] = None,
    capture_logs: bool = False,
    log_capacity: int = 200,
) -> DarkModeContext:
    previous = services.try_get("log_capture")
    if isinstance(previous, LogCapture):
        previous.detach()

    if settings is not None:
        DarkModeSettings.instance = settings
    bus = EventBus()
    cache = PreferenceCache()
    services.register("event_bus", bus, allow_override=True)
    services.register("preference_cache", cache, allow_override=True)
    services.register("settings", DarkModeSettings.instance, allow_override=True)
    if host is not None:
        services.register("host", host, allow_override=True)
    else:
        services.unregister("host")

    capture = None
    if capture_logs:
        capture = LogCapture(capacity=log_capacity)
        capture.attach()
        services.register("log_capture", capture, allow_override=True)
    else:
        services.unregister("log_capture")

    _logger.debug("Dark mode services configured (live host: %s)", host is not None)
    return DarkModeContext(
        services=services,
        event_bus=bus,
        preference_cache=cache,
        settings=DarkModeSettings.instance,
        host=host,
        log_capture=capture,
    )


def reset() -> None:
    """Drop every shared registration (test isolation)."""
    capture = services.try_get("log_capture")
    if isinstance(capture, LogCapture):
        capture.detach()
    services.clear()
    DarkModeSettings.instance = DarkModeSettings.from_env()
