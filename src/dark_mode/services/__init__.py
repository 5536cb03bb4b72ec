"""Shared service exports.

 - `services`: process-wide service locator
 - `EventBus` / `DarkModeEvent`: controller notifications
 - `LogCapture`: ring buffer of recent ``dark_mode`` log records
"""

from .service_locator import services, ServiceLocator  # noqa: F401
from .event_bus import EventBus, DarkModeEvent  # noqa: F401
from .log_capture import LogCapture, get_log_capture  # noqa: F401

__all__ = [
    "services",
    "ServiceLocator",
    "EventBus",
    "DarkModeEvent",
    "LogCapture",
    "get_log_capture",
]
