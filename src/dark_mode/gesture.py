"""Toggle gesture state machine.

Classifies the events delivered to a controller's handler:

==================  ==========================================================
trigger             effect
==================  ==========================================================
down (target)       idle/capturing -> capturing, (re)start long-press timer;
                    auto-committed -> release
down (no target)    capturing/auto-committed -> release; idle -> ignore
timer (None event)  capturing -> auto-committed, toggle("auto"); else ignore
up                  nothing captured -> ignore; same target while capturing ->
                    toggle; otherwise -> release
system change       matching feed applies its scheme (auto-driven) and
                    abandons any capture in flight
anything else       warning, no state change
==================  ==========================================================

Invariant: ``state.timer`` is set exactly while a target is pending and the
gesture has not committed.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol

from .registry import ContextRegistry

_logger = logging.getLogger(__name__)

__all__ = [
    "Action",
    "Phase",
    "GestureState",
    "GestureSink",
    "match_trigger",
    "classify",
    "DOWN_TRIGGERS",
    "UP_TRIGGERS",
]

_TRIGGER = re.compile(r"(^mouseup$|^mousedown$|^pointerup$|^pointerdown$|\blight\b|\bdark\b)", re.I)

DOWN_TRIGGERS = frozenset({"mousedown", "pointerdown"})
UP_TRIGGERS = frozenset({"mouseup", "pointerup"})
SCHEME_TRIGGERS = frozenset({"dark", "light"})


class Action(str, Enum):
    CAPTURE = "capture"
    RELEASE = "release"
    TOGGLE = "toggle"
    AUTO = "auto"
    SYSTEM = "system"
    IGNORE = "ignore"


class Phase(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    AUTO_COMMITTED = "auto-committed"


class GestureSink(Protocol):  # pragma: no cover - structural
    def apply_toggle(self, requested: Any = None, auto: bool = False) -> Any: ...

    def start_long_press(self) -> Any: ...

    def cancel_long_press(self, handle: Any) -> None: ...


@dataclass
class GestureState:
    registry: ContextRegistry
    target: Any = None
    # False while capturing, True once the long press fired, None when idle
    committed: Optional[bool] = None
    action: Optional[Action] = None
    timer: Any = None

    @property
    def phase(self) -> Phase:
        if self.target is None:
            return Phase.IDLE
        return Phase.AUTO_COMMITTED if self.committed else Phase.CAPTURING

    def reset(self) -> None:
        self.target = None
        self.committed = None


def match_trigger(event: Any) -> str:
    """Trigger name for ``event``: a pointer type, ``dark``/``light`` or ``""``."""
    source = getattr(event, "media", None) or getattr(event, "type", None)
    if not isinstance(source, str):
        return ""
    found = _TRIGGER.search(source)
    return found.group(1).lower() if found else ""


def _stop_timer(state: GestureState, sink: GestureSink) -> None:
    if state.timer is not None:
        sink.cancel_long_press(state.timer)
        state.timer = None


def classify(state: GestureState, event: Any, sink: GestureSink) -> Action:
    """Advance ``state`` for ``event`` (None means the long-press timer fired)."""
    if event is None:
        state.timer = None
        if state.target is not None and state.committed is False:
            state.committed = True
            state.action = Action.AUTO
            sink.apply_toggle("auto")
        else:
            state.action = Action.IGNORE
        return state.action

    trigger = match_trigger(event)
    if not trigger:
        _logger.warning("Dark mode handler received an unrecognized event: %r", event)
        return Action.IGNORE

    target = getattr(event, "target", None)
    context = getattr(target, "owner_context", None) if target is not None else None
    if context is not None:
        state.registry.ensure_registered(context)

    if trigger in SCHEME_TRIGGERS:
        _stop_timer(state, sink)
        if getattr(event, "matches", None) is True:
            sink.apply_toggle(trigger == "dark", True)
        state.reset()
        state.action = Action.SYSTEM
    elif trigger in UP_TRIGGERS:
        if state.target is None:
            state.action = Action.IGNORE
        elif state.target is target and state.committed is False:
            _stop_timer(state, sink)
            state.reset()
            state.action = Action.TOGGLE
            sink.apply_toggle()
        else:
            _stop_timer(state, sink)
            state.reset()
            state.action = Action.RELEASE
    else:  # down
        if target is None or context is None or state.committed is True:
            _stop_timer(state, sink)
            state.action = Action.IGNORE if state.target is None else Action.RELEASE
            state.reset()
        else:
            _stop_timer(state, sink)
            state.target = target
            state.committed = False
            state.action = Action.CAPTURE
            state.timer = sink.start_long_press()
    return state.action
