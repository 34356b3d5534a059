# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Events emitted by the haptic controller and the dispatcher delivering them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, TypeVar, Union

from haptics.device import FingerDevice
from haptics.errors import HapticErrorKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Connected:
    device: FingerDevice


@dataclass(frozen=True)
class Disconnected:
    pass


@dataclass(frozen=True)
class BatteryUpdate:
    level: int


@dataclass(frozen=True)
class HapticErrorEvent:
    kind: HapticErrorKind
    message: str


HapticEvent = Union[Connected, Disconnected, BatteryUpdate, HapticErrorEvent]
EVENT_TYPES: tuple[type, ...] = (Connected, Disconnected, BatteryUpdate, HapticErrorEvent)

E = TypeVar("E", Connected, Disconnected, BatteryUpdate, HapticErrorEvent)
Listener = Callable[[HapticEvent], None]
Unsubscribe = Callable[[], None]


class EventDispatcher:
    """Synchronous observer registry keyed by event class.

    Listeners run in registration order, in the order events are emitted. A
    listener that raises is logged and does not prevent delivery to others.
    """

    def __init__(self) -> None:
        self._listeners: dict[type, list[Callable[[HapticEvent], None]]] = {
            event_type: [] for event_type in EVENT_TYPES
        }

    def subscribe(self, event_type: type[E], listener: Callable[[E], None]) -> Unsubscribe:
        """Register ``listener`` for one event class; returns an unsubscribe handle."""
        if event_type not in self._listeners:
            raise TypeError(f"Unknown haptic event type {event_type!r}")
        listeners = self._listeners[event_type]
        listeners.append(listener)  # type: ignore[arg-type]

        def unsubscribe() -> None:
            if listener in listeners:
                listeners.remove(listener)  # type: ignore[arg-type]

        return unsubscribe

    def subscribe_all(self, listener: Listener) -> Unsubscribe:
        handles = [self.subscribe(event_type, listener) for event_type in EVENT_TYPES]

        def unsubscribe() -> None:
            for handle in handles:
                handle()

        return unsubscribe

    def emit(self, event: HapticEvent) -> None:
        for listener in list(self._listeners[type(event)]):
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "Haptic event listener failed",
                    extra={"event": type(event).__name__},
                )
