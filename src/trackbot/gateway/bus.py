"""Event bus: central dispatcher for adapter, tracker and webhook events."""

from trackbot.events import Dispatcher, EventTarget

__all__ = ["Bus", "EventTarget"]


class Bus:
    """Event bus wrapping the central dispatcher. Targets register and receive events."""

    def __init__(self) -> None:
        self._dispatcher = Dispatcher()

    def register(self, target: EventTarget) -> None:
        """Register an event target."""
        self._dispatcher.register(target)

    def unregister(self, target: EventTarget) -> None:
        """Unregister an event target."""
        self._dispatcher.unregister(target)

    @property
    def _targets(self) -> list[EventTarget]:
        return self._dispatcher._targets

    def publish(self, source: str, evt: object) -> None:
        """Publish event to all targets that accept it."""
        self._dispatcher.dispatch(source, evt)
