"""Task bus. Hands relay tasks from inbound handlers to delivery queues."""

from gmbridge.events import Dispatcher, EventTarget

__all__ = ["Bus", "EventTarget"]


class Bus:
    """Bus wrapping the central dispatcher. Delivery queues register and receive tasks."""

    def __init__(self) -> None:
        self._dispatcher = Dispatcher()

    def register(self, target: EventTarget) -> None:
        """Register a delivery queue as event target."""
        self._dispatcher.register(target)

    def unregister(self, target: EventTarget) -> None:
        """Unregister a target."""
        self._dispatcher.unregister(target)

    def publish(self, source: str, evt: object) -> int:
        """Publish event to all targets that accept it; returns the number that did."""
        return self._dispatcher.dispatch(source, evt)
