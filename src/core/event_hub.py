import asyncio
import inspect
import logging
from typing import Callable, Dict, List, Any, Optional

logger = logging.getLogger(__name__)


class EventHub:
    """
    Named-topic publish/subscribe bus.
    Delivery is best-effort to the handlers subscribed at publish time.
    """
    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def init(self, loop: Optional[asyncio.AbstractEventLoop]):
        self._loop = loop

    def subscribe(self, topic: str, handler: Callable):
        if topic not in self._subscribers:
            self._subscribers[topic] = []
        if handler not in self._subscribers[topic]:
            self._subscribers[topic].append(handler)
        logger.debug(f"Subscribed to {topic}")

    def unsubscribe(self, topic: str, handler: Callable):
        if topic in self._subscribers:
            if handler in self._subscribers[topic]:
                self._subscribers[topic].remove(handler)
                logger.debug(f"Unsubscribed from {topic}")
            if not self._subscribers[topic]:
                del self._subscribers[topic]

    def unsubscribe_all(self):
        self._subscribers.clear()

    def topics(self) -> List[str]:
        return list(self._subscribers.keys())

    def publish(self, topic: str, message: Any):
        """Deliver `message` to every handler of `topic`. Handler errors are logged, never raised."""
        if topic not in self._subscribers:
            return
        # Copy so handlers may unsubscribe while we iterate
        handlers = self._subscribers[topic][:]
        for handler in handlers:
            try:
                self._dispatch(handler, topic, message)
            except Exception as e:
                logger.error(f"Error handling message on topic {topic}: {e}")

    def _dispatch(self, handler: Callable, topic: str, message: Any):
        if self._loop is None or self._loop.is_closed():
            if inspect.iscoroutinefunction(handler):
                logger.warning(f"EventHub loop not initialized. Cannot dispatch async handler for {topic}")
            else:
                handler(topic, message)
            return

        try:
            current_loop = asyncio.get_running_loop()
        except RuntimeError:
            current_loop = None

        if current_loop is self._loop:
            if inspect.iscoroutinefunction(handler):
                self._loop.create_task(handler(topic, message))
            else:
                handler(topic, message)
        else:
            # Publisher runs in another thread
            if inspect.iscoroutinefunction(handler):
                asyncio.run_coroutine_threadsafe(handler(topic, message), self._loop)
            else:
                self._loop.call_soon_threadsafe(handler, topic, message)


# Global instance
event_hub = EventHub()


def init_event_hub(loop):
    """Initialize the global event hub with the given loop."""
    event_hub.init(loop)
