"""
Synchronous publish/subscribe used by the scheduler to report progress.
"""

from typing import Callable, Generic, List, TypeVar

Handler = TypeVar('Handler', bound=Callable[..., None])


class Subscription(Generic[Handler]):
    """Handle returned by EventManager.subscribe()."""

    def __init__(self, manager: 'EventManager[Handler]', handler: Handler):
        self.manager = manager
        self.handler = handler

    def cancel(self):
        self.manager.unsubscribe(self)


class EventManager(Generic[Handler]):
    """
    Ordered list of handlers for one kind of event.

    Handlers run on the caller's thread, one after another, in the order
    they subscribed. An exception raised by a handler is not caught here:
    it stops delivery and propagates to whoever published the event, so
    callers that want isolation must wrap their own handlers.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._subscriptions: List[Subscription[Handler]] = []

    def __len__(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, handler: Handler) -> Subscription[Handler]:
        subscription = Subscription(self, handler)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription[Handler]):
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def publish(self, *args):
        # copy so handlers may unsubscribe while being notified
        for subscription in list(self._subscriptions):
            subscription.handler(*args)
