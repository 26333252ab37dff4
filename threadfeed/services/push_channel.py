"""In-process push channel delivering table change events to subscribers."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from .contracts import ChangeEvent, EventHandler

logger = logging.getLogger(__name__)


class ChannelSubscription:
    """Registration handle returned by :meth:`PushChannel.subscribe`."""

    def __init__(self, channel: "PushChannel", table: str, event_type: str, handler: EventHandler) -> None:
        self._channel = channel
        self.table = table
        self.event_type = event_type
        self._handler = handler
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def matches(self, event: ChangeEvent) -> bool:
        return self._active and event.table == self.table and event.event_type == self.event_type

    def deliver(self, event: ChangeEvent) -> None:
        # Events queued before unsubscribe() ran are dropped here.
        if not self._active:
            return
        self._handler(event)

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._channel._remove(self)


class PushChannel:
    """Routes change events to subscriptions registered per table.

    Delivery is asynchronous: ``publish`` schedules each matching handler on the
    running event loop instead of calling it inline.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[ChannelSubscription]] = {}

    def subscribe(self, table: str, handler: EventHandler, event_type: str = "INSERT") -> ChannelSubscription:
        subscription = ChannelSubscription(self, table, event_type.upper(), handler)
        self._subscriptions.setdefault(table, []).append(subscription)
        logger.debug("Subscribed to %s %s events", table, subscription.event_type)
        return subscription

    def _remove(self, subscription: ChannelSubscription) -> None:
        subs = self._subscriptions.get(subscription.table)
        if not subs:
            return
        try:
            subs.remove(subscription)
        except ValueError:
            return
        if not subs:
            self._subscriptions.pop(subscription.table, None)

    def subscriber_count(self, table: str) -> int:
        return len(self._subscriptions.get(table, ()))

    def publish(self, table: str, payload: dict[str, Any], event_type: str = "INSERT") -> int:
        """Schedule delivery of an event and return the number of recipients."""

        event = ChangeEvent(event_type=event_type.upper(), table=table, payload=dict(payload))
        targets = [sub for sub in self._subscriptions.get(table, ()) if sub.matches(event)]
        if not targets:
            return 0
        loop = asyncio.get_running_loop()
        for subscription in targets:
            loop.call_soon(subscription.deliver, event)
        return len(targets)


push_channel = PushChannel()


__all__ = ["ChannelSubscription", "PushChannel", "push_channel"]
