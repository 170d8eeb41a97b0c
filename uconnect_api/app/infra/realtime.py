"""
Community-scoped realtime fan-out.

Mutations publish one event per change to a channel keyed by the
community and the event kind.  The wire name of a channel is
``<kind>_<community_id>`` (e.g. ``newComentario_12``), which is what
web clients listen for.

``WebSocketHub`` is the in-process implementation: every connected
WebSocket owns a bounded queue, ``publish`` enqueues without awaiting
and a per-connection task drains the queue to the socket.  Delivery is
best effort and at most once; a subscriber whose queue is full misses
the event.  Ordering is FIFO per channel inside one process.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Protocol, Set


logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    NEW_PUBLICATION = "newPublication"
    DELETE_PUBLICATION = "deletePublication"
    NEW_COMMENT = "newComentario"
    UPDATE_COMMENT = "updateComentario"
    DELETE_COMMENT = "deleteComentario"


@dataclass(frozen=True)
class Channel:
    community_id: int
    kind: EventKind

    @property
    def name(self) -> str:
        return f"{self.kind.value}_{self.community_id}"


class EventPublisher(Protocol):
    """Anything able to push a payload to a channel without blocking."""

    def publish(self, channel: Channel, payload: Dict[str, Any]) -> None:
        ...


class NullPublisher:
    """Publisher used when no realtime transport is wired in."""

    def publish(self, channel: Channel, payload: Dict[str, Any]) -> None:
        logger.debug("No realtime transport, dropping %s", channel.name)


@dataclass(eq=False)
class Subscription:
    """One connected client listening to a community."""

    community_id: int
    queue: asyncio.Queue
    kinds: Optional[FrozenSet[EventKind]] = None
    dropped: int = field(default=0)

    def wants(self, kind: EventKind) -> bool:
        return self.kinds is None or kind in self.kinds


class WebSocketHub:
    """In-process broadcaster backing the ``/ws/comunidad`` endpoint."""

    def __init__(self, queue_size: int = 100) -> None:
        self.queue_size = queue_size
        self._subscribers: Dict[int, Set[Subscription]] = defaultdict(set)

    def subscribe(self, community_id: int, kinds: Optional[FrozenSet[EventKind]] = None) -> Subscription:
        subscription = Subscription(
            community_id=community_id,
            queue=asyncio.Queue(maxsize=self.queue_size),
            kinds=kinds,
        )
        self._subscribers[community_id].add(subscription)
        logger.debug(
            "Subscriber joined community %s (%s connected)",
            community_id,
            len(self._subscribers[community_id]),
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscribers = self._subscribers.get(subscription.community_id)
        if not subscribers:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._subscribers[subscription.community_id]

    def subscriber_count(self, community_id: int) -> int:
        return len(self._subscribers.get(community_id, ()))

    def publish(self, channel: Channel, payload: Dict[str, Any]) -> None:
        message = {
            "event": channel.name,
            "kind": channel.kind.value,
            "communityId": channel.community_id,
            "data": payload,
        }
        # Copy: a disconnecting client may unsubscribe while we iterate.
        for subscription in list(self._subscribers.get(channel.community_id, ())):
            if not subscription.wants(channel.kind):
                continue
            try:
                subscription.queue.put_nowait(message)
            except asyncio.QueueFull:
                subscription.dropped += 1
                logger.warning(
                    "Subscriber queue full on %s, event dropped (%s dropped so far)",
                    channel.name,
                    subscription.dropped,
                )


def broadcast(
    publisher: EventPublisher,
    community_id: int,
    kind: EventKind,
    payload: Dict[str, Any],
) -> None:
    """Publish an event and never let a fan-out failure reach the caller.

    The HTTP response of the mutation that triggered the event does not
    depend on delivery, so any error is logged and dropped here.
    """
    channel = Channel(community_id=community_id, kind=kind)
    try:
        publisher.publish(channel, payload)
    except Exception:
        logger.exception("Fan-out on %s failed", channel.name)
