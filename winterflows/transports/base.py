"""Queue between the webhook layer and the event worker."""

from __future__ import annotations

import abc
from typing import AsyncIterator, Generic, Optional, Tuple, TypeVar

from ..constants import DEAD_LETTER_SUFFIX
from ..contracts import InboundEvent

RawMessageT = TypeVar("RawMessageT")


def dead_letter_topic(topic: str) -> str:
    """Topic holding events of ``topic`` that could not be dispatched."""
    return f"{topic}{DEAD_LETTER_SUFFIX}"


class BaseTransport(Generic[RawMessageT], metaclass=abc.ABCMeta):
    """Carries verified :class:`InboundEvent` envelopes to the event worker.

    Events are consumed once. An event the worker fails to dispatch is
    ``nack``-ed: either put back on its topic or parked on the topic's dead
    letter queue for inspection.
    """

    async def connect(self) -> None:
        """Open connection to broker (no-op by default)."""
        pass

    async def disconnect(self) -> None:
        """Close connection to broker (no-op by default)."""
        pass

    @abc.abstractmethod
    async def publish(self, topic: str, event: InboundEvent) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def subscribe(
        self, topic: str, lifespan: Optional[float] = None
    ) -> AsyncIterator[Tuple[RawMessageT, InboundEvent]]:
        """Yield raw transport message and event pairs.

        Args:
            topic: The topic to subscribe to
            lifespan: Maximum time in seconds to keep connection open. If None, runs indefinitely.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def ack(self, raw_message: RawMessageT) -> None:
        """Acknowledge successful dispatch."""
        raise NotImplementedError

    @abc.abstractmethod
    async def nack(self, raw_message: RawMessageT, requeue: bool = False) -> None:
        """Return the event to its topic, or dead-letter it when not requeued."""
        raise NotImplementedError
