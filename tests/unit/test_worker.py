"""Event worker and scheduler loop tests."""

import pytest

from winterflows.contracts import InboundEvent
from winterflows.scheduler import Scheduler
from winterflows.transports.inmemory import InMemoryTransport
from winterflows.worker import EventWorker


class RecordingDispatcher:
    def __init__(self, fail_on=None):
        self.events = []
        self.ticks = 0
        self.fail_on = fail_on

    async def dispatch(self, event):
        if event.type == self.fail_on:
            raise RuntimeError("dispatch failed")
        self.events.append(event)
        return 1

    async def tick(self, now=None):
        self.ticks += 1
        if self.fail_on == "tick":
            raise RuntimeError("tick failed")
        return 0


@pytest.mark.asyncio
async def test_worker_dispatches_every_event():
    transport = InMemoryTransport(poll_interval=0.01)
    dispatcher = RecordingDispatcher(fail_on="broken")
    for event_type in ("message", "broken", "reaction_added"):
        await transport.publish("events", InboundEvent(type=event_type))

    await EventWorker(transport, dispatcher).start(lifespan=0.1)

    assert [e.type for e in dispatcher.events] == ["message", "reaction_added"]
    assert [e.type for e in transport.dead_letters("events")] == ["broken"]


@pytest.mark.asyncio
async def test_scheduler_keeps_ticking_after_failures():
    dispatcher = RecordingDispatcher(fail_on="tick")

    await Scheduler(dispatcher, interval=0.01).run(lifespan=0.05)

    assert dispatcher.ticks >= 2
