import threading
from dataclasses import dataclass

from iCrop.events import CropFailedEvent, CropSucceededEvent, EventBus
from iCrop.events.bus import Event


@dataclass(kw_only=True)
class SimpleEvent(Event):
    payload: str = ""


def test_sync_subscribe_publish():
    bus = EventBus()
    received = []

    bus.subscribe(SimpleEvent, lambda event: received.append(event.payload))
    bus.publish(SimpleEvent(payload="hello"))

    assert received == ["hello"]


def test_background_handlers_run_on_pool():
    bus = EventBus()
    done = threading.Event()
    threads = []

    def handler(event):
        threads.append(threading.current_thread())
        done.set()

    bus.subscribe(SimpleEvent, handler, background=True)
    bus.publish(SimpleEvent(payload="world"))

    assert done.wait(2.0)
    assert threads[0] is not threading.current_thread()
    bus.shutdown()


def test_unsubscribe_stops_delivery():
    bus = EventBus()
    received = []
    sub = bus.subscribe(SimpleEvent, received.append)
    assert bus.subscriber_count(SimpleEvent) == 1

    bus.unsubscribe(sub)
    bus.publish(SimpleEvent())

    assert received == []
    assert bus.subscriber_count(SimpleEvent) == 0


def test_failing_handler_does_not_block_others(caplog):
    bus = EventBus()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(SimpleEvent, broken)
    bus.subscribe(SimpleEvent, received.append)
    bus.publish(SimpleEvent(payload="x"))

    assert len(received) == 1
    assert "Handler failed for SimpleEvent" in caplog.text


def test_delivery_is_by_exact_type():
    bus = EventBus()
    successes, failures = [], []
    bus.subscribe(CropSucceededEvent, successes.append)
    bus.subscribe(CropFailedEvent, failures.append)

    bus.publish(CropSucceededEvent(output_path="/tmp/out.jpg", width=10, height=10))

    assert len(successes) == 1 and failures == []
    assert successes[0].event_id
