from core.web_event_bus import WebEventBus


def test_publish_without_clients_is_a_no_op():
    bus = WebEventBus()
    bus.publish("time", {"n": 1})
    assert bus.client_count == 0


def test_stream_receives_published_events_and_unregisters_on_close():
    bus = WebEventBus(keepalive=0.01)
    stream = bus.sse_stream()

    assert next(stream) == ("keepalive", None)
    assert bus.client_count == 1

    bus.publish("sensors", {"category": "sensors"})
    assert next(stream) == ("sensors", {"category": "sensors"})

    stream.close()
    assert bus.client_count == 0


def test_every_client_gets_its_own_copy():
    bus = WebEventBus(keepalive=0.01)
    first, second = bus.sse_stream(), bus.sse_stream()
    next(first)
    next(second)

    bus.publish("forecast", 1)

    assert next(first) == ("forecast", 1)
    assert next(second) == ("forecast", 1)
    first.close()
    second.close()


def test_stalled_client_is_dropped():
    bus = WebEventBus(keepalive=0.01, queue_size=1)
    stream = bus.sse_stream()
    next(stream)  # registers the client

    bus.publish("time", 1)
    bus.publish("time", 2)

    assert bus.client_count == 0
    stream.close()
