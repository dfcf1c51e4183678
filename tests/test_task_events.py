from taskboard.events import TASK_CREATED, TASK_DELETED, TASK_UPDATED, TaskEventPublisher


def test_stream_starts_with_ping_and_forwards_events():
    publisher = TaskEventPublisher(keepalive=5)
    stream = publisher.stream()

    assert next(stream) == "event: ping\ndata: ok\n\n"
    assert publisher.subscriber_count == 1

    publisher.publish(TASK_CREATED)
    assert next(stream) == "event: task-created\ndata: 1\n\n"

    stream.close()
    assert publisher.subscriber_count == 0


def test_stream_sends_keepalive_when_idle():
    publisher = TaskEventPublisher(keepalive=0.01)
    stream = publisher.stream()
    next(stream)

    assert next(stream) == ": keep-alive\n\n"
    stream.close()


def test_every_subscriber_receives_events():
    publisher = TaskEventPublisher()
    first, second = publisher.subscribe(), publisher.subscribe()

    publisher.publish(TASK_DELETED)
    publisher.unsubscribe(second)
    publisher.publish(TASK_UPDATED)

    assert [first.get_nowait(), first.get_nowait()] == [TASK_DELETED, TASK_UPDATED]
    assert second.get_nowait() == TASK_DELETED
    assert second.empty()


def test_task_routes_publish_events(app, client, make_tasks):
    a, b = make_tasks("Grob", 2)
    events = app.extensions["task_events"].subscribe()

    client.post("/api/tasks", json={"title": "Welle", "station": "Grob"})
    client.patch(f"/api/tasks/{a}/status", json={"status": "IN_ARBEIT"})
    client.put("/api/tasks/sort", json={"taskId": b, "to": "Fein", "toIndex": 0})
    client.delete(f"/api/tasks/{a}")

    received = []
    while not events.empty():
        received.append(events.get_nowait())
    assert received == [TASK_CREATED, TASK_UPDATED, TASK_UPDATED, TASK_DELETED]


def test_failed_request_publishes_nothing(app, client):
    events = app.extensions["task_events"].subscribe()

    assert client.delete("/api/tasks/404404").status_code == 404
    assert events.empty()


def test_stream_endpoint(client):
    response = client.get("/api/tasks/stream")

    assert response.status_code == 200
    assert response.mimetype == "text/event-stream"
    assert response.headers["Cache-Control"] == "no-cache"
    assert next(response.iter_encoded()) == b"event: ping\ndata: ok\n\n"
    response.close()
