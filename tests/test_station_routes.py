def test_list_stations_in_board_order(client):
    response = client.get("/api/stations")
    assert response.status_code == 200
    assert [s["name"] for s in response.json["data"]] == ["Grob", "Fein", "Montage", "Prüfung"]


def test_resolve_station_by_id_and_name(client, station_ids):
    by_id = client.get(f"/api/stations/{station_ids['Fein']}")
    assert by_id.status_code == 200
    assert by_id.json["data"]["name"] == "Fein"

    by_name = client.get("/api/stations/fein")
    assert by_name.json["data"]["id"] == station_ids["Fein"]


def test_unknown_station(client):
    response = client.get("/api/stations/Lackiererei")
    assert response.status_code == 404
    assert response.json["data"]["error"] == "StationNotFound"


def test_station_tasks_in_read_order(client, make_tasks):
    ids = make_tasks("Montage", priorities=[2, 0, 1])

    response = client.get("/api/stations/montage/tasks")

    assert response.status_code == 200
    assert [t["id"] for t in response.json["data"]] == [ids[1], ids[2], ids[0]]


def test_station_tasks_unknown_station(client, soft_client, make_tasks):
    (t,) = make_tasks("Lackiererei", 1)

    assert client.get("/api/stations/Lackiererei/tasks").status_code == 404

    response = soft_client.get("/api/stations/Lackiererei/tasks")
    assert response.status_code == 200
    assert [task["id"] for task in response.json["data"]] == [t]


def test_health_and_readiness(client):
    assert client.get("/health").json["status"] == "ok"

    response = client.get("/ready")
    assert response.status_code == 200
    assert response.json["ready"] is True
    assert response.json["checks"]["database"]["status"] == "ok"


def test_metrics_endpoint(client, make_tasks):
    (t,) = make_tasks("Grob", 1)
    client.put("/api/tasks/sort", json={"taskId": t, "to": "Grob", "toIndex": 0})

    response = client.get("/metrics")

    assert response.status_code == 200
    body = response.get_data(as_text=True)
    assert "taskboard_moves_total" in body
    assert "taskboard_http_request_duration_seconds" in body
