def test_health_endpoints(client):
    live = client.get("/api/health/live")
    assert live.status_code == 200
    assert live.json()["status"] == "ok"

    ready = client.get("/api/health/ready")
    assert ready.status_code == 200
    payload = ready.json()
    assert payload["database"]["ok"] is True
    assert payload["database"]["missing_tables"] == []


def test_oversized_requests_are_rejected(client):
    response = client.post(
        "/api/timetable/entries",
        content=b"{}",
        headers={"Content-Length": str(10_000_000), "Content-Type": "application/json"},
    )

    assert response.status_code == 413
