def test_health_endpoints(client):
    basic = client.get("/api/health")
    assert basic.status_code == 200
    assert basic.json() == {"status": "ok"}

    live = client.get("/api/health/live")
    assert live.status_code == 200
    assert live.json()["status"] == "ok"
    assert "timestamp" in live.json()
