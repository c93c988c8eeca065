"""Tests for the health and stats HTTP endpoints."""


def test_health_reports_counters(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["connections"] == 0
    assert body["waitingUsers"] == 0
    assert body["activeChats"] == 0
    assert body["totalChatsCreated"] == 0
    assert body["uptime"] >= 0
    assert "timestamp" in body
    assert "environment" in body


def test_stats_follow_live_connections(client):
    with client.websocket_connect("/ws") as ws1, client.websocket_connect("/ws") as ws2:
        ws1.receive_json()
        ws2.receive_json()
        ws1.send_json({"type": "find-stranger"})
        while ws1.receive_json()["type"] != "waiting-for-stranger":
            pass

        body = client.get("/stats").json()
        assert body["totalConnections"] == 2
        assert body["waitingUsers"] == 1
        assert body["activeChats"] == 0

        ws2.send_json({"type": "find-stranger"})
        while ws2.receive_json()["type"] != "stranger-found":
            pass

        public = client.get("/api/stats").json()
        assert public == {"onlineUsers": 2, "activeChats": 1, "totalChatsCreated": 1}


def test_total_chats_survive_room_closure(client):
    with client.websocket_connect("/ws") as ws1:
        with client.websocket_connect("/ws") as ws2:
            ws1.send_json({"type": "find-stranger"})
            while ws1.receive_json()["type"] != "waiting-for-stranger":
                pass
            ws2.send_json({"type": "find-stranger"})
            while ws2.receive_json()["type"] != "stranger-found":
                pass

        while ws1.receive_json()["type"] != "partner-disconnected":
            pass

        public = client.get("/api/stats").json()
        assert public["activeChats"] == 0
        assert public["totalChatsCreated"] == 1
        assert public["onlineUsers"] == 1


def test_cors_headers_present(client):
    response = client.get("/api/stats", headers={"Origin": "http://example.com"})

    assert response.headers.get("access-control-allow-origin") in ("*", "http://example.com")
