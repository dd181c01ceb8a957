import pytest
from fastapi.testclient import TestClient

from main import create_app


@pytest.fixture
def app(repository, pnr_store):
    return create_app(repository=repository, pnr_store=pnr_store, redis_client=None)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def test_root_and_health(client):
    assert client.get("/health").json() == {"status": "healthy", "service": "gds-terminal-trainer"}
    info = client.get("/").json()
    assert info["status"] == "running"


def test_form_command_returns_plain_text(client):
    r = client.post("/terminal/desk-1/command", data={"command": "HE"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/plain")
    assert r.text.startswith("AVAILABLE COMMANDS")


def test_json_command_and_session_state(client):
    r = client.post("/terminal/desk-1/command", json={"command": "TNBUEMAD"})
    assert r.text.startswith("** AMADEUS TIMETABLE - TN **")

    r = client.post("/terminal/desk-1/command", json={"command": "MD"})
    assert "(NEXT PAGE)" in r.text.splitlines()[0]

    # Another trainee has no search
    r = client.post("/terminal/desk-2/command", json={"command": "MD"})
    assert r.text == "NO ACTIVE SEARCH - ENTER AN, SN OR TN FIRST"


def test_terminal_errors_are_200_text(client):
    r = client.post("/terminal/desk-1/command", json={"command": "FOO"})
    assert r.status_code == 200
    assert r.text == "UNKNOWN COMMAND: FOO. ENTER HE FOR HELP"

    r = client.post("/terminal/desk-1/command", data={})
    assert r.text == "EMPTY COMMAND"


def test_bad_requests(client):
    r = client.post("/terminal/bad id!/command", json={"command": "HE"})
    assert r.status_code == 400

    r = client.post(
        "/terminal/desk-1/command", content=b"{not json", headers={"content-type": "application/json"}
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid JSON body"

    r = client.post("/terminal/desk-1/command", json=["HE"])
    assert r.status_code == 400


def test_reset_drops_session(client):
    client.post("/terminal/desk-1/command", json={"command": "TNBUEMAD"})
    r = client.delete("/terminal/desk-1")
    assert r.json() == {"status": "reset", "session_id": "desk-1", "existed": True}
    assert client.delete("/terminal/desk-1").json()["existed"] is False

    r = client.post("/terminal/desk-1/command", json={"command": "MD"})
    assert r.text == "NO ACTIVE SEARCH - ENTER AN, SN OR TN FIRST"


def test_metrics_capture_requests_and_commands(client):
    assert client.get("/health").status_code == 200
    client.post("/terminal/desk-9/command", json={"command": "HE"})

    data = client.get("/metrics").json()
    counters = data["counters"]
    assert any(
        c["name"] == "requests_total" and c["labels"] == {"route": "/health", "status": "200"}
        for c in counters
    )
    assert any(
        c["name"] == "requests_total" and c["labels"]["route"] == "/terminal/{session_id}/command"
        for c in counters
    )
    assert any(
        c["name"] == "commands_total" and c["labels"] == {"family": "help", "outcome": "ok"}
        for c in counters
    )
    assert any(
        h["name"] == "request_latency_ms" and h["labels"].get("route") == "/health" and isinstance(h["counts"], list)
        for h in data["histograms"]
    )
    assert data["circuit_breaker"]["name"] == "pnr_store"
    assert data["active_sessions"] >= 1


def test_detailed_health(client):
    data = client.get("/health/detailed").json()
    assert data["status"] == "healthy"
    assert data["checks"]["redis"]["status"] == "healthy"
    assert [b["name"] for b in data["circuit_breakers"]] == ["pnr_store"]


def test_rate_limit(app):
    app.max_requests = 2
    with TestClient(app) as c:
        for _ in range(2):
            assert c.post("/terminal/desk-1/command", json={"command": "HE"}).status_code == 200
        r = c.post("/terminal/desk-1/command", json={"command": "HE"})
        assert r.status_code == 429
        assert r.text == "RATE LIMIT EXCEEDED - WAIT BEFORE SENDING MORE COMMANDS"
        assert r.headers["retry-after"] == "60"
        # Other endpoints are not limited
        assert c.get("/health").status_code == 200
