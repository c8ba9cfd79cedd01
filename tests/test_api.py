import json
from dataclasses import replace

from fastapi.testclient import TestClient

from apps.feedback_api.adapters.memory_feedback_store import InMemoryFeedbackStore
from apps.feedback_api.app import create_app


def test_health_reports_database_status(client):
    res = client.get("/")

    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "healthy"
    assert body["environment"] == "test"
    assert body["version"] == "v1"
    assert body["database"] == {"status": "connected", "name": "memory"}
    assert "timestamp" in body


def test_submit_then_list_includes_record(client, valid_payload):
    res = client.post("/feedback", json=valid_payload)

    assert res.status_code == 201
    body = res.json()
    assert body["message"] == "Feedback saved successfully"
    data = body["data"]
    assert data["userMessage"] == valid_payload["userMessage"]
    assert data["userName"] == "John Doe"
    assert data["rating"] == 5
    assert "id" in data and "createdAt" in data

    listed = client.get("/feedback")
    assert listed.status_code == 200
    assert data in listed.json()


def test_rating_string_is_stored_as_integer(client, valid_payload):
    res = client.post("/feedback", json={**valid_payload, "rating": "5"})

    assert res.status_code == 201
    assert res.json()["data"]["rating"] == 5
    assert client.get("/feedback").json()[0]["rating"] == 5


def test_created_at_and_id_from_client_are_ignored(client, valid_payload):
    payload = {**valid_payload, "createdAt": "2000-01-01T00:00:00Z"}

    data = client.post("/feedback", json=payload).json()["data"]

    assert not data["createdAt"].startswith("2000")


def test_missing_fields_are_all_reported(client, valid_payload):
    payload = {k: v for k, v in valid_payload.items() if k not in {"feedback", "rating"}}

    res = client.post("/feedback", json=payload)

    assert res.status_code == 400
    body = res.json()
    assert body["message"] == "Missing required fields"
    assert set(body["missingFields"]) == {"feedback", "rating"}


def test_empty_object_reports_every_required_field(client):
    res = client.post("/feedback", json={})

    assert res.status_code == 400
    assert set(res.json()["missingFields"]) == {"userMessage", "botResponse", "feedback", "rating", "userId"}


def test_user_name_defaults_to_anonymous(client, valid_payload):
    payload = {k: v for k, v in valid_payload.items() if k != "userName"}

    res = client.post("/feedback", json=payload)

    assert res.status_code == 201
    assert res.json()["data"]["userName"] == "anonymous"


def test_rating_out_of_range_is_rejected(client, valid_payload):
    res = client.post("/feedback", json={**valid_payload, "rating": 9})

    assert res.status_code == 400
    body = res.json()
    assert body["missingFields"] == []
    assert body["errors"] == ["Rating must be between 1 and 5"]


def test_copilot_studio_text_body_is_accepted(client):
    payload = {
        "from": {"id": "u1", "name": "Ana"},
        "value": {"text": "¿Cómo cambio mi contraseña?", "response": "Desde ajustes.", "comment": "Bien", "stars": 4},
    }
    body = "\ufeff=" + json.dumps(payload)

    res = client.post("/feedback", content=body.encode("utf-8"), headers={"Content-Type": "text/plain"})

    assert res.status_code == 201
    data = res.json()["data"]
    assert data["userId"] == "u1"
    assert data["userName"] == "Ana"
    assert data["userMessage"] == "¿Cómo cambio mi contraseña?"
    assert data["botResponse"] == "Desde ajustes."
    assert data["rating"] == 4


def test_malformed_body_returns_parse_error_with_raw_body(client):
    res = client.post("/feedback", content=b"not json", headers={"Content-Type": "application/json"})

    assert res.status_code == 400
    body = res.json()
    assert body["message"] == "Parse error"
    assert body["receivedBody"] == "not json"
    assert body["error"]


def test_list_is_stable_without_writes(client, valid_payload):
    client.post("/feedback", json=valid_payload)
    client.post("/feedback", json={**valid_payload, "userId": "user456"})

    first = client.get("/feedback").json()
    second = client.get("/feedback").json()

    assert len(first) == 2
    assert first == second


def test_store_unavailable_returns_503_but_health_still_answers(client, store, valid_payload):
    store.available = False

    assert client.post("/feedback", json=valid_payload).status_code == 503
    res = client.get("/feedback")
    assert res.status_code == 503
    assert res.json()["message"] == "Database connection unavailable"

    health = client.get("/")
    assert health.status_code == 200
    assert health.json()["database"]["status"] == "disconnected"


def test_strict_parsing_requires_exact_keys(settings, valid_payload):
    app = create_app(settings=replace(settings, tolerant_parsing=False), store=InMemoryFeedbackStore())
    nested = {"data": valid_payload}

    with TestClient(app) as c:
        assert c.post("/feedback", json=valid_payload).status_code == 201
        res = c.post("/feedback", json=nested)

    assert res.status_code == 400
    assert len(res.json()["missingFields"]) == 5


def test_user_name_required_by_settings(settings, valid_payload):
    app = create_app(settings=replace(settings, require_user_name=True), store=InMemoryFeedbackStore())
    payload = {k: v for k, v in valid_payload.items() if k != "userName"}

    with TestClient(app) as c:
        res = c.post("/feedback", json=payload)

    assert res.status_code == 400
    assert res.json()["missingFields"] == ["userName"]


def test_body_over_limit_is_rejected(settings, valid_payload):
    app = create_app(settings=replace(settings, body_limit_bytes=32), store=InMemoryFeedbackStore())

    with TestClient(app) as c:
        res = c.post("/feedback", json=valid_payload)

    assert res.status_code == 413
    assert res.json()["limit"] == 32


def test_rate_limit_rejects_excess_requests(settings):
    limited = replace(settings, enable_rate_limiting=True, rate_limit_max_requests=2, rate_limit_window_ms=60_000)
    app = create_app(settings=limited, store=InMemoryFeedbackStore())

    with TestClient(app) as c:
        codes = [c.get("/").status_code for _ in range(3)]

    assert codes == [200, 200, 429]


def test_cors_preflight_allows_configured_origin(settings):
    app = create_app(settings=replace(settings, cors_origins=["https://bot.example.com"]), store=InMemoryFeedbackStore())

    with TestClient(app) as c:
        res = c.options(
            "/feedback",
            headers={"Origin": "https://bot.example.com", "Access-Control-Request-Method": "POST"},
        )

    assert res.status_code == 200
    assert res.headers["access-control-allow-origin"] == "https://bot.example.com"


class _BrokenStore(InMemoryFeedbackStore):
    async def list_all(self):
        raise RuntimeError("boom")


def test_unexpected_errors_hide_details_outside_development(settings):
    app = create_app(settings=settings, store=_BrokenStore())

    with TestClient(app, raise_server_exceptions=False) as c:
        res = c.get("/feedback")

    assert res.status_code == 500
    assert res.json() == {"message": "Internal server error", "error": "Internal server error"}


def test_unexpected_errors_show_details_in_development(settings):
    app = create_app(settings=replace(settings, environment="development"), store=_BrokenStore())

    with TestClient(app, raise_server_exceptions=False) as c:
        res = c.get("/feedback")

    assert res.status_code == 500
    assert res.json()["error"] == "boom"


def test_request_logging_does_not_alter_responses(settings, valid_payload):
    app = create_app(settings=replace(settings, enable_request_logging=True), store=InMemoryFeedbackStore())

    with TestClient(app) as c:
        assert c.post("/feedback", json=valid_payload).status_code == 201
        assert c.get("/feedback").status_code == 200


def test_deeply_nested_body_returns_parse_error(client):
    res = client.post("/feedback", content=b"[" * 100_000, headers={"Content-Type": "application/json"})

    assert res.status_code == 400
    assert res.json()["message"] == "Parse error"


def test_oversized_integer_returns_parse_error(client):
    body = '{"rating": ' + "1" * 5000 + "}"

    res = client.post("/feedback", content=body, headers={"Content-Type": "application/json"})

    assert res.status_code == 400
    assert res.json()["receivedBody"] == body


def test_chunked_body_over_limit_is_rejected(settings, valid_payload):
    app = create_app(settings=replace(settings, body_limit_bytes=32), store=InMemoryFeedbackStore())
    data = json.dumps(valid_payload).encode()

    def chunks():
        yield data[:16]
        yield data[16:]

    with TestClient(app) as c:
        res = c.post("/feedback", content=chunks(), headers={"Content-Type": "application/json"})
        listed = c.get("/feedback").json()

    assert res.status_code == 413
    assert res.json()["limit"] == 32
    assert listed == []


def test_unexpected_errors_keep_cors_headers(settings):
    app = create_app(settings=replace(settings, cors_origins=["https://bot.example.com"]), store=_BrokenStore())

    with TestClient(app) as c:
        res = c.get("/feedback", headers={"Origin": "https://bot.example.com"})

    assert res.status_code == 500
    assert res.headers["access-control-allow-origin"] == "https://bot.example.com"
