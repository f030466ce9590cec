import json


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["catalog_items"] == 61
    assert "version" in data
    assert "uptime_seconds" in data


def test_openapi_json(client):
    response = client.get("/api/openapi.json")
    assert response.status_code == 200
    assert "/api/srs/cards/{item_id}/review" in response.json()["paths"]


def test_catalog_listing(client):
    response = client.get("/api/catalog")
    assert response.status_code == 200
    assert [e["item_id"] for e in response.json()] == ["v-a", "c-ka", "v-aa", "m-aa", "c-kha", "cj-ksha"]

    response = client.get("/api/catalog", params={"category": "vowel"})
    assert [e["item_id"] for e in response.json()] == ["v-a", "v-aa"]

    assert client.get("/api/catalog", params={"category": "emoji"}).status_code == 422


def test_due_queue_and_review(client):
    due = client.get("/api/srs/cards/due").json()
    assert len(due) == 6
    assert client.get("/api/srs/cards/due/count").json() == {"due": 6}
    assert len(client.get("/api/srs/cards/due", params={"limit": 2}).json()) == 2

    response = client.post("/api/srs/cards/v-a/review", json={"rating": "good"})
    assert response.status_code == 200
    card = response.json()
    assert card["interval_days"] == 1
    assert card["repetitions"] == 1
    assert card["due_at"] == "2024-03-02T09:00:00"

    assert client.get("/api/srs/cards/due/count").json() == {"due": 5}
    assert client.get("/api/srs/cards/v-a").json()["repetitions"] == 1


def test_review_errors(client):
    response = client.post("/api/srs/cards/v-a/review", json={"rating": "brilliant"})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_rating"

    for rating in (True, False, 2.0, None):
        response = client.post("/api/srs/cards/v-a/review", json={"rating": rating})
        assert response.status_code == 400, rating
    assert client.get("/api/srs/cards/v-a").json()["repetitions"] == 0

    response = client.post("/api/srs/cards/x-missing/review", json={"rating": 2})
    assert response.status_code == 404
    assert response.json()["error"] == "unknown_item"

    assert client.get("/api/srs/cards/x-missing").status_code == 404
    assert client.get("/api/srs/cards/due", params={"limit": -1}).status_code == 400


def test_reset_and_review_all(client):
    client.post("/api/srs/cards/c-ka/review", json={"rating": "forgot"})
    card = client.post("/api/srs/cards/c-ka/reset").json()
    assert card["lapses"] == 0
    assert card["last_reviewed_at"] is None

    client.post("/api/srs/cards/v-a/review", json={"rating": "easy"})
    assert client.post("/api/srs/review-all").json() == {"scheduled": 6}
    assert client.get("/api/srs/cards/due/count").json() == {"due": 6}
    assert client.get("/api/srs/cards/v-a").json()["interval_days"] == 2

    assert client.post("/api/srs/reset").json() == {"reset": 6}
    assert client.get("/api/srs/stats").json()["completion_rate"] == 0


def test_sorted_cards(client):
    response = client.get("/api/srs/cards", params={"sort": "category"})
    assert [c["item_id"] for c in response.json()] == ["v-a", "v-aa", "c-ka", "c-kha", "m-aa", "cj-ksha"]
    assert client.get("/api/srs/cards", params={"sort": "alphabet"}).status_code == 400


def test_stats(client):
    client.post("/api/srs/cards/v-a/review", json={"rating": "good"})
    stats = client.get("/api/srs/stats").json()
    assert stats["total_cards"] == 6
    assert stats["due_cards"] == 5
    assert stats["completion_rate"] == 17
    assert stats["by_category"]["vowel"] == {"total": 2, "due": 1}


def test_export_and_import(client):
    client.post("/api/srs/cards/m-aa/review", json={"rating": "hard"})
    response = client.get("/api/srs/export")
    assert response.status_code == 200
    assert "hindi-alphabet-progress.json" in response.headers["content-disposition"]
    document = response.json()

    client.post("/api/srs/reset")
    response = client.post("/api/srs/import", content=json.dumps(document))
    assert response.status_code == 200
    assert response.json() == {"imported": 6}
    assert client.get("/api/srs/cards/m-aa").json()["repetitions"] == 1


def test_import_rejected(client):
    document = json.loads(client.get("/api/srs/export").text)
    document["cards"][0]["item_id"] = "x-missing"
    response = client.post("/api/srs/import", content=json.dumps(document))
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "import_validation_failure"
    assert any("x-missing" in p for p in body["problems"])
