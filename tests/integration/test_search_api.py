"""Integration tests for the search and outreach API endpoints."""

import json

from fastapi.testclient import TestClient

from services.base_llm import TerminalModelError


def _events(response):
    return [json.loads(line) for line in response.text.splitlines() if line.strip()]


def test_search_streams_ndjson_events(client: TestClient, fake_service, businesses):
    fake_service.responses.append(businesses("Mercado Bom", "Farmácia Central", phone="(11) 98765-4321"))

    response = client.post("/api/v1/search", json={"segment": "", "region": "Centro", "maxResults": 20})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ndjson")
    events = _events(response)
    assert events[0]["type"] == "progress"
    batches = [e for e in events if e["type"] == "batch"]
    assert len(batches) == 1
    entity = batches[0]["entities"][0]
    assert entity["name"] == "Mercado Bom"
    assert entity["category"] == "Diversos"
    assert entity["matchType"] == "EXACT"
    assert entity["status"] == "Unknown"
    assert entity["socialLinks"][0].startswith("https://wa.me/5511987654321")
    assert entity["isProspect"] is False
    assert events[-1] == {"type": "done", "total": 2}


def test_search_reports_connectivity_failure_as_error_event(client: TestClient, fake_service):
    fake_service.responses.append(TerminalModelError("forbidden", 403))

    response = client.post("/api/v1/search", json={"segment": "Padarias", "region": "Centro"})

    assert response.status_code == 200
    events = _events(response)
    assert events[-1]["type"] == "error"
    assert not any(e["type"] == "batch" for e in events)


def test_search_rejects_invalid_requests(client: TestClient, fake_service):
    assert client.post("/api/v1/search", json={"segment": "Padarias"}).status_code == 422
    assert client.post("/api/v1/search", json={"region": "   "}).status_code == 422
    assert client.post("/api/v1/search", json={"region": "Centro", "maxResults": 0}).status_code == 422
    assert client.post("/api/v1/search", json={"region": "Centro", "maxResults": 501}).status_code == 422
    assert fake_service.call_count == 0


def test_search_without_credentials_returns_503(client: TestClient, fake_service):
    fake_service._api_key = None

    response = client.post("/api/v1/search", json={"region": "Centro"})

    assert response.status_code == 503
    assert fake_service.call_count == 0


def test_repeated_search_is_served_from_cache_until_cleared(client: TestClient, fake_service, businesses):
    fake_service.responses.append(businesses("Mercado Bom"))
    payload = {"segment": "Mercados", "region": "Centro", "maxResults": 10}

    client.post("/api/v1/search", json=payload)
    calls = fake_service.call_count
    cached = _events(client.post("/api/v1/search", json=payload))

    assert fake_service.call_count == calls
    assert [e["entities"][0]["name"] for e in cached if e["type"] == "batch"] == ["Mercado Bom"]

    assert client.delete("/api/v1/search/cache").status_code == 204
    client.post("/api/v1/search", json=payload)
    assert fake_service.call_count > calls


def test_search_accepts_coordinates(client: TestClient, fake_service, businesses):
    fake_service.responses.append(businesses("Mercado Bom"))

    response = client.post(
        "/api/v1/search",
        json={"segment": "Mercados", "region": "Centro", "coordinates": {"lat": -23.55, "lng": -46.63}},
    )

    assert response.status_code == 200
    assert "latitude -23.55, longitude -46.63" in fake_service.prompts[0]


def test_outreach_email(client: TestClient, fake_service):
    fake_service.responses.append("Assunto: Parceria\n\nOlá, equipe do Mercado Bom!")

    response = client.post(
        "/api/v1/outreach/email",
        json={"name": "Mercado Bom", "category": "Mercado", "lastActivityEvidence": "Post em 12/10/2024"},
    )

    assert response.status_code == 200
    assert response.json() == {"email": "Assunto: Parceria\n\nOlá, equipe do Mercado Bom!"}
    assert "Evidência Recente: Post em 12/10/2024" in fake_service.prompts[0]


def test_outreach_email_without_credentials_returns_503(client: TestClient, fake_service):
    fake_service._api_key = None

    response = client.post("/api/v1/outreach/email", json={"name": "Mercado Bom"})

    assert response.status_code == 503
