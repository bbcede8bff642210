"""API tests using FastAPI's TestClient with an in-memory provider."""

import pytest
from fastapi.testclient import TestClient

from portfolio_lookthrough.app import app, get_orchestrator

GENERIC_EXPORT = """\
Symbol,Name,Quantity,Price,Currency,Total Value CHF
AAPL,Apple Inc.,10,170.50,USD,1568.60
NESN,Nestle SA,20,100.00,CHF,2000.00
"""


@pytest.fixture
def client(orchestrator):
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


class TestPortfolioApi:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_cache_info_and_clear(self, client):
        client.post("/portfolio", json={"text": GENERIC_EXPORT})

        info = client.get("/cache").json()
        assert info["resolutions"] == {"entries": 2, "ttl": 86400}
        assert set(info) == {"resolutions", "quotes", "compositions", "profiles", "searches"}

        cleared = client.delete("/cache").json()
        assert all(entry["entries"] == 0 for entry in cleared.values())

    def test_pasted_statement(self, client):
        response = client.post("/portfolio", json={"text": GENERIC_EXPORT})

        assert response.status_code == 200
        body = response.json()
        assert [p["original_symbol"] for p in body["positions"]] == ["AAPL", "NESN"]
        assert body["account_overview"]["securities_value"] == pytest.approx(3568.6)
        assert body["base_currency"] == "CHF"

    def test_blank_statement_is_empty(self, client):
        response = client.post("/portfolio", json={"text": "  "})
        assert response.status_code == 200
        assert response.json()["positions"] == []

    def test_unparseable_statement_is_422(self, client):
        response = client.post("/portfolio", json={"text": "hello world\nfoo bar"})
        assert response.status_code == 422
        assert response.json()["detail"].startswith("No valid positions found")

    def test_missing_text_is_rejected(self, client):
        assert client.post("/portfolio", json={}).status_code == 422

    def test_csv_upload(self, client):
        response = client.post(
            "/portfolio/upload",
            files={"file": ("positions.csv", GENERIC_EXPORT.encode("utf-8"), "text/csv")},
        )
        assert response.status_code == 200
        assert len(response.json()["positions"]) == 2

    def test_pdf_upload_is_422(self, client):
        response = client.post(
            "/portfolio/upload",
            files={"file": ("statement.pdf", b"%PDF-1.7 ...", "application/pdf")},
        )
        assert response.status_code == 422
        assert "PDF" in response.json()["detail"]
