from ivc.config import settings


def test_health_check(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "healthy"
    assert payload["database"] == "connected"


def test_readiness_check(client):
    response = client.get("/readyz")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "database": "connected"}


def test_homepage_loads(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "IVC Accounting" in response.text


def test_metrics_open_without_password(client):
    response = client.get("/metrics", auth=("anyone", "anything"))
    assert response.status_code == 200
    assert "ivc_request_total" in response.text


def test_metrics_require_credentials_when_configured(client, monkeypatch):
    monkeypatch.setattr(settings, "metrics_password", "s3cret")

    assert client.get("/metrics", auth=("prometheus", "wrong")).status_code == 401
    ok = client.get("/metrics", auth=("prometheus", "s3cret"))
    assert ok.status_code == 200


def test_static_assets_are_cached(client):
    response = client.get("/static/css/site.css")
    assert response.status_code == 200
    assert "immutable" in response.headers["cache-control"]
