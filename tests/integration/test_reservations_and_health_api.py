from fastapi.testclient import TestClient

from damda.reservations.policy import ReservationPolicyService


def test_reservation_settings_endpoint(app, client: TestClient, monkeypatch):
    service = ReservationPolicyService(
        fetch_rows=lambda: [
            {"key": "reservation_advance_days", "value": "45"},
            {"key": "min_reservation_notice", "value": "72"},
        ],
        clock=lambda: 0.0,
    )
    monkeypatch.setattr(app.state, "reservation_policy", service)

    response = client.get("/api/reservations/settings")
    assert response.status_code == 200
    assert response.json() == {"advanceDays": 45, "minNoticeHours": 72}


def test_reservation_settings_defaults_when_source_down(app, client: TestClient, monkeypatch):
    def _down():
        raise RuntimeError("supabase down")
    monkeypatch.setattr(app.state, "reservation_policy", ReservationPolicyService(fetch_rows=_down))

    response = client.get("/api/reservations/settings")
    assert response.status_code == 200
    assert response.json() == {"advanceDays": 90, "minNoticeHours": 0}


def test_health(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_health_supabase_is_mocked(client: TestClient):
    assert client.get("/health/supabase").json() == {"connect_ok": True}


def test_health_rate_limit_disabled_in_tests(client: TestClient):
    assert client.get("/health/rate-limit").json()["enabled"] is False


def test_security_headers(client: TestClient):
    response = client.get("/health")
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert "https://pay.nicepay.co.kr" in response.headers["Content-Security-Policy"]
