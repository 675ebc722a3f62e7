from fastapi import FastAPI, Depends, Request
from fastapi.testclient import TestClient
from damda.utils.rate_limit import optional_rate_limit, rate_limit_health_info


def _make_app(times=2, seconds=60):
    app = FastAPI()

    @app.post("/approveA", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def approve_a():
        return {"ok": True}

    @app.post("/approveB", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def approve_b():
        return {"ok": True}

    @app.get("/rl_info")
    def rl_info(request: Request):
        return rate_limit_health_info(request)

    return app


def test_rate_limit_fallback_blocks_after_limit(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client = TestClient(_make_app(times=2, seconds=60))

    assert client.post("/approveA").status_code == 200
    assert client.post("/approveA").status_code == 200
    assert client.post("/approveA").status_code == 429


def test_rate_limit_is_per_path(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client = TestClient(_make_app(times=1, seconds=60))

    assert client.post("/approveA").status_code == 200
    assert client.post("/approveA").status_code == 429
    assert client.post("/approveB").status_code == 200


def test_rate_limit_disabled_flag_bypasses_limit(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    app = _make_app(times=1, seconds=60)
    app.state.rate_limit_enabled = False
    client = TestClient(app)

    for _ in range(3):
        assert client.post("/approveA").status_code == 200


def test_rate_limit_health_info_when_disabled():
    app = _make_app()
    app.state.rate_limit_enabled = False
    info = TestClient(app).get("/rl_info").json()

    assert info["enabled"] is False
    assert set(info) == {"enabled", "ready", "backend"}
