import os

# Pas de Redis pendant les tests: à positionner avant l'import de l'application
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from datetime import date
from typing import Generator, Any, Dict, List, Optional
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from damda.app import app as fastapi_app
from damda.cart.models import CartItem
from damda.payments import service as payments_service

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture
def nicepay_keys(monkeypatch):
    """Clés NICEPAY factices côté serveur."""
    from damda import config
    monkeypatch.setattr(config, "NICEPAY_CLIENT_KEY", "S2_test_client", raising=True)
    monkeypatch.setattr(config, "NICEPAY_SECRET_KEY", "test_secret", raising=True)
    return "S2_test_client", "test_secret"

@pytest.fixture
def make_item():
    """Fabrique de lignes de panier (prix en KRW)."""
    def _make(
        product_id: str = "p1",
        sale_price: int = 10000,
        participants: int = 1,
        reservation_date: date = date(2026, 5, 10),
        reservation_time: Optional[str] = None,
        options: Optional[List[Dict[str, Any]]] = None,
        name: Optional[str] = None,
    ) -> CartItem:
        return CartItem.model_validate({
            "product": {"id": product_id, "name": name or f"Sortie {product_id}", "sale_price": sale_price},
            "participants": participants,
            "reservation_date": reservation_date,
            "reservation_time": reservation_time,
            "options": options or [],
        })
    return _make

# Registre d'approbations vierge pour chaque test
@pytest.fixture(autouse=True)
def _reset_approval_ledger():
    payments_service.ledger.clear()
    yield
    payments_service.ledger.clear()

# Aucun accès réseau à Supabase pendant les tests
@pytest.fixture(scope="function", autouse=True)
def mock_db_dependency(monkeypatch):
    monkeypatch.setattr("damda.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("damda.infra.supabase_client.get_service_supabase", lambda: MagicMock())
    monkeypatch.setattr("damda.health.service.health_supabase_info", lambda: {"connect_ok": True})
