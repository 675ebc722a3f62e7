from unittest.mock import MagicMock

import pytest
from postgrest.exceptions import APIError

from damda.reservations import repository


def _client_raising(error):
    client = MagicMock()
    client.table.return_value.insert.return_value.execute.side_effect = error
    return client


def test_insert_reservations_returns_rows(monkeypatch):
    client = MagicMock()
    client.table.return_value.insert.return_value.execute.return_value = MagicMock(data=[{"id": "r1"}])
    monkeypatch.setattr("damda.infra.supabase_client.get_service_supabase", lambda: client)

    assert repository.insert_reservations([{"order_id": "O1", "product_id": "p1"}]) == [{"id": "r1"}]
    client.table.assert_called_with("reservations")


def test_insert_reservations_unique_violation(monkeypatch):
    error = APIError({"code": "23505", "message": "duplicate key value violates unique constraint"})
    monkeypatch.setattr("damda.infra.supabase_client.get_service_supabase", lambda: _client_raising(error))

    with pytest.raises(repository.DuplicateOrderError):
        repository.insert_reservations([{"order_id": "O1", "product_id": "p1"}])


def test_insert_reservations_other_errors_propagate(monkeypatch):
    error = APIError({"code": "42501", "message": "permission denied"})
    monkeypatch.setattr("damda.infra.supabase_client.get_service_supabase", lambda: _client_raising(error))

    with pytest.raises(APIError):
        repository.insert_reservations([{"order_id": "O1", "product_id": "p1"}])


def test_fetch_reservations_by_order(monkeypatch):
    client = MagicMock()
    client.table.return_value.select.return_value.eq.return_value.execute.return_value = MagicMock(data=None)
    monkeypatch.setattr("damda.infra.supabase_client.get_service_supabase", lambda: client)

    assert repository.fetch_reservations_by_order("O1") == []
    client.table.return_value.select.return_value.eq.assert_called_with("order_id", "O1")
