from unittest.mock import MagicMock

import pytest

from damda.products import repository


def _client(data=None, error=None):
    client = MagicMock()
    execute = client.table.return_value.select.return_value.in_.return_value.execute
    if error is not None:
        execute.side_effect = error
    else:
        execute.return_value = MagicMock(data=data)
    return client


def test_get_products_map_indexes_by_id(monkeypatch):
    client = _client(data=[{"id": 7, "name": "Ferme"}, {"id": "p2", "name": "Musée"}])
    monkeypatch.setattr("damda.infra.supabase_client.get_supabase", lambda: client)

    assert repository.get_products_map(["7", "p2"]) == {
        "7": {"id": 7, "name": "Ferme"},
        "p2": {"id": "p2", "name": "Musée"},
    }
    client.table.assert_called_with("products")


def test_empty_ids_skip_the_query(monkeypatch):
    client = _client(data=[])
    monkeypatch.setattr("damda.infra.supabase_client.get_supabase", lambda: client)

    assert repository.get_products_map([]) == {}
    client.table.assert_not_called()


def test_supabase_outage_propagates(monkeypatch):
    client = _client(error=RuntimeError("supabase down"))
    monkeypatch.setattr("damda.infra.supabase_client.get_supabase", lambda: client)

    with pytest.raises(RuntimeError):
        repository.get_products_map(["p1"])
