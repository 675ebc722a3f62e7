import re
from datetime import date, datetime, timedelta, timezone

import pytest

from damda.cart.storage import MemoryCartStorage
from damda.cart.store import CartStore
from damda.checkout.builder import CheckoutSessionBuilder, generate_order_id, goods_name_for, require_reserver
from damda.errors import CatalogUnavailableError, CheckoutValidationError
from damda.reservations.models import ReserverInfo
from damda.reservations.policy import ReservationPolicyService

NOW = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)
PRODUCTS = {
    "p1": {"id": "p1", "name": "Ferme", "sale_price": 10000, "min_participants": 1, "max_participants": 30, "is_sold_out": False},
    "p2": {"id": "p2", "name": "Musée", "sale_price": 1000, "min_participants": 1, "max_participants": None, "is_sold_out": False},
    "p3": {"id": "p3", "name": "Zoo", "sale_price": 5000, "min_participants": 5, "max_participants": 10, "is_sold_out": False},
    "p4": {"id": "p4", "name": "Cirque", "sale_price": 8000, "min_participants": 1, "max_participants": 20, "is_sold_out": True},
}


def _builder(rows=None, products=None):
    policy = ReservationPolicyService(
        fetch_rows=lambda: rows if rows is not None else [
            {"key": "reservation_advance_days", "value": "30"},
            {"key": "min_reservation_notice", "value": "24"},
        ],
        clock=lambda: 0.0,
    )
    catalog = PRODUCTS if products is None else products
    return CheckoutSessionBuilder(
        policy,
        products_lookup=lambda ids: {i: catalog[i] for i in ids if i in catalog},
        return_url="https://damda.test/api/payment/callback",
        ttl_minutes=10,
        clock=lambda: NOW,
    )


def _cart(*items):
    store = CartStore(MemoryCartStorage())
    for it in items:
        store.add_or_replace(it)
    return store


def test_build_order_freezes_amount_and_snapshot(make_item):
    cart = _cart(
        make_item("p1", sale_price=10000, participants=2, name="Ferme"),
        make_item("p2", sale_price=1000, participants=1, name="Musée"),
    )
    order = _builder().build_order(cart)

    assert order.amount == 21000
    assert order.goods_name == "Ferme et 1 autre(s)"
    assert order.return_url == "https://damda.test/api/payment/callback"
    assert order.expires_at - order.created_at == timedelta(minutes=10)
    assert re.fullmatch(r"ORD\d{13}[0-9A-Z]{4}", order.order_id)

    # un changement ultérieur du panier ne modifie pas la commande
    cart.update("p1", participants=9)
    assert order.amount == 21000
    assert order.items[0].participants == 2


def test_build_order_empty_cart():
    with pytest.raises(CheckoutValidationError) as exc:
        _builder().build_order(_cart())
    assert exc.value.code == "EMPTY_CART"


@pytest.mark.parametrize("day,code", [
    (date(2026, 5, 1), "TOO_SOON"),
    (date(2026, 6, 1), "TOO_FAR"),
])
def test_build_order_date_outside_window(make_item, day, code):
    with pytest.raises(CheckoutValidationError) as exc:
        _builder().build_order(_cart(make_item("p1", reservation_date=day)))
    assert exc.value.code == code
    assert exc.value.product_id == "p1"


def test_build_order_time_already_passed(make_item):
    with pytest.raises(CheckoutValidationError) as exc:
        _builder().build_order(_cart(make_item("p1", reservation_date=date(2026, 5, 2), reservation_time="08:00")))
    assert exc.value.code == "TIME_PASSED"


def test_build_order_product_checks(make_item):
    with pytest.raises(CheckoutValidationError) as exc:
        _builder().build_order(_cart(make_item("missing")))
    assert exc.value.code == "PRODUCT_NOT_FOUND"

    with pytest.raises(CheckoutValidationError) as exc:
        _builder().build_order(_cart(make_item("p4")))
    assert exc.value.code == "SOLD_OUT"

    with pytest.raises(CheckoutValidationError) as exc:
        _builder().build_order(_cart(make_item("p3", participants=4)))
    assert exc.value.code == "PARTICIPANTS_OUT_OF_RANGE"

    with pytest.raises(CheckoutValidationError) as exc:
        _builder().build_order(_cart(make_item("p3", participants=11)))
    assert exc.value.code == "PARTICIPANTS_OUT_OF_RANGE"


def test_catalog_outage_is_not_a_missing_product(make_item):
    def _down(ids):
        raise RuntimeError("supabase down")

    builder = _builder()
    builder.products_lookup = _down
    with pytest.raises(CatalogUnavailableError) as exc:
        builder.build_order(_cart(make_item("p1")))

    assert not isinstance(exc.value, CheckoutValidationError)
    assert exc.value.code == "CATALOG_UNAVAILABLE"
    assert exc.value.status_code == 503


def test_build_order_zero_amount(make_item):
    with pytest.raises(CheckoutValidationError) as exc:
        _builder().build_order(_cart(make_item("p2", sale_price=0)))
    assert exc.value.code == "INVALID_AMOUNT"


def test_build_order_uses_defaults_when_settings_unreadable(make_item):
    # advance_days par défaut (90): le 20 juillet reste réservable
    order = _builder(rows=[]).build_order(_cart(make_item("p1", reservation_date=date(2026, 7, 20))))
    assert order.amount == 10000


def test_order_ids_are_unique_for_same_cart(make_item):
    cart = _cart(make_item("p1"))
    builder = _builder()
    ids = {builder.build_order(cart).order_id for _ in range(50)}
    assert len(ids) == 50


def test_generate_order_id_format():
    assert generate_order_id(1714554000000).startswith("ORD1714554000000")
    assert len(generate_order_id(1714554000000)) == len("ORD1714554000000") + 4


def test_goods_name_for():
    assert goods_name_for([]) == ""
    assert goods_name_for(["Ferme"]) == "Ferme"
    assert goods_name_for(["Ferme", "Zoo", "Musée"]) == "Ferme et 2 autre(s)"


def test_widget_params(make_item):
    order = _builder().build_order(_cart(make_item("p1")))
    params = order.widget_params("S2_client", method="vbank")
    assert params == {
        "clientId": "S2_client",
        "method": "bank",
        "orderId": order.order_id,
        "amount": 10000,
        "goodsName": "Sortie p1",
        "returnUrl": "https://damda.test/api/payment/callback",
    }


@pytest.mark.parametrize("reserver", [
    None,
    ReserverInfo(),
    ReserverInfo(name="Kim", phone="  "),
    ReserverInfo(name=" ", phone="010-1234-5678"),
])
def test_require_reserver_rejects_missing_contact(reserver):
    with pytest.raises(CheckoutValidationError) as exc:
        require_reserver(reserver)
    assert exc.value.code == "RESERVER_REQUIRED"


def test_require_reserver_accepts_name_and_phone():
    reserver = ReserverInfo(name="Kim", phone="010-1234-5678")
    assert require_reserver(reserver) is reserver
