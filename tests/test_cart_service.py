"""Tests for CartService and CartRepo."""
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from storefront.data.models import CartItemModel, CartModel
from storefront.domain.errors import (
    ConflictError,
    InsufficientInventoryError,
    NotFoundError,
    TransactionError,
    ValidationError,
)
from storefront.domain.identity import SessionIdentity, UserIdentity
from storefront.repos.cart_repo import CartRepo
from storefront.services.cart_service import CartService


def count(session, model):
    return session.execute(select(func.count()).select_from(model)).scalar_one()


def test_get_or_create_cart_converges_to_one_row(database, store):
    identity = SessionIdentity(token="guest-1")

    cart_ids = set()
    for _ in range(5):
        with database.session() as s:
            cart_ids.add(CartService(s).get_or_create_cart(store.id, identity).id)

    assert len(cart_ids) == 1
    with database.session() as s:
        assert count(s, CartModel) == 1


def test_carts_are_per_store_and_per_owner(session, store, other_store):
    svc = CartService(session)
    user = UserIdentity(user_id=7)
    guest = SessionIdentity(token="7")

    a = svc.get_or_create_cart(store.id, user)
    b = svc.get_or_create_cart(other_store.id, user)
    c = svc.get_or_create_cart(store.id, guest)

    assert len({a.id, b.id, c.id}) == 3
    assert a.user_id == 7 and a.session_token is None
    assert c.session_token == "7" and c.user_id is None


def test_adding_same_product_twice_merges_lines(session, store, make_product):
    product = make_product(inventory_quantity=10)
    svc = CartService(session)
    user = UserIdentity(user_id=1)

    first = svc.add_item(store, user, product.id, 2)
    second = svc.add_item(store, user, product.id, 3)

    assert first["id"] == second["id"]
    assert second["quantity"] == 5
    assert count(session, CartItemModel) == 1


def test_variants_are_separate_lines(session, store, make_product):
    product = make_product()
    svc = CartService(session)
    user = UserIdentity(user_id=1)

    svc.add_item(store, user, product.id, 1, variant_id=11)
    svc.add_item(store, user, product.id, 1, variant_id=12)
    svc.add_item(store, user, product.id, 1, variant_id=11)
    svc.add_item(store, user, product.id, 1)

    lines = svc.get_cart(store, user)["items"]
    assert sorted((l["variant_id"] or 0, l["quantity"]) for l in lines) == [(0, 1), (11, 2), (12, 1)]


def test_unit_price_is_captured_at_add_time(session, store, make_product):
    product = make_product(price=1500)
    svc = CartService(session)
    user = UserIdentity(user_id=1)
    svc.add_item(store, user, product.id, 1)

    product.price = 9999
    session.commit()

    line = svc.get_cart(store, user)["items"][0]
    assert line["price"] == 1500
    assert line["product_price"] == 9999
    assert line["line_total"] == 1500


def test_add_rejects_bad_quantity(session, store, make_product):
    product = make_product()
    with pytest.raises(ValidationError):
        CartService(session).add_item(store, UserIdentity(user_id=1), product.id, 0)


def test_add_unknown_or_inactive_product(session, store, other_store, make_product):
    svc = CartService(session)
    user = UserIdentity(user_id=1)
    inactive = make_product(is_active=False)
    foreign = make_product(store_id=other_store.id)

    for product_id in (9999, inactive.id, foreign.id):
        with pytest.raises(NotFoundError):
            svc.add_item(store, user, product_id, 1)


def test_add_checks_merged_quantity(session, store, make_product):
    product = make_product(inventory_quantity=4)
    svc = CartService(session)
    user = UserIdentity(user_id=1)
    svc.add_item(store, user, product.id, 3)

    with pytest.raises(InsufficientInventoryError):
        svc.add_item(store, user, product.id, 2)

    assert svc.get_cart(store, user)["items"][0]["quantity"] == 3


def test_add_ignores_stock_for_untracked_or_backordered(session, store, make_product):
    untracked = make_product(inventory_quantity=0, track_inventory=False)
    backordered = make_product(inventory_quantity=0, allow_backorders=True)
    svc = CartService(session)
    user = UserIdentity(user_id=1)

    svc.add_item(store, user, untracked.id, 50)
    svc.add_item(store, user, backordered.id, 50)

    assert len(svc.get_cart(store, user)["items"]) == 2


def test_update_remove_and_clear(session, store, make_product):
    p1, p2 = make_product(), make_product()
    svc = CartService(session)
    user = UserIdentity(user_id=1)
    line = svc.add_item(store, user, p1.id, 1)
    svc.add_item(store, user, p2.id, 1)

    assert svc.update_item(store, user, line["id"], 4)["quantity"] == 4
    with pytest.raises(InsufficientInventoryError):
        svc.update_item(store, user, line["id"], 11)

    svc.remove_item(store, user, line["id"])
    assert [l["product_id"] for l in svc.get_cart(store, user)["items"]] == [p2.id]

    svc.clear_cart(store, user)
    assert svc.get_cart(store, user)["items"] == []


def test_lines_of_another_owner_are_not_found(session, store, make_product):
    product = make_product()
    svc = CartService(session)
    line = svc.add_item(store, UserIdentity(user_id=1), product.id, 1)

    intruder = UserIdentity(user_id=2)
    with pytest.raises(NotFoundError):
        svc.update_item(store, intruder, line["id"], 2)
    with pytest.raises(NotFoundError):
        svc.remove_item(store, intruder, line["id"])


def test_totals_and_validation(session, store, make_product):
    p1 = make_product(price=1000, inventory_quantity=5)
    p2 = make_product(price=250, name="Cable")
    svc = CartService(session)
    user = UserIdentity(user_id=1)

    assert svc.get_totals(store, user) == {"subtotal": 0, "total_items": 0, "items": []}

    svc.add_item(store, user, p1.id, 2)
    svc.add_item(store, user, p2.id, 3)

    totals = svc.get_totals(store, user)
    assert totals["subtotal"] == 2750
    assert totals["total_items"] == 2
    assert svc.validate_cart(store, user) == {"valid": True, "issues": []}

    p1.inventory_quantity = 1
    p2.is_active = False
    session.commit()

    report = svc.validate_cart(store, user)
    assert not report["valid"]
    assert {i["issue"] for i in report["issues"]} == {"Insufficient inventory", "Product no longer available"}


def test_update_allow_list_rejects_other_fields(session, store, make_product):
    product = make_product()
    CartService(session).add_item(store, UserIdentity(user_id=1), product.id, 1)
    item = session.execute(select(CartItemModel)).scalar_one()

    repo = CartRepo(session)
    with pytest.raises(ValidationError):
        repo.update_cart_item(item, {"price": 1})
    with pytest.raises(ValidationError):
        repo.update_cart_item(item, {"quantity": 0})
    session.rollback()


def test_storage_failure_in_command_is_a_transaction_error(session, store, make_product, monkeypatch):
    product = make_product()
    svc = CartService(session)
    user = UserIdentity(user_id=1)
    line = svc.add_item(store, user, product.id, 1)

    def disk_error(self, cart):
        raise OperationalError("UPDATE carts", {}, Exception("disk I/O error"))

    monkeypatch.setattr(CartRepo, "touch_cart", disk_error)
    with pytest.raises(TransactionError):
        svc.update_item(store, user, line["id"], 3)
    monkeypatch.undo()

    assert svc.get_cart(store, user)["items"][0]["quantity"] == 1


def test_duplicate_line_insert_ends_in_conflict(session, store, make_product, monkeypatch):
    product = make_product()
    svc = CartService(session)
    user = UserIdentity(user_id=1)
    svc.add_item(store, user, product.id, 1)

    # never finds the existing line, so every attempt hits the unique index
    monkeypatch.setattr(CartRepo, "get_cart_item", lambda self, cart_id, product_id, variant_id: None)
    with pytest.raises(ConflictError):
        svc.add_item(store, user, product.id, 1)
    monkeypatch.undo()

    items = svc.get_cart(store, user)["items"]
    assert [(i["product_id"], i["quantity"]) for i in items] == [(product.id, 1)]
