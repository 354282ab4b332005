"""Race points: cart find-or-create, merge-on-add and checkout, one session per worker."""
import threading

from sqlalchemy import func, select

from conftest import ADDRESS
from storefront.data.models import (
    CartItemModel,
    CartModel,
    OrderModel,
    PaymentTransactionModel,
    ProductModel,
    StoreModel,
)
from storefront.domain.errors import EmptyCartError, InsufficientInventoryError
from storefront.domain.identity import SessionIdentity, UserIdentity
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService


def run_concurrently(workers, fn):
    """Start ``workers`` threads together; returns ("ok", value) or ("error", exc) per worker."""
    barrier = threading.Barrier(workers)
    results = [None] * workers

    def target(i):
        barrier.wait()
        try:
            results[i] = ("ok", fn(i))
        except Exception as e:
            results[i] = ("error", e)

    threads = [threading.Thread(target=target, args=(i,)) for i in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    assert not any(t.is_alive() for t in threads)
    return results


def scalar(database, stmt):
    with database.session() as s:
        return s.execute(stmt).scalar_one()


def count(database, model):
    return scalar(database, select(func.count()).select_from(model))


def checkout_in_own_session(database, store_id, identity):
    with database.session() as s:
        store = s.get(StoreModel, store_id)
        return CheckoutService(s).checkout(store, identity, shipping_address=ADDRESS, payment_method="card")


def test_concurrent_first_access_creates_one_cart(database, store):
    identity = SessionIdentity(token="fresh-guest")

    def worker(_):
        with database.session() as s:
            return CartService(s).get_or_create_cart(store.id, identity).id

    results = run_concurrently(8, worker)

    assert [kind for kind, _ in results] == ["ok"] * 8
    assert len({cart_id for _, cart_id in results}) == 1
    assert count(database, CartModel) == 1


def test_concurrent_adds_of_same_product_merge_into_one_line(database, store, make_product):
    product = make_product(inventory_quantity=10)
    identity = SessionIdentity(token="busy-guest")

    def worker(_):
        with database.session() as s:
            s_store = s.get(StoreModel, store.id)
            return CartService(s).add_item(s_store, identity, product.id, 1)["id"]

    results = run_concurrently(6, worker)

    assert [kind for kind, _ in results] == ["ok"] * 6
    assert len({item_id for _, item_id in results}) == 1
    with database.session() as s:
        quantities = s.execute(select(CartItemModel.quantity)).scalars().all()
    assert quantities == [6]


def test_concurrent_checkouts_never_oversell(database, store, session, make_product):
    product = make_product(inventory_quantity=5)
    buyers = [UserIdentity(user_id=n) for n in range(1, 5)]
    carts = CartService(session)
    # each cart fits on its own, together they ask for 8 of 5
    for buyer in buyers:
        carts.add_item(store, buyer, product.id, 2)

    results = run_concurrently(len(buyers), lambda i: checkout_in_own_session(database, store.id, buyers[i]))

    succeeded = [value for kind, value in results if kind == "ok"]
    failed = [value for kind, value in results if kind == "error"]
    assert len(succeeded) == 2
    assert len(failed) == 2
    assert all(isinstance(e, InsufficientInventoryError) for e in failed)

    stock = scalar(database, select(ProductModel.inventory_quantity).where(ProductModel.id == product.id))
    assert stock == 1
    assert count(database, OrderModel) == 2


def test_concurrent_checkouts_of_one_cart_create_one_order(database, store, session, make_product):
    product = make_product(inventory_quantity=10)
    user = UserIdentity(user_id=1)
    CartService(session).add_item(store, user, product.id, 2)

    results = run_concurrently(4, lambda _: checkout_in_own_session(database, store.id, user))

    succeeded = [value for kind, value in results if kind == "ok"]
    failed = [value for kind, value in results if kind == "error"]
    assert len(succeeded) == 1
    assert len(failed) == 3
    assert all(isinstance(e, EmptyCartError) for e in failed)

    stock = scalar(database, select(ProductModel.inventory_quantity).where(ProductModel.id == product.id))
    assert stock == 8
    assert count(database, OrderModel) == 1
    assert count(database, PaymentTransactionModel) == 1
    assert count(database, CartItemModel) == 0
