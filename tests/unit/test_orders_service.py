import pytest

from marketplace.orders import service as orders_service
from marketplace.utils.errors import AuthError, NotFoundError, ValidationError

BUYER = {"id": "buyer-1", "role": "user"}
SELLER_1 = {"id": "seller-1", "role": "seller"}
SELLER_2 = {"id": "seller-2", "role": "seller"}
ADMIN = {"id": "root", "role": "admin"}


@pytest.fixture
def order(fake_db):
    fake_db.add_coupon("FIVE", "flat", 5, "p1")
    created = fake_db.create_order_with_items(
        {
            "user_id": "buyer-1",
            "shop_id": "s1",
            "session_id": "sess-1",
            "total": "15",
            "status": "Paid",
            "shipping_address_id": "addr-1",
            "coupon_code": "FIVE",
            "discount_amount": "5.00",
        },
        [{"product_id": "p1", "quantity": 2, "price": "10", "selected_options": {}}],
    )
    return created["id"]


def test_details_are_enriched_for_buyer(order):
    details = orders_service.get_order_details(order, BUYER)
    assert details["items"][0]["product"]["title"] == "Mug"
    assert details["items"][0]["product"]["images"] == [{"url": "https://cdn.test/p1.png"}]
    assert details["shippingAddress"]["city"] == "Lyon"
    assert details["coupon"]["code"] == "FIVE"
    assert details["coupon"]["discount_type"] == "flat"
    assert "order_items" not in details


def test_details_access_rules(order):
    assert orders_service.get_order_details(order, SELLER_1)["id"] == order
    assert orders_service.get_order_details(order, ADMIN)["id"] == order
    with pytest.raises(AuthError):
        orders_service.get_order_details(order, SELLER_2)
    with pytest.raises(AuthError):
        orders_service.get_order_details(order, {"id": "someone", "role": "user"})
    with pytest.raises(NotFoundError):
        orders_service.get_order_details("missing", ADMIN)


def test_status_moves_forward_only(order, fake_db):
    result = orders_service.update_order_status(order, "Shipped", SELLER_1)
    assert result["changed"] is True
    assert fake_db.orders[order]["status"] == "Shipped"

    same = orders_service.update_order_status(order, "Shipped", SELLER_1)
    assert same["changed"] is False

    with pytest.raises(ValidationError):
        orders_service.update_order_status(order, "Packed", SELLER_1)
    assert fake_db.orders[order]["status"] == "Shipped"


def test_status_update_requires_shop_seller(order):
    with pytest.raises(AuthError):
        orders_service.update_order_status(order, "Packed", SELLER_2)
    with pytest.raises(AuthError):
        orders_service.update_order_status(order, "Packed", BUYER)


def test_unknown_status_is_rejected(order):
    with pytest.raises(ValidationError):
        orders_service.update_order_status(order, "Lost", SELLER_1)


def test_listings(order):
    assert [o["id"] for o in orders_service.list_user_orders("buyer-1")] == [order]
    assert [o["id"] for o in orders_service.list_seller_orders(SELLER_1)] == [order]
    assert orders_service.list_seller_orders(SELLER_2) == []
    assert len(orders_service.list_admin_orders()) == 1
    with pytest.raises(NotFoundError):
        orders_service.list_seller_orders({"id": "nobody", "role": "seller"})
