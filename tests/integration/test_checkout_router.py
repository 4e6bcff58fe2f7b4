from unittest.mock import MagicMock

import pytest
import stripe

from marketplace.utils.security import require_admin, require_seller

CART = [
    {"id": "p1", "shopId": "s1", "quantity": 2, "sale_price": 10, "title": "Mug"},
    {"id": "p2", "shopId": "s2", "quantity": 1, "sale_price": 25},
]


def _create(client, cart=CART, **extra):
    return client.post("/api/v1/payments/create-payment-session", json={"cart": cart, **extra})


def test_create_session_then_reuse(client):
    r1 = _create(client, selectedAddressId="addr-1")
    assert r1.status_code == 201
    assert r1.json()["isExisting"] is False

    r2 = _create(client, cart=list(reversed(CART)), selectedAddressId="addr-1")
    assert r2.json() == {"sessionId": r1.json()["sessionId"], "isExisting": True}


def test_create_session_with_empty_cart_is_400(client):
    r = _create(client, cart=[])
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "VALIDATION_ERROR", "detail": "Panier vide ou invalide"}


def test_create_session_with_invalid_coupon_is_400(client):
    r = _create(client, coupon={"code": "NOPE"})
    assert r.status_code == 400
    assert r.json()["error"] == "VALIDATION_ERROR"


def test_verify_session_returns_cached_session(client):
    session_id = _create(client).json()["sessionId"]

    r = client.get("/api/v1/payments/verifying-payment-session", params={"sessionId": session_id})

    assert r.status_code == 200
    session = r.json()["session"]
    assert session["session_id"] == session_id
    assert session["total_amount"] == "45"
    assert session["sellers"]["s2"]["stripe_account_id"] == "acct_s2"


def test_verify_unknown_session_is_404(client):
    r = client.get("/api/v1/payments/verifying-payment-session", params={"sessionId": "missing"})
    assert r.status_code == 404
    assert r.json()["error"] == "NOT_FOUND"


def test_create_payment_intent(client, monkeypatch):
    session_id = _create(client).json()["sessionId"]
    create = MagicMock(return_value={"id": "pi_1", "client_secret": "pi_1_secret"})
    monkeypatch.setattr(stripe.PaymentIntent, "create", create)

    r = client.post("/api/v1/payments/create-payment-intent",
                    json={"sessionId": session_id, "amount": 45, "sellerStripeAccountId": "acct_s1"})

    assert r.status_code == 200
    assert r.json() == {"clientSecret": "pi_1_secret", "paymentIntentId": "pi_1"}
    assert create.call_args.kwargs["application_fee_amount"] == 450


def test_create_payment_intent_rejects_tampered_amount_and_destination(client, monkeypatch):
    session_id = _create(client, cart=[CART[0]]).json()["sessionId"]
    create = MagicMock(return_value={"id": "pi_1", "client_secret": "pi_1_secret"})
    monkeypatch.setattr(stripe.PaymentIntent, "create", create)

    cheap = client.post("/api/v1/payments/create-payment-intent",
                        json={"sessionId": session_id, "amount": 0.5, "sellerStripeAccountId": "acct_s1"})
    foreign = client.post("/api/v1/payments/create-payment-intent",
                          json={"sessionId": session_id, "amount": 20, "sellerStripeAccountId": "acct_attacker"})

    assert cheap.status_code == 400
    assert foreign.status_code == 400
    assert foreign.json()["error"] == "VALIDATION_ERROR"
    create.assert_not_called()


def test_create_payment_intent_charges_session_amount(client, fake_db, monkeypatch):
    fake_db.add_coupon("FIVE", "flat", 5, "p1")
    session_id = _create(client, cart=[CART[0]], coupon="FIVE").json()["sessionId"]
    create = MagicMock(return_value={"id": "pi_1", "client_secret": "pi_1_secret"})
    monkeypatch.setattr(stripe.PaymentIntent, "create", create)

    r = client.post("/api/v1/payments/create-payment-intent", json={"sessionId": session_id})

    assert r.status_code == 200
    kwargs = create.call_args.kwargs
    assert kwargs["amount"] == 1500
    assert kwargs["transfer_data"] == {"destination": "acct_s1"}


def test_create_payment_intent_requires_live_session(client, monkeypatch):
    create = MagicMock()
    monkeypatch.setattr(stripe.PaymentIntent, "create", create)

    r = client.post("/api/v1/payments/create-payment-intent",
                    json={"sessionId": "expired", "amount": 45, "sellerStripeAccountId": "acct_s1"})

    assert r.status_code == 404
    create.assert_not_called()


def test_create_payment_intent_stripe_rejection_is_502(client, monkeypatch):
    session_id = _create(client).json()["sessionId"]

    def _reject(**kwargs):
        raise stripe.CardError("Your card was declined.", param=None, code="card_declined")
    monkeypatch.setattr(stripe.PaymentIntent, "create", _reject)

    r = client.post("/api/v1/payments/create-payment-intent",
                    json={"sessionId": session_id, "amount": 45, "sellerStripeAccountId": "acct_s1"})

    assert r.status_code == 502
    assert r.json()["error"] == "UPSTREAM_ERROR"
    assert "declined" in r.json()["reason"]


def test_verify_coupon(client, fake_db):
    fake_db.add_coupon("BIG50", "flat", 50, "p2")

    r = client.put("/api/v1/coupons/verify-coupon", json={"couponCode": "BIG50", "cart": CART})

    assert r.status_code == 200
    body = r.json()
    assert body["valid"] is True
    assert body["discountAmount"] == "25.00"
    assert body["discountedProductId"] == "p2"


def test_verify_coupon_unknown_code_is_not_an_error(client):
    r = client.put("/api/v1/coupons/verify-coupon", json={"couponCode": "NOPE", "cart": CART})
    assert r.status_code == 200
    assert r.json()["valid"] is False


def test_verify_coupon_requires_code_and_cart(client):
    assert client.put("/api/v1/coupons/verify-coupon", json={"cart": CART}).status_code == 400
    assert client.put("/api/v1/coupons/verify-coupon", json={"couponCode": "X", "cart": []}).status_code == 400


@pytest.fixture
def paid_order(client, fake_db):
    created = fake_db.create_order_with_items(
        {"user_id": "buyer-1", "shop_id": "s1", "session_id": "sess-1", "total": "20",
         "status": "Paid", "shipping_address_id": "addr-1", "coupon_code": None, "discount_amount": "0"},
        [{"product_id": "p1", "quantity": 2, "price": "10", "selected_options": {}}],
    )
    return created["id"]


def test_order_details_for_buyer(client, paid_order):
    r = client.get(f"/api/v1/orders/get-order-details/{paid_order}")
    assert r.status_code == 200
    order = r.json()["order"]
    assert order["items"][0]["product"]["title"] == "Mug"
    assert order["shippingAddress"]["id"] == "addr-1"


def test_seller_updates_status_forward_only(app, client, paid_order):
    app.dependency_overrides[require_seller] = lambda: {"id": "seller-1", "role": "seller"}
    try:
        r = client.put(f"/api/v1/orders/update-status/{paid_order}", json={"status": "Packed"})
        assert r.status_code == 200
        assert r.json()["order"]["status"] == "Packed"

        back = client.put(f"/api/v1/orders/update-status/{paid_order}", json={"status": "Paid"})
        assert back.status_code == 400
    finally:
        app.dependency_overrides.pop(require_seller, None)


def test_other_seller_cannot_update_status(app, client, paid_order):
    app.dependency_overrides[require_seller] = lambda: {"id": "seller-2", "role": "seller"}
    try:
        r = client.put(f"/api/v1/orders/update-status/{paid_order}", json={"status": "Packed"})
        assert r.status_code == 403
        assert r.json()["error"] == "FORBIDDEN"
    finally:
        app.dependency_overrides.pop(require_seller, None)


def test_order_listings(app, client, paid_order):
    assert [o["id"] for o in client.get("/api/v1/orders/get-user-orders").json()["orders"]] == [paid_order]

    app.dependency_overrides[require_seller] = lambda: {"id": "seller-1", "role": "seller"}
    app.dependency_overrides[require_admin] = lambda: {"id": "root", "role": "admin"}
    try:
        assert len(client.get("/api/v1/orders/get-seller-orders").json()["orders"]) == 1
        assert len(client.get("/api/v1/orders/get-admin-orders").json()["orders"]) == 1
    finally:
        app.dependency_overrides.pop(require_seller, None)
        app.dependency_overrides.pop(require_admin, None)


def test_unauthenticated_request_is_401(app, client):
    app.dependency_overrides.clear()
    r = client.get("/api/v1/orders/get-user-orders")
    assert r.status_code == 401
    assert r.json()["error"] == "UNAUTHENTICATED"


def test_health(client):
    assert client.get("/health").json() == {"ok": True}
    deps = client.get("/health/dependencies")
    assert deps.json()["redis"]["ok"] is True
    assert deps.json()["rate_limit"]["enabled"] is False
