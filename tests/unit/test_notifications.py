import logging

from marketplace.notifications import email
from marketplace.notifications import service as notifications
from marketplace.utils.logs import send_log

_real_send_email = email.send_email


def test_order_confirmation_template_renders():
    html = email.render_email("order-confirmation", {
        "platform": "TradeSphere",
        "name": "Alice",
        "cart": [{"title": "Mug", "product_id": "p1", "quantity": 2, "sale_price": "10"}],
        "total_amount": "15",
        "discount_amount": "5.00",
        "tracking_urls": ["http://localhost:3000/order/order-1"],
    })
    assert "Alice" in html
    assert "Mug" in html
    assert "-5.00" in html
    assert "/order/order-1" in html


def test_send_email_is_disabled_without_smtp_host(monkeypatch, fake_db):
    monkeypatch.setattr("marketplace.config.SMTP_HOST", "")
    assert _real_send_email("a@example.com", "Subject", "order-confirmation",
                            {"cart": [], "tracking_urls": []}) is False


def test_service_send_builds_subject(fake_db):
    assert notifications.send("a@example.com", "order-confirmation", {"cart": []}) is True
    assert fake_db.emails[0]["subject"] == "Your TradeSphere Order Confirmation"


def test_notify_inserts_row(fake_db):
    notifications.notify("seller-1", "New Order Received", "msg", "http://x/order/1", creator_id="buyer-1")
    assert fake_db.notifications == [{
        "title": "New Order Received",
        "message": "msg",
        "creator_id": "buyer-1",
        "receiver_id": "seller-1",
        "redirect_link": "http://x/order/1",
    }]


def test_send_log_uses_audit_logger(caplog):
    with caplog.at_level(logging.INFO, logger="marketplace.audit"):
        send_log("error", "Error in Stripe webhook", session_id="sess-1")
    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    assert "session_id=sess-1" in record.getMessage()
