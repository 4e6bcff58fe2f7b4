import os

# Doit précéder l'import de l'app: Redis en mémoire, pas d'init du rate limiter
os.environ.setdefault("USE_FAKE_REDIS_FOR_TESTS", "1")
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
import fakeredis
from typing import Generator, Dict, Any, List
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from marketplace.app import app as fastapi_app
from marketplace.infra import redis_client
from marketplace.sessions.store import SessionStore
from marketplace.utils.security import require_user

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

# Simuler un utilisateur authentifié pour les endpoints protégés
BUYER: Dict[str, Any] = {
    "id": "buyer-1",
    "email": "buyer@example.com",
    "role": "user",
    "metadata": {"full_name": "Test Buyer"},
    "token": "fake-token",
}

@pytest.fixture(autouse=True)
def _override_require_user(app):
    app.dependency_overrides[require_user] = lambda: BUYER
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)

@pytest.fixture(autouse=True)
def _fresh_redis():
    redis_client.reset_redis()
    redis_client.get_redis().flushall()
    yield
    redis_client.get_redis().flushall()
    redis_client.reset_redis()

@pytest.fixture()
def store() -> SessionStore:
    return SessionStore(fakeredis.FakeRedis(decode_responses=True))


class FakeDB:
    """Base en mémoire remplaçant les repositories Supabase."""

    def __init__(self):
        self.shops: Dict[str, Dict[str, Any]] = {
            "s1": {"id": "s1", "name": "Shop One", "seller_id": "seller-1", "sellers": {"stripe_id": "acct_s1"}},
            "s2": {"id": "s2", "name": "Shop Two", "seller_id": "seller-2", "sellers": {"stripe_id": "acct_s2"}},
        }
        self.users: Dict[str, Dict[str, Any]] = {
            "buyer-1": {"id": "buyer-1", "name": "Alice", "email": "buyer@example.com"},
        }
        self.products: Dict[str, Dict[str, Any]] = {
            "p1": {"id": "p1", "title": "Mug", "images": [{"url": "https://cdn.test/p1.png"}], "stock": 10},
            "p2": {"id": "p2", "title": "Poster", "images": [], "stock": 5},
            "p3": {"id": "p3", "title": "Lamp", "images": [], "stock": 3},
        }
        self.addresses: Dict[str, Dict[str, Any]] = {
            "addr-1": {"id": "addr-1", "city": "Lyon", "street": "1 rue de la Paix"},
        }
        self.coupons: Dict[str, Dict[str, Any]] = {}
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.notifications: List[Dict[str, Any]] = []
        self.emails: List[Dict[str, Any]] = []
        self.purchases: List[tuple] = []
        self.user_actions: List[Dict[str, Any]] = []
        self.fail_shops = set()
        self.calls: Dict[str, int] = {}

    def _hit(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1

    def add_coupon(self, code: str, discount_type: str, value, product_id: str) -> None:
        self.coupons[code] = {
            "id": f"c-{code}",
            "discount_code": code,
            "discount_type": discount_type,
            "discount_value": value,
            "product_id": product_id,
        }

    # catalog
    def get_shops(self, shop_ids):
        self._hit("get_shops")
        return [self.shops[s] for s in shop_ids if s in self.shops]

    def get_shop_by_seller(self, seller_id):
        return next((s for s in self.shops.values() if s["seller_id"] == seller_id), None)

    def get_user(self, user_id):
        self._hit("get_user")
        return self.users.get(user_id)

    def get_address(self, address_id):
        return self.addresses.get(address_id)

    def get_products(self, product_ids):
        return [self.products[p] for p in product_ids if p in self.products]

    def decrement_stock(self, product_id, quantity):
        self.products[product_id]["stock"] -= quantity

    # coupons
    def get_discount_code(self, code):
        self._hit("get_discount_code")
        return self.coupons.get(code)

    # orders
    def create_order_with_items(self, order, items):
        if order["shop_id"] in self.fail_shops:
            raise RuntimeError(f"write failed for {order['shop_id']}")
        for existing in self.orders.values():
            if existing["session_id"] == order["session_id"] and existing["shop_id"] == order["shop_id"]:
                return None
        order_id = f"order-{len(self.orders) + 1}"
        row = {**order, "id": order_id, "order_items": [dict(it) for it in items]}
        self.orders[order_id] = row
        return {k: v for k, v in row.items() if k != "order_items"}

    def get_order(self, order_id):
        return self.orders.get(order_id)

    def update_order_status(self, order_id, status):
        self.orders[order_id]["status"] = status
        return self.orders[order_id]

    def list_user_orders(self, user_id):
        return [o for o in self.orders.values() if o["user_id"] == user_id]

    def list_shop_orders(self, shop_id):
        return [o for o in self.orders.values() if o["shop_id"] == shop_id]

    def list_all_orders(self, limit=100):
        return list(self.orders.values())[:limit]

    # analytics
    def record_product_purchase(self, product_id, shop_id, quantity):
        self.purchases.append((product_id, shop_id, quantity))

    def append_user_action(self, user_id, product_id, shop_id, action="purchase", at=None):
        row = {"user_id": user_id, "product_id": product_id, "shop_id": shop_id, "action": action}
        self.user_actions.append(row)
        return row

    # notifications
    def insert_notification(self, **kwargs):
        self.notifications.append(kwargs)
        return kwargs

    def send_email(self, to, subject, template, data):
        self.emails.append({"to": to, "subject": subject, "template": template, "data": data})
        return True


@pytest.fixture(autouse=True)
def fake_db(monkeypatch) -> FakeDB:
    """
    Remplace les accès Supabase par une base en mémoire pour tous les tests.
    Les modules appellent les repositories via leur module: le patch par chemin suffit.
    """
    db = FakeDB()
    monkeypatch.setattr("marketplace.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("marketplace.infra.supabase_client.get_service_supabase", lambda: MagicMock())

    for name in ("get_shops", "get_shop_by_seller", "get_user", "get_address", "get_products", "decrement_stock"):
        monkeypatch.setattr(f"marketplace.catalog.repository.{name}", getattr(db, name))
    monkeypatch.setattr("marketplace.coupons.repository.get_discount_code", db.get_discount_code)
    for name in ("create_order_with_items", "get_order", "update_order_status",
                 "list_user_orders", "list_shop_orders", "list_all_orders"):
        monkeypatch.setattr(f"marketplace.orders.repository.{name}", getattr(db, name))
    monkeypatch.setattr("marketplace.analytics.repository.record_product_purchase", db.record_product_purchase)
    monkeypatch.setattr("marketplace.analytics.repository.append_user_action", db.append_user_action)
    monkeypatch.setattr("marketplace.notifications.repository.insert_notification", db.insert_notification)
    monkeypatch.setattr("marketplace.notifications.email.send_email", db.send_email)
    return db

