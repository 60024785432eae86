"""
HTTP surface: each test gets its own in-memory context with the demo data.
"""
import pytest
from fastapi.testclient import TestClient

from database import MemoryStorage
from main import AppContext, app, get_context
from seed import DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD, DEMO_PASSWORD


@pytest.fixture
def ctx():
    context = AppContext(MemoryStorage())
    app.dependency_overrides[get_context] = lambda: context
    yield context
    app.dependency_overrides.clear()


@pytest.fixture
def client(ctx):
    return TestClient(app)


def login(client, email, password=DEMO_PASSWORD):
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def as_admin(client):
    login(client, DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD)
    return client


@pytest.fixture
def as_buyer(client):
    login(client, "mike@email.com")
    return client


@pytest.fixture
def as_farmer(client):
    login(client, "john@greenvalley.com")
    return client


class TestHealth:

    def test_root(self, client):
        assert client.get("/").json() == {"message": "FarmConnect API running"}

    def test_schema_lists_models(self, client):
        body = client.get("/schema").json()
        assert {"product", "order", "farmerrequest", "account"} <= set(body)
        assert "price" in body["product"]

    def test_storage_report(self, client):
        body = client.get("/test").json()
        assert body["storage"] == "memory"
        assert "products" in body["slots"]


class TestAuth:

    def test_login_returns_role_profile(self, client):
        user = login(client, "john@greenvalley.com")
        assert user["type"] == "farmer"
        assert user["isLoggedIn"] is True
        assert user["farmName"] == "Green Valley Farm"
        assert client.get("/me").json()["email"] == "john@greenvalley.com"

    def test_bad_credentials(self, client):
        response = client.post("/auth/login", json={"email": "mike@email.com", "password": "nope123"})
        assert response.status_code == 401

    def test_logout_requires_new_login(self, as_buyer):
        assert as_buyer.post("/auth/logout").status_code == 200
        assert as_buyer.get("/me").status_code == 401

    def test_register_reports_validation_messages(self, client):
        response = client.post("/auth/register", json={"name": "X", "email": "bad", "password": "123"})
        assert response.status_code == 400
        assert response.json()["detail"] == ["Invalid email address", "Password must be at least 6 characters"]

    def test_register_pending_account(self, client):
        response = client.post("/auth/register", json={
            "name": "Nora Fields", "email": "nora@fields.com", "password": "secret1", "type": "farmer",
        })
        assert response.status_code == 200
        assert response.json()["status"] == "pending"
        assert login(client, "nora@fields.com", "secret1")["type"] == "farmer"

    def test_roles_are_enforced(self, as_farmer):
        assert as_farmer.get("/admin/dashboard").status_code == 403
        assert as_farmer.get("/cart").status_code == 403

    def test_anonymous_is_unauthorized(self, client):
        assert client.get("/cart").status_code == 401


class TestBuyerFlow:

    def test_checkout(self, as_buyer):
        assert as_buyer.post("/cart/items", json={"productId": 1}).status_code == 200
        assert as_buyer.post("/cart/items", json={"productId": 2}).status_code == 200
        assert as_buyer.get("/cart").json()["total"] == pytest.approx(4.65)

        response = as_buyer.post("/checkout")
        assert response.status_code == 200
        order = response.json()["data"]
        assert order["totalAmount"] == pytest.approx(4.65)
        assert order["status"] == "pending"

        assert as_buyer.get("/cart").json()["items"] == []
        assert len(as_buyer.get("/orders").json()) == 1

    def test_empty_checkout_is_refused(self, as_buyer):
        response = as_buyer.post("/checkout")
        assert response.status_code == 400
        assert as_buyer.get("/orders").json() == []

    def test_cancel_order(self, as_buyer):
        as_buyer.post("/cart/items", json={"productId": 3})
        order_id = as_buyer.post("/checkout").json()["data"]["orderId"]
        assert as_buyer.post(f"/orders/{order_id}/cancel").status_code == 200
        assert as_buyer.post(f"/orders/{order_id}/confirm").status_code == 400

    def test_unknown_product(self, as_buyer):
        assert as_buyer.post("/cart/items", json={"productId": 999}).status_code == 404

    def test_meal_kit_customization(self, as_buyer):
        kit = as_buyer.post("/meal-kits/3/ingredients", json={"ingredient": "Onions"}).json()
        assert kit["price"] == 16
        kit = as_buyer.delete("/meal-kits/3/ingredients/Potatoes").json()
        assert kit["price"] == 14
        kit = as_buyer.post("/meal-kits/3/customize", json={"vegan": True}).json()
        assert kit["dietType"] == "vegan"
        assert as_buyer.post("/meal-kits/3/subscribe", json={"frequency": "weekly"}).status_code == 200


class TestFarmerRequests:

    def test_submit_and_list(self, as_farmer, ctx):
        response = as_farmer.post("/farmer/requests", json={
            "product": "Lettuce", "request": "Update price to $3.40/kg", "productId": 4,
        })
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "pending"
        assert ctx.store.catalog.find(4).price == 3.00

        mine = as_farmer.get("/farmer/requests").json()
        assert {r["farmerEmail"] for r in mine} == {"john@greenvalley.com"}
        assert len(mine) == 3

    def test_add_request(self, as_farmer):
        response = as_farmer.post("/farmer/requests", json={"action": "add", "product": "Sweet Corn", "request": "200 ears"})
        assert response.json()["data"]["request"] == "Add new product: Sweet Corn (200 ears)"


class TestAdminFlow:

    def test_request_queue_and_approval(self, as_admin):
        queue = as_admin.get("/admin/requests").json()
        assert queue["pendingCount"] == 3 == len(queue["pending"])

        assert as_admin.post("/admin/requests/1/approve", json={}).status_code == 400
        assert as_admin.post("/admin/requests/1/approve", json={"confirm": True, "comment": "ok"}).status_code == 200

        assert as_admin.get("/products/1").json()["price"] == 3.0
        assert as_admin.get("/admin/requests").json()["pendingCount"] == 2
        assert as_admin.get("/admin/dashboard").json()["pendingRequests"] == 2

    def test_rejection_needs_reason(self, as_admin, ctx):
        assert as_admin.post("/admin/requests/2/reject", json={}).status_code == 400
        assert ctx.store.find_request(2).status == "pending"
        assert as_admin.post("/admin/requests/2/reject", json={"reason": "Duplicate"}).status_code == 200
        assert ctx.store.find_request(2).rejection_reason == "Duplicate"
        assert as_admin.post("/admin/requests/2/reject", json={"reason": "Again"}).status_code == 400

    def test_out_of_range_price_is_refused(self, client, ctx):
        login(client, "john@greenvalley.com")
        submitted = client.post("/farmer/requests", json={"product": "Lettuce", "request": "New price $" + "9" * 400})
        request_id = submitted.json()["data"]["id"]

        login(client, DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD)
        response = client.post(f"/admin/requests/{request_id}/approve", json={"confirm": True})
        assert response.status_code == 400
        assert ctx.store.find_request(request_id).status == "pending"
        assert ctx.store.catalog.find(4).price == 3.0

    def test_missing_request(self, as_admin):
        assert as_admin.post("/admin/requests/99/approve", json={"confirm": True}).status_code == 404

    def test_product_crud(self, as_admin):
        created = as_admin.post("/admin/products", json={"name": "Honey", "category": "Pantry", "price": 8.5}).json()["data"]
        product_id = created["productId"]
        assert created["farmer"] == "Admin Added"

        patched = as_admin.patch(f"/admin/products/{product_id}", json={"price": 9.0})
        assert patched.json()["data"]["price"] == 9.0
        assert as_admin.patch(f"/admin/products/{product_id}", json={"price": "abc"}).status_code == 400

        assert as_admin.delete(f"/admin/products/{product_id}").status_code == 200
        assert as_admin.get(f"/products/{product_id}").status_code == 404

    def test_user_management(self, as_admin):
        pending = as_admin.get("/admin/users", params={"status": "pending"}).json()
        assert [u["name"] for u in pending] == ["Lisa Shopper", "David Miller"]
        assert all("passwordHash" not in u for u in pending)

        assert as_admin.post("/admin/users/4/approve").status_code == 200
        assert as_admin.post("/admin/users/3/ban", json={}).status_code == 400
        assert as_admin.post("/admin/users/3/ban", json={"reason": "Spam"}).status_code == 200
        assert as_admin.post("/admin/users/6/unban").status_code == 200

    def test_weather_alerts(self, as_admin):
        active = len(as_admin.get("/weather-alerts").json())
        created = as_admin.post("/admin/weather-alerts", json={
            "type": "Hail", "severity": "High", "message": "Hail tonight", "regions": ["North"],
        }).json()["data"]
        assert len(as_admin.get("/weather-alerts").json()) == active + 1
        assert as_admin.delete(f"/admin/weather-alerts/{created['id']}").status_code == 200
        assert len(as_admin.get("/weather-alerts").json()) == active

    def test_market_prices(self, as_admin):
        assert as_admin.patch("/admin/market-prices/Tomatoes", json={"price": "abc"}).status_code == 400
        assert as_admin.patch("/admin/market-prices/Tomatoes", json={"price": 3.1}).status_code == 200
        prices = {p["product"]: p["price"] for p in as_admin.get("/market-prices").json()}
        assert prices["Tomatoes"] == 3.1

    def test_monitor(self, as_admin):
        body = as_admin.get("/admin/monitor").json()
        assert set(body["stats"]) >= {"onlineUsers", "serverLoad", "dailyOrders", "storageUsed"}
        assert len(body["logs"]) == 8

    def test_farms(self, as_admin):
        assert len(as_admin.get("/admin/farms").json()) == 5
        response = as_admin.patch("/admin/farms/2", json={"size": "130 acres"})
        assert response.json()["data"]["size"] == "130 acres"


class TestForum:

    def test_post_and_answer(self, as_farmer):
        post = as_farmer.post("/forum/posts", json={"question": "Best cover crop for clay?"}).json()
        assert post["author"] == "John Farmer"
        answered = as_farmer.post(f"/forum/posts/{post['id']}/answers", json={"answer": "Try clover."}).json()
        assert answered["answers"] == ["Try clover."]
        assert as_farmer.post("/forum/posts/999/answers", json={"answer": "?"}).status_code == 404
