import logging
import os
from datetime import date as date_type
from typing import Any, Dict, List, Literal, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from capabilities import AdminCapabilities, BuyerCapabilities, FarmerCapabilities
from database import DATABASE_NAME, get_storage
from monitoring import PeriodicTask, PlatformMonitor
from schemas import (
    AccountRecord,
    ActionResult,
    Farm,
    FarmerRequest,
    MarketPrice,
    MealKit,
    Order,
    Product,
    RequestedChange,
    User,
    WeatherAlert,
)
from session import Session
from store import MarketplaceStore, profile_for
from workflow import RequestWorkflow

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

MONITOR_INTERVAL_SECONDS = float(os.getenv("MONITOR_INTERVAL_SECONDS", "30"))
SEED_DEMO_DATA = os.getenv("SEED_DEMO_DATA", "1") not in ("0", "false", "False")

app = FastAPI(title="FarmConnect API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----------------------
# Application context
# ----------------------
class AppContext:
    def __init__(self, storage, with_demo_data: bool = True, monitor: Optional[PlatformMonitor] = None):
        self.storage = storage
        self.store = MarketplaceStore.load(storage, with_demo_data=with_demo_data)
        self.session = Session(storage)
        self.workflow = RequestWorkflow(self.store)
        self.monitor = monitor or PlatformMonitor()
        self.monitor_task = PeriodicTask(MONITOR_INTERVAL_SECONDS, self.monitor.sample, name="platform-monitor")


context = AppContext(get_storage(), with_demo_data=SEED_DEMO_DATA)


def get_context() -> AppContext:
    return context


@app.on_event("startup")
async def start_monitoring():
    context.monitor.sample()
    context.monitor_task.start()


@app.on_event("shutdown")
async def stop_monitoring():
    await context.monitor_task.stop()


# ----------------------
# Helpers
# ----------------------
def unwrap(result: ActionResult) -> ActionResult:
    if result.success:
        return result
    status = 404 if "not found" in result.message.lower() else 400
    raise HTTPException(status_code=status, detail=result.message)


def get_current_user(ctx: AppContext = Depends(get_context)) -> User:
    user = ctx.session.get_current_user()
    if user is None:
        raise HTTPException(status_code=401, detail="Not logged in")
    return user


def require_role(role: str):
    def dependency(user: User = Depends(get_current_user)) -> User:
        if user.type != role:
            raise HTTPException(status_code=403, detail=f"Only {role}s can do this")
        return user
    return dependency


def farmer_caps(user: User = Depends(require_role("farmer")), ctx: AppContext = Depends(get_context)) -> FarmerCapabilities:
    return FarmerCapabilities(user, ctx.store, ctx.workflow)


def buyer_caps(user: User = Depends(require_role("buyer")), ctx: AppContext = Depends(get_context)) -> BuyerCapabilities:
    return BuyerCapabilities(user, ctx.store)


def admin_caps(user: User = Depends(require_role("admin")), ctx: AppContext = Depends(get_context)) -> AdminCapabilities:
    return AdminCapabilities(user, ctx.store, ctx.workflow, ctx.monitor)


# ----------------------
# Health & test
# ----------------------
@app.get("/")
def read_root():
    return {"message": "FarmConnect API running"}


@app.get("/test")
def test_database(ctx: AppContext = Depends(get_context)):
    response = {
        "backend": "✅ Running",
        "storage": ctx.storage.backend,
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": DATABASE_NAME,
        "connection_status": "Not Connected",
        "slots": []
    }
    try:
        response["slots"] = ctx.storage.keys()[:10]
        response["connection_status"] = "Connected"
    except Exception as e:
        response["connection_status"] = f"⚠️ Error: {str(e)[:80]}"
    return response


@app.get("/schema")
def get_schema():
    def model_fields(model: BaseModel) -> Dict[str, Any]:
        return {name: str(field.annotation) for name, field in model.model_fields.items()}

    return {
        "product": model_fields(Product),
        "order": model_fields(Order),
        "mealkit": model_fields(MealKit),
        "farm": model_fields(Farm),
        "weatheralert": model_fields(WeatherAlert),
        "farmerrequest": model_fields(FarmerRequest),
        "account": model_fields(AccountRecord),
    }


# ----------------------
# Auth routes
# ----------------------
class RegisterBody(BaseModel):
    name: str
    email: str
    password: str
    type: str = Field("buyer", pattern="^(farmer|buyer)$")
    phone: Optional[str] = None
    farmName: Optional[str] = None
    farmType: Optional[str] = None


@app.post("/auth/register")
def register(body: RegisterBody, ctx: AppContext = Depends(get_context)):
    result = ctx.store.users.register(body.model_dump())
    if not result.success:
        raise HTTPException(status_code=400, detail=result.data or result.message)
    account = result.data
    return {"id": account.id, "type": account.type, "name": account.name, "status": account.status}


class LoginBody(BaseModel):
    email: str
    password: str


@app.post("/auth/login")
def login(body: LoginBody, ctx: AppContext = Depends(get_context)):
    result = ctx.store.users.authenticate(body.email, body.password)
    if not result.success:
        raise HTTPException(status_code=401, detail=result.message)
    user = profile_for(result.data)
    ctx.session.login(user)
    return user


@app.post("/auth/logout")
def logout(ctx: AppContext = Depends(get_context)):
    ctx.session.logout()
    return {"loggedOut": True}


@app.get("/me")
def me(current: User = Depends(get_current_user)):
    return current


# ----------------------
# Catalog
# ----------------------
@app.get("/products", response_model=List[Product])
def list_products(
    q: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    organic: Optional[bool] = Query(None),
    ctx: AppContext = Depends(get_context),
):
    products = ctx.store.catalog.search(q) if q else ctx.store.catalog.all()
    if category:
        products = [p for p in products if p.category == category]
    if organic is not None:
        products = [p for p in products if p.organic == organic]
    return products


@app.get("/products/{product_id}", response_model=Product)
def get_product(product_id: int, ctx: AppContext = Depends(get_context)):
    product = ctx.store.catalog.find(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


# ----------------------
# Buyer: cart & orders
# ----------------------
class CartItemBody(BaseModel):
    productId: int


@app.get("/cart")
def get_cart(caps: BuyerCapabilities = Depends(buyer_caps)):
    return {"items": caps.user.cart, "total": caps.cart_total()}


@app.post("/cart/items")
def add_to_cart(body: CartItemBody, caps: BuyerCapabilities = Depends(buyer_caps), ctx: AppContext = Depends(get_context)):
    result = unwrap(caps.add_to_cart(body.productId))
    ctx.session.refresh(caps.user)
    return result


@app.delete("/cart/items/{product_id}")
def remove_from_cart(product_id: int, caps: BuyerCapabilities = Depends(buyer_caps), ctx: AppContext = Depends(get_context)):
    result = unwrap(caps.remove_from_cart(product_id))
    ctx.session.refresh(caps.user)
    return result


@app.post("/checkout")
def checkout(caps: BuyerCapabilities = Depends(buyer_caps), ctx: AppContext = Depends(get_context)):
    result = unwrap(caps.checkout())
    ctx.session.refresh(caps.user)
    return result


@app.get("/orders", response_model=List[Order])
def my_orders(caps: BuyerCapabilities = Depends(buyer_caps)):
    return sorted(caps.user.orders, key=lambda o: o.order_date, reverse=True)


@app.post("/orders/{order_id}/confirm")
def confirm_order(order_id: int, caps: BuyerCapabilities = Depends(buyer_caps), ctx: AppContext = Depends(get_context)):
    result = unwrap(caps.confirm_order(order_id))
    ctx.session.refresh(caps.user)
    return result


@app.post("/orders/{order_id}/cancel")
def cancel_order(order_id: int, caps: BuyerCapabilities = Depends(buyer_caps), ctx: AppContext = Depends(get_context)):
    result = unwrap(caps.cancel_order(order_id))
    ctx.session.refresh(caps.user)
    return result


@app.get("/notifications")
def notifications(caps: BuyerCapabilities = Depends(buyer_caps)):
    return caps.user.notifications


# ----------------------
# Meal kits
# ----------------------
class IngredientBody(BaseModel):
    ingredient: str = Field(..., min_length=1)


class CustomizeBody(BaseModel):
    vegetarian: bool = False
    vegan: bool = False


class SubscribeBody(BaseModel):
    frequency: Optional[str] = None


def get_meal_kit(meal_kit_id: int, ctx: AppContext = Depends(get_context)) -> MealKit:
    meal_kit = ctx.store.find_meal_kit(meal_kit_id)
    if meal_kit is None:
        raise HTTPException(status_code=404, detail="Meal kit not found")
    return meal_kit


@app.get("/meal-kits", response_model=List[MealKit])
def list_meal_kits(ctx: AppContext = Depends(get_context)):
    return ctx.store.meal_kits


@app.post("/meal-kits/{meal_kit_id}/ingredients", response_model=MealKit)
def add_ingredient(body: IngredientBody, meal_kit: MealKit = Depends(get_meal_kit), _: User = Depends(require_role("buyer"))):
    meal_kit.add_ingredient(body.ingredient)
    return meal_kit


@app.delete("/meal-kits/{meal_kit_id}/ingredients/{ingredient}", response_model=MealKit)
def remove_ingredient(ingredient: str, meal_kit: MealKit = Depends(get_meal_kit), _: User = Depends(require_role("buyer"))):
    meal_kit.remove_ingredient(ingredient)
    return meal_kit


@app.post("/meal-kits/{meal_kit_id}/customize", response_model=MealKit)
def customize_meal_kit(body: CustomizeBody, meal_kit: MealKit = Depends(get_meal_kit), _: User = Depends(require_role("buyer"))):
    meal_kit.customize(vegetarian=body.vegetarian, vegan=body.vegan)
    return meal_kit


@app.post("/meal-kits/{meal_kit_id}/subscribe")
def subscribe_meal_kit(
    meal_kit_id: int,
    body: SubscribeBody,
    caps: BuyerCapabilities = Depends(buyer_caps),
    ctx: AppContext = Depends(get_context),
):
    result = unwrap(caps.subscribe_meal_kit(meal_kit_id, body.frequency))
    ctx.session.refresh(caps.user)
    return result


# ----------------------
# Weather, prices, forum
# ----------------------
@app.get("/weather-alerts", response_model=List[WeatherAlert])
def active_weather_alerts(ctx: AppContext = Depends(get_context)):
    return ctx.store.active_weather_alerts()


@app.get("/market-prices", response_model=List[MarketPrice])
def market_prices(ctx: AppContext = Depends(get_context)):
    return ctx.store.market_prices


class PostBody(BaseModel):
    question: str = Field(..., min_length=1)
    category: str = "General"


class AnswerBody(BaseModel):
    answer: str = Field(..., min_length=1)


@app.get("/forum/posts")
def forum_posts(ctx: AppContext = Depends(get_context)):
    return ctx.store.forum.all()


@app.post("/forum/posts")
def create_post(body: PostBody, current: User = Depends(get_current_user), ctx: AppContext = Depends(get_context)):
    post = ctx.store.forum.add_post(body.question, author=current.name, category=body.category)
    if post is None:
        raise HTTPException(status_code=400, detail="Question cannot be empty")
    return post


@app.post("/forum/posts/{post_id}/answers")
def answer_post(post_id: int, body: AnswerBody, _: User = Depends(get_current_user), ctx: AppContext = Depends(get_context)):
    post = ctx.store.forum.add_answer(post_id, body.answer)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


# ----------------------
# Farmer dashboard
# ----------------------
class FarmerRequestBody(BaseModel):
    action: Literal["add", "update", "remove"] = "update"
    product: str = Field(..., min_length=1)
    request: str = ""
    productId: Optional[int] = None
    change: Optional[RequestedChange] = None


@app.post("/farmer/requests")
def submit_request(body: FarmerRequestBody, caps: FarmerCapabilities = Depends(farmer_caps)):
    if body.action == "add":
        result = caps.request_add_product(body.product, body.request)
    elif body.action == "remove":
        result = caps.request_remove_product(body.product, body.request, product_id=body.productId)
    else:
        result = caps.request_update_product(body.product, body.request, product_id=body.productId, change=body.change)
    return unwrap(result)


@app.get("/farmer/requests", response_model=List[FarmerRequest])
def my_requests(caps: FarmerCapabilities = Depends(farmer_caps)):
    return [r for r in caps.workflow.requests if r.farmer_email == caps.user.email]


@app.get("/farmer/weather-alerts", response_model=List[WeatherAlert])
def farmer_weather_alerts(caps: FarmerCapabilities = Depends(farmer_caps)):
    return caps.get_weather_alerts()


# ----------------------
# Admin dashboard
# ----------------------
@app.get("/admin/dashboard")
def admin_dashboard(caps: AdminCapabilities = Depends(admin_caps)):
    return caps.dashboard_stats()


@app.get("/admin/monitor")
def admin_monitor(caps: AdminCapabilities = Depends(admin_caps)):
    return {"stats": caps.monitor_platform(), "logs": caps.monitor.recent_logs()}


class ProductBody(BaseModel):
    name: str = Field(..., min_length=1)
    category: str = "Vegetables"
    price: float = Field(..., ge=0)
    quantity: float = Field(0, ge=0)
    unit: str = "kg"
    farmer: Optional[str] = "Admin Added"
    organic: bool = False
    harvestDate: Optional[date_type] = None


@app.post("/admin/products")
def admin_add_product(body: ProductBody, caps: AdminCapabilities = Depends(admin_caps)):
    return unwrap(caps.add_product(body.model_dump(exclude_none=True)))


@app.patch("/admin/products/{product_id}")
def admin_update_product(product_id: int, updates: Dict[str, Any] = Body(...), caps: AdminCapabilities = Depends(admin_caps)):
    return unwrap(caps.update_product(product_id, updates))


@app.delete("/admin/products/{product_id}")
def admin_remove_product(product_id: int, caps: AdminCapabilities = Depends(admin_caps)):
    return unwrap(caps.remove_product(product_id))


@app.get("/admin/users", response_model=List[AccountRecord])
def admin_users(
    q: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    caps: AdminCapabilities = Depends(admin_caps),
):
    return caps.store.users.filter(search=q, user_type=type, status=status)


class ReasonBody(BaseModel):
    reason: Optional[str] = None


@app.post("/admin/users/{user_id}/approve")
def admin_approve_user(user_id: int, caps: AdminCapabilities = Depends(admin_caps)):
    return unwrap(caps.approve_user(user_id))


@app.post("/admin/users/{user_id}/reject")
def admin_reject_user(user_id: int, body: ReasonBody, caps: AdminCapabilities = Depends(admin_caps)):
    return unwrap(caps.reject_user(user_id, body.reason))


@app.post("/admin/users/{user_id}/ban")
def admin_ban_user(user_id: int, body: ReasonBody, caps: AdminCapabilities = Depends(admin_caps)):
    return unwrap(caps.ban_user(user_id, body.reason))


@app.post("/admin/users/{user_id}/unban")
def admin_unban_user(user_id: int, caps: AdminCapabilities = Depends(admin_caps)):
    return unwrap(caps.unban_user(user_id))


@app.get("/admin/requests")
def admin_requests(caps: AdminCapabilities = Depends(admin_caps)):
    pending = caps.workflow.pending()
    return {"pending": pending, "pendingCount": len(pending)}


class ApproveBody(BaseModel):
    confirm: bool = False
    comment: str = ""


@app.post("/admin/requests/{request_id}/approve")
def admin_approve_request(request_id: int, body: ApproveBody, caps: AdminCapabilities = Depends(admin_caps)):
    return unwrap(caps.approve_request(request_id, confirmed=body.confirm, comment=body.comment))


@app.post("/admin/requests/{request_id}/reject")
def admin_reject_request(request_id: int, body: ReasonBody, caps: AdminCapabilities = Depends(admin_caps)):
    return unwrap(caps.reject_request(request_id, body.reason))


class WeatherAlertBody(BaseModel):
    type: str = Field(..., min_length=1)
    severity: Literal["Low", "Medium", "High", "Critical"]
    message: str = Field(..., min_length=1)
    regions: List[str] = Field(default_factory=list)
    date: Optional[date_type] = None


@app.post("/admin/weather-alerts")
def admin_publish_alert(body: WeatherAlertBody, caps: AdminCapabilities = Depends(admin_caps)):
    return unwrap(caps.publish_weather_alert(body.type, body.severity, body.message, body.regions, body.date))


@app.delete("/admin/weather-alerts/{alert_id}")
def admin_remove_alert(alert_id: int, caps: AdminCapabilities = Depends(admin_caps)):
    return unwrap(caps.remove_weather_alert(alert_id))


class PriceEntryBody(BaseModel):
    product: str
    market: str
    price: Any = None
    trend: str = "stable"


class PriceUpdateBody(BaseModel):
    price: Any = None


@app.post("/admin/market-prices")
def admin_add_price(body: PriceEntryBody, caps: AdminCapabilities = Depends(admin_caps)):
    return unwrap(caps.add_price_entry(body.product, body.market, body.price, body.trend))


@app.patch("/admin/market-prices/{product}")
def admin_update_price(product: str, body: PriceUpdateBody, caps: AdminCapabilities = Depends(admin_caps)):
    return unwrap(caps.update_market_price(product, body.price))


@app.get("/admin/farms", response_model=List[Farm])
def admin_farms(caps: AdminCapabilities = Depends(admin_caps)):
    return caps.store.farms


@app.patch("/admin/farms/{farm_id}")
def admin_update_farm(farm_id: int, updates: Dict[str, Any] = Body(...), caps: AdminCapabilities = Depends(admin_caps)):
    return unwrap(caps.update_farm_info(farm_id, updates))


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
