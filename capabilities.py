"""
Role capabilities

What a logged-in user may do depends only on its `type` tag. Each role gets
its own capability class; `capabilities_for` picks the right one.
"""
import logging
import time
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from monitoring import PlatformMonitor
from schemas import (
    ActionResult,
    Admin,
    Buyer,
    Farm,
    Farmer,
    MarketPrice,
    Order,
    PlatformStats,
    Product,
    RequestedChange,
    User,
    WeatherAlert,
)
from store import normalize_fields
from validation import parse_amount
from workflow import RequestWorkflow

logger = logging.getLogger(__name__)


def _error_message(error: Exception) -> str:
    if isinstance(error, ValidationError):
        return "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in error.errors())
    return str(error)


class FarmerCapabilities:
    """Farmers only ever produce requests; the catalog is changed by admins."""

    def __init__(self, user: Farmer, store, workflow: Optional[RequestWorkflow] = None):
        self.user = user
        self.store = store
        self.workflow = workflow or RequestWorkflow(store)

    def request_add_product(self, product: str, details: str = "") -> ActionResult:
        description = f"Add new product: {product}"
        if details:
            description = f"{description} ({details})"
        return self.workflow.submit(self.user, product, description, change=RequestedChange(kind="other"))

    def request_update_product(
        self,
        product: str,
        request: str,
        product_id: Optional[int] = None,
        change: Optional[RequestedChange] = None,
    ) -> ActionResult:
        return self.workflow.submit(self.user, product, request, product_id=product_id, change=change)

    def request_remove_product(self, product: str, reason: str = "", product_id: Optional[int] = None) -> ActionResult:
        description = "Remove product from catalog"
        if reason:
            description = f"{description}: {reason}"
        return self.workflow.submit(
            self.user, product, description, product_id=product_id, change=RequestedChange(kind="other")
        )

    def add_owned_product(self, product: Product) -> Product:
        self.user.products = [*self.user.products, product]
        return product

    def get_weather_alerts(self) -> List[WeatherAlert]:
        return self.store.active_weather_alerts()


class BuyerCapabilities:
    """Cart and orders live on the Buyer object itself."""

    def __init__(self, user: Buyer, store):
        self.user = user
        self.store = store

    def add_to_cart(self, product_id: int) -> ActionResult:
        product = self.store.catalog.find(product_id)
        if product is None:
            return ActionResult(success=False, message="Product not found")
        if product.status != "available":
            return ActionResult(success=False, message=f"{product.name} is not available")
        self.user.cart = [*self.user.cart, product.model_copy()]
        return ActionResult(success=True, message=f"{product.name} added to cart", data=self.user.cart)

    def remove_from_cart(self, product_id: int) -> ActionResult:
        for i, item in enumerate(self.user.cart):
            if item.product_id == product_id:
                self.user.cart = self.user.cart[:i] + self.user.cart[i + 1:]
                return ActionResult(success=True, message=f"{item.name} removed from cart", data=self.user.cart)
        return ActionResult(success=False, message="Product not in cart")

    def cart_total(self) -> float:
        return round(sum(item.price for item in self.user.cart), 2)

    def _next_order_id(self) -> int:
        order_id = int(time.time() * 1000)
        last = max((o.order_id for o in self.user.orders), default=0)
        return max(order_id, last + 1)

    def checkout(self) -> ActionResult:
        if not self.user.cart:
            return ActionResult(success=False, message="Your cart is empty")

        order = Order(order_id=self._next_order_id(), items=[item.model_copy() for item in self.user.cart])
        self.user.orders = [*self.user.orders, order]
        self.user.cart = []
        self.user.notifications = [
            *self.user.notifications,
            f"Order #{order.order_id} placed (${order.total_amount:.2f})",
        ]
        logger.info(f"Buyer {self.user.email} placed order {order.order_id} for {order.total_amount}")
        return ActionResult(success=True, message="Order placed", data=order)

    def find_order(self, order_id: int) -> Optional[Order]:
        return next((o for o in self.user.orders if o.order_id == order_id), None)

    def cancel_order(self, order_id: int) -> ActionResult:
        order = self.find_order(order_id)
        if order is None:
            return ActionResult(success=False, message="Order not found")
        if not order.cancel():
            return ActionResult(success=False, message=f"Order already {order.status}")
        return ActionResult(success=True, message="Order cancelled", data=order)

    def confirm_order(self, order_id: int) -> ActionResult:
        order = self.find_order(order_id)
        if order is None:
            return ActionResult(success=False, message="Order not found")
        if not order.confirm():
            return ActionResult(success=False, message=f"Order already {order.status}")
        return ActionResult(success=True, message="Order confirmed", data=order)

    def subscribe_meal_kit(self, meal_kit_id: int, frequency: Optional[str] = None) -> ActionResult:
        meal_kit = self.store.find_meal_kit(meal_kit_id)
        if meal_kit is None:
            return ActionResult(success=False, message="Meal kit not found")
        if not meal_kit.subscribe(frequency):
            return ActionResult(success=False, message=f"{meal_kit.name} is already subscribed")
        self.user.notifications = [
            *self.user.notifications,
            f"Subscribed to {meal_kit.name} ({meal_kit.delivery_frequency})",
        ]
        return ActionResult(success=True, message=f"Subscribed to {meal_kit.name}", data=meal_kit)


class AdminCapabilities:
    """Direct catalog edits, publishing, and sole authority over requests and accounts."""

    def __init__(
        self,
        user: Admin,
        store,
        workflow: Optional[RequestWorkflow] = None,
        monitor: Optional[PlatformMonitor] = None,
    ):
        self.user = user
        self.store = store
        self.workflow = workflow or RequestWorkflow(store)
        self.monitor = monitor or PlatformMonitor()

    # ----------------------
    # Catalog
    # ----------------------
    def add_product(self, product_data: Mapping[str, Any]) -> ActionResult:
        try:
            product = self.store.catalog.add(product_data)
        except ValueError as e:
            return ActionResult(success=False, message=_error_message(e))
        logger.info(f"Admin {self.user.name} added product {product.product_id} ({product.name})")
        return ActionResult(success=True, message=f'Product "{product.name}" added to catalog!', data=product)

    def update_product(self, product_id: int, updates: Mapping[str, Any]) -> ActionResult:
        try:
            product = self.store.catalog.update(product_id, updates)
        except ValueError as e:
            return ActionResult(success=False, message=_error_message(e))
        if product is None:
            return ActionResult(success=False, message="Product not found")
        logger.info(f"Admin {self.user.name} updated product {product_id}: {dict(updates)}")
        return ActionResult(success=True, message="Product updated", data=product)

    def remove_product(self, product_id: int) -> ActionResult:
        if not self.store.catalog.remove(product_id):
            return ActionResult(success=False, message="Product not found")
        logger.info(f"Admin {self.user.name} removed product {product_id}")
        return ActionResult(success=True, message="Product deleted from catalog")

    def update_farm_info(self, farm_id: int, updates: Mapping[str, Any]) -> ActionResult:
        farm = self.store.find_farm(farm_id)
        if farm is None:
            return ActionResult(success=False, message="Farm not found")
        try:
            changes = normalize_fields(Farm, updates)
            changes.pop("farm_id", None)
            updated = Farm.model_validate({**farm.model_dump(), **changes})
        except ValueError as e:
            return ActionResult(success=False, message=_error_message(e))
        index = self.store.farms.index(farm)
        self.store.farms[index] = updated
        logger.info(f"Admin {self.user.name} updated farm {farm_id}: {dict(updates)}")
        return ActionResult(success=True, message=f"Farm information updated for {updated.farm_name}", data=updated)

    # ----------------------
    # Market prices and weather
    # ----------------------
    def update_market_price(self, product: str, new_price: Any) -> ActionResult:
        market_price = self.store.find_market_price(product)
        if market_price is None:
            return ActionResult(success=False, message="Market price entry not found")
        price = parse_amount(new_price)
        if price is None:
            return ActionResult(success=False, message=f"Invalid price: {new_price!r}")
        market_price.price = price
        market_price.updated = "Today"
        logger.info(f"Admin {self.user.name} updated {product} price to {price}")
        return ActionResult(success=True, message=f"{product} price updated to ${price}", data=market_price)

    def add_price_entry(self, product: str, market: str, price: Any, trend: str) -> ActionResult:
        if not (product and market and trend) or price in (None, ""):
            return ActionResult(success=False, message="Please fill all fields")
        amount = parse_amount(price)
        if amount is None:
            return ActionResult(success=False, message=f"Invalid price: {price!r}")
        try:
            entry = MarketPrice(product=product, market=market, price=amount, trend=trend)
        except ValidationError as e:
            return ActionResult(success=False, message=_error_message(e))
        self.store.market_prices.append(entry)
        logger.info(f"Admin {self.user.name} added price entry for {product} at {market}")
        return ActionResult(success=True, message="New price entry added", data=entry)

    def publish_weather_alert(
        self,
        alert_type: str,
        severity: str,
        message: str,
        regions: Iterable[str] = (),
        alert_date: Optional[date] = None,
    ) -> ActionResult:
        try:
            alert = self.store.publish_weather_alert(alert_type, severity, message, regions, alert_date)
        except ValidationError as e:
            return ActionResult(success=False, message=_error_message(e))
        logger.info(f"Admin {self.user.name} published {severity} {alert_type} alert to {alert.regions}")
        return ActionResult(
            success=True,
            message=f"{severity} {alert_type} alert published to {len(alert.regions)} region(s)!",
            data=alert,
        )

    def remove_weather_alert(self, alert_id: int) -> ActionResult:
        if not self.store.deactivate_weather_alert(alert_id):
            return ActionResult(success=False, message="Active weather alert not found")
        logger.info(f"Admin {self.user.name} deactivated weather alert {alert_id}")
        return ActionResult(success=True, message="Weather alert removed")

    # ----------------------
    # Farmer requests
    # ----------------------
    def approve_request(self, request_id: int, confirmed: bool = False, comment: str = "") -> ActionResult:
        return self.workflow.approve(request_id, confirmed=confirmed, comment=comment)

    def reject_request(self, request_id: int, reason: Optional[str]) -> ActionResult:
        return self.workflow.reject(request_id, reason)

    # ----------------------
    # Accounts
    # ----------------------
    def _transition_user(self, user_id: int, allowed_from: Iterable[str], status: str, reason: Optional[str] = None) -> ActionResult:
        account = self.store.users.find(user_id)
        if account is None:
            return ActionResult(success=False, message="User not found")
        if account.status not in allowed_from:
            return ActionResult(success=False, message=f"User {account.name} is {account.status}")
        account.status = status
        self.store.users.save()
        logger.info(f"Admin {self.user.name} set user {user_id} to {status}. Reason: {reason or '-'}")
        return ActionResult(success=True, message=f"User {account.name} is now {status}", data=account)

    def approve_user(self, user_id: int) -> ActionResult:
        return self._transition_user(user_id, ("pending",), "active")

    def reject_user(self, user_id: int, reason: Optional[str]) -> ActionResult:
        if not reason or not reason.strip():
            return ActionResult(success=False, message="A rejection reason is required")
        return self._transition_user(user_id, ("pending",), "rejected", reason)

    def ban_user(self, user_id: int, reason: Optional[str]) -> ActionResult:
        if not reason or not reason.strip():
            return ActionResult(success=False, message="A ban reason is required")
        account = self.store.users.find(user_id)
        if account is not None and account.type == "admin":
            return ActionResult(success=False, message="Admin accounts cannot be banned")
        return self._transition_user(user_id, ("active",), "banned", reason)

    def unban_user(self, user_id: int) -> ActionResult:
        return self._transition_user(user_id, ("banned",), "active")

    # ----------------------
    # Dashboard
    # ----------------------
    def monitor_platform(self) -> PlatformStats:
        return self.monitor.current()

    def dashboard_stats(self) -> Dict[str, int]:
        return {
            "totalUsers": len(self.store.users),
            "pendingUsers": self.store.users.count_by_status("pending"),
            "pendingRequests": self.workflow.pending_count(),
            "activeProducts": len(self.store.catalog),
            "activeAlerts": len(self.store.active_weather_alerts()),
        }


def capabilities_for(
    user: User,
    store,
    workflow: Optional[RequestWorkflow] = None,
    monitor: Optional[PlatformMonitor] = None,
):
    workflow = workflow or RequestWorkflow(store)
    factories = {
        "farmer": lambda: FarmerCapabilities(user, store, workflow),
        "buyer": lambda: BuyerCapabilities(user, store),
        "admin": lambda: AdminCapabilities(user, store, workflow, monitor),
    }
    return factories[user.type]()
