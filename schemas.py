"""
Schemas for FarmConnect

Each Pydantic model is either an entity held by the marketplace store or a
record persisted in one of the storage slots. Attribute names are snake_case,
serialized names are camelCase (productId, isLoggedIn, ...).
"""
from datetime import date as date_type, datetime, timezone
from typing import Annotated, Any, ClassVar, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, computed_field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


# Catalog
class Product(CamelModel):
    product_id: int = Field(..., ge=1, description="Unique product id")
    name: str = Field(..., min_length=1, description="Product name, e.g. Organic Tomatoes")
    category: str = Field("Vegetables")
    quantity: float = Field(0, ge=0, description="Available quantity in `unit`")
    price: float = Field(..., ge=0, allow_inf_nan=False, description="Price per unit in USD")
    unit: str = Field("kg")
    status: Literal["available", "unavailable"] = Field("available")
    harvest_date: Optional[date_type] = None
    farmer: Optional[str] = Field(None, description="Owning farm or farmer label")
    organic: bool = False


class Farm(CamelModel):
    farm_id: int = Field(..., ge=1)
    farm_name: str
    farm_location: str = ""
    farm_type: Optional[str] = None
    size: Optional[str] = None
    farmer: Optional[str] = None
    products: List[Product] = Field(default_factory=list)


class MealKit(CamelModel):
    meal_kit_id: int = Field(..., ge=1)
    name: str
    ingredients: List[str] = Field(default_factory=list)
    diet_type: str = "standard"
    status: Literal["available", "subscribed"] = "available"
    delivery_frequency: str = "weekly"

    BASE_PRICE: ClassVar[int] = 10
    PRICE_PER_INGREDIENT: ClassVar[int] = 2

    def calculate_price(self) -> float:
        return self.BASE_PRICE + self.PRICE_PER_INGREDIENT * len(self.ingredients)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def price(self) -> float:
        return self.calculate_price()

    def add_ingredient(self, ingredient: str) -> float:
        self.ingredients = [*self.ingredients, ingredient]
        return self.price

    def remove_ingredient(self, ingredient: str) -> float:
        """Drop the first matching ingredient; unknown ingredients are ignored."""
        if ingredient in self.ingredients:
            remaining = list(self.ingredients)
            remaining.remove(ingredient)
            self.ingredients = remaining
        return self.price

    def customize(self, vegetarian: bool = False, vegan: bool = False) -> str:
        # vegan implies vegetarian, so it takes precedence
        if vegan:
            self.diet_type = "vegan"
        elif vegetarian:
            self.diet_type = "vegetarian"
        else:
            self.diet_type = "standard"
        return self.diet_type

    def subscribe(self, frequency: Optional[str] = None) -> bool:
        if self.status == "subscribed":
            return False
        if frequency:
            self.delivery_frequency = frequency
        self.status = "subscribed"
        return True


OrderItem = Union[Product, MealKit]


class Order(CamelModel):
    order_id: int
    items: List[OrderItem] = Field(default_factory=list)
    status: Literal["pending", "confirmed", "cancelled"] = "pending"
    order_date: datetime = Field(default_factory=utc_now)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_amount(self) -> float:
        return round(sum(item.price for item in self.items), 2)

    def add_product(self, product: Product) -> float:
        self.items = [*self.items, product]
        return self.total_amount

    def add_meal_kit(self, meal_kit: MealKit) -> float:
        self.items = [*self.items, meal_kit]
        return self.total_amount

    def _transition(self, status: str) -> bool:
        if self.status != "pending":
            return False
        self.status = status
        return True

    def confirm(self) -> bool:
        return self._transition("confirmed")

    def cancel(self) -> bool:
        return self._transition("cancelled")


# Users: a tagged union on `type`
class UserBase(CamelModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address")
    is_logged_in: bool = False


class Farmer(UserBase):
    type: Literal["farmer"] = Field("farmer", frozen=True)
    farm_name: Optional[str] = None
    farm_type: Optional[str] = None
    products: List[Product] = Field(default_factory=list)


class Buyer(UserBase):
    type: Literal["buyer"] = Field("buyer", frozen=True)
    cart: List[Product] = Field(default_factory=list)
    orders: List[Order] = Field(default_factory=list)
    notifications: List[str] = Field(default_factory=list)


class Admin(UserBase):
    type: Literal["admin"] = Field("admin", frozen=True)
    permissions: List[str] = Field(default_factory=lambda: ["all"])


User = Annotated[Union[Farmer, Buyer, Admin], Field(discriminator="type")]

UserType = Literal["farmer", "buyer", "admin"]
AccountStatus = Literal["active", "pending", "rejected", "banned"]


class AccountRecord(CamelModel):
    id: int = Field(..., ge=1)
    type: UserType
    name: str
    email: EmailStr
    password_hash: str = Field(..., exclude=True, repr=False)
    phone: Optional[str] = None
    status: AccountStatus = "pending"
    registered: date_type = Field(default_factory=date_type.today)
    farm_name: Optional[str] = None
    farm_type: Optional[str] = None


# Alerts and prices published by admins
class WeatherAlert(CamelModel):
    id: int = Field(..., ge=1)
    type: str = Field(..., description="Rain, Heat Wave, Wind, Frost, ...")
    severity: Literal["Low", "Medium", "High", "Critical"]
    message: str
    regions: List[str] = Field(default_factory=list)
    date: date_type
    active: bool = True


class MarketPrice(CamelModel):
    product: str
    market: str
    price: float = Field(..., ge=0, allow_inf_nan=False)
    trend: Literal["increasing", "stable", "decreasing"] = "stable"
    updated: str = "Today"
    suggestion: Optional[str] = None


# Farmer change requests
class RequestedChange(CamelModel):
    kind: Literal["price", "quantity", "certification", "other"]
    value: Optional[Union[float, str]] = None


class FarmerRequest(CamelModel):
    id: int = Field(..., ge=1)
    farmer: str
    farmer_email: str
    farm: Optional[str] = None
    product: str = Field(..., description="Product name the request refers to")
    product_id: Optional[int] = None
    request: str = Field(..., description="Free-text description of the change")
    change: Optional[RequestedChange] = None
    status: Literal["pending", "approved", "rejected"] = "pending"
    date: date_type = Field(default_factory=date_type.today)
    rejection_reason: Optional[str] = None
    comment: Optional[str] = None


# Community forum
class ForumPost(CamelModel):
    id: int = Field(..., ge=1)
    question: str
    category: str = "General"
    author: str
    date: date_type = Field(default_factory=date_type.today)
    answers: List[str] = Field(default_factory=list)


# Results and monitoring
class ActionResult(CamelModel):
    success: bool
    message: str
    data: Optional[Any] = None


class PlatformStats(CamelModel):
    online_users: int
    server_load: int
    daily_orders: int
    storage_used: int
    server_health: str = "Good"
    sampled_at: datetime = Field(default_factory=utc_now)


class SystemLogEntry(CamelModel):
    time: str
    message: str
    type: Literal["info", "success", "warning"]
