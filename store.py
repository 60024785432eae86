"""
Marketplace store

Every handler receives a MarketplaceStore instead of reaching for module
globals. Collections that the buyer pages read back (products, users, forum
posts) are written through to their storage slot after each mutation.
"""
import hashlib
import logging
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Type, Union

from pydantic import BaseModel, ValidationError

import seed
from schemas import (
    AccountRecord,
    ActionResult,
    Admin,
    Buyer,
    Farm,
    Farmer,
    FarmerRequest,
    ForumPost,
    MarketPrice,
    MealKit,
    Product,
    User,
    WeatherAlert,
)
from validation import validate_form

logger = logging.getLogger(__name__)


def hash_password(pw: str) -> str:
    return hashlib.sha256(pw.encode()).hexdigest()


def normalize_fields(model: Type[BaseModel], updates: Mapping[str, Any]) -> Dict[str, Any]:
    """Map camelCase or snake_case keys onto the model's field names."""
    by_alias = {field.alias: name for name, field in model.model_fields.items() if field.alias}
    normalized = {}
    for key, value in updates.items():
        name = key if key in model.model_fields else by_alias.get(key)
        if name is None:
            raise ValueError(f"Unknown field: {key}")
        normalized[name] = value
    return normalized


def _dump(items: Iterable[BaseModel]) -> List[Dict[str, Any]]:
    return [item.model_dump(mode="json", by_alias=True) for item in items]


def _next_id(items: Iterable[Any], attr: str = "id") -> int:
    return max((getattr(item, attr) for item in items), default=0) + 1


# ----------------------
# Catalog
# ----------------------
class CatalogStore:
    """
    Ordered product catalog keyed by product_id.

    Ids start at max(existing) + 1 and only ever grow, so an id freed by
    `remove` is never handed out again. `update` validates the merged record
    as a whole before touching the stored product.
    """

    SLOT = "products"

    def __init__(self, storage, products: Iterable[Product] = ()):
        self.storage = storage
        self._products: List[Product] = list(products)
        self._next_id = _next_id(self._products, "product_id")

    @classmethod
    def load(cls, storage, default: Iterable[Product] = ()) -> "CatalogStore":
        raw = storage.get(cls.SLOT)
        if raw is None:
            catalog = cls(storage, default)
            catalog._save()
            return catalog
        return cls(storage, [Product.model_validate(p) for p in raw])

    def __len__(self) -> int:
        return len(self._products)

    def all(self) -> List[Product]:
        return list(self._products)

    def add(self, product: Union[Product, Mapping[str, Any]]) -> Product:
        if isinstance(product, Product):
            data = product.model_dump(exclude={"product_id"})
        else:
            data = normalize_fields(Product, product)
            data.pop("product_id", None)
        created = Product.model_validate({**data, "product_id": self._next_id})
        self._next_id += 1
        self._products.append(created)
        self._save()
        return created

    def update(self, product_id: int, fields: Mapping[str, Any]) -> Optional[Product]:
        """Apply a partial update. Returns None when the id is unknown."""
        index = self._index(product_id)
        if index is None:
            return None
        changes = normalize_fields(Product, fields)
        if changes.get("product_id", product_id) != product_id:
            raise ValueError("productId cannot be changed")
        updated = Product.model_validate({**self._products[index].model_dump(), **changes})
        self._products[index] = updated
        self._save()
        return updated

    def remove(self, product_id: int) -> bool:
        index = self._index(product_id)
        if index is None:
            return False
        del self._products[index]
        self._save()
        return True

    def find(self, product_id: int) -> Optional[Product]:
        index = self._index(product_id)
        return self._products[index] if index is not None else None

    def find_by_name(self, name: str) -> Optional[Product]:
        return next((p for p in self._products if p.name == name), None)

    def filter(self, predicate: Callable[[Product], bool]) -> List[Product]:
        return [p for p in self._products if predicate(p)]

    def search(self, term: str) -> List[Product]:
        term = (term or "").lower()
        return self.filter(
            lambda p: term in p.name.lower()
            or term in p.category.lower()
            or term in (p.farmer or "").lower()
        )

    def _index(self, product_id: int) -> Optional[int]:
        for i, product in enumerate(self._products):
            if product.product_id == product_id:
                return i
        return None

    def _save(self) -> None:
        self.storage.set(self.SLOT, _dump(self._products))


# ----------------------
# Accounts
# ----------------------
class UserDirectory:
    """Registered accounts, persisted in the `users` slot."""

    SLOT = "users"

    def __init__(self, storage, accounts: Iterable[AccountRecord] = ()):
        self.storage = storage
        self._accounts: List[AccountRecord] = list(accounts)

    @classmethod
    def load(cls, storage, default: Iterable[AccountRecord] = ()) -> "UserDirectory":
        raw = storage.get(cls.SLOT)
        if raw is None:
            directory = cls(storage, default)
            directory.save()
            return directory
        return cls(storage, [AccountRecord.model_validate(a) for a in raw])

    def __len__(self) -> int:
        return len(self._accounts)

    def all(self) -> List[AccountRecord]:
        return list(self._accounts)

    def find(self, user_id: int) -> Optional[AccountRecord]:
        return next((a for a in self._accounts if a.id == user_id), None)

    def find_by_email(self, email: str) -> Optional[AccountRecord]:
        email = (email or "").lower()
        return next((a for a in self._accounts if a.email.lower() == email), None)

    def register(self, form_data: Mapping[str, Any]) -> ActionResult:
        errors = validate_form(form_data)
        if errors:
            return ActionResult(success=False, message="; ".join(errors), data=errors)
        if self.find_by_email(form_data["email"]):
            return ActionResult(success=False, message="Email already registered")
        user_type = form_data.get("type", "buyer")
        if user_type == "admin":
            return ActionResult(success=False, message="Admin accounts cannot self-register")
        try:
            account = AccountRecord(
                id=_next_id(self._accounts),
                type=user_type,
                name=form_data.get("name") or form_data["email"].split("@")[0],
                email=form_data["email"],
                password_hash=hash_password(form_data["password"]),
                phone=form_data.get("phone") or None,
                status="pending",
                farm_name=form_data.get("farm_name") or form_data.get("farmName"),
                farm_type=form_data.get("farm_type") or form_data.get("farmType"),
            )
        except ValidationError as e:
            errors = [err["msg"] for err in e.errors()]
            return ActionResult(success=False, message="; ".join(errors), data=errors)
        self._accounts.append(account)
        self.save()
        logger.info(f"Registered {account.type} account {account.email}")
        return ActionResult(success=True, message="Registration successful", data=account)

    def authenticate(self, email: str, password: str) -> ActionResult:
        account = self.find_by_email(email)
        if account is None or account.password_hash != hash_password(password or ""):
            logger.warning(f"Failed login for {email}")
            return ActionResult(success=False, message="Invalid credentials")
        if account.status in ("banned", "rejected"):
            return ActionResult(success=False, message=f"Account {account.status}")
        return ActionResult(success=True, message="Login successful", data=account)

    def filter(
        self,
        search: Optional[str] = None,
        user_type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[AccountRecord]:
        term = (search or "").lower()
        return [
            a
            for a in self._accounts
            if (term in a.name.lower() or term in a.email.lower())
            and (not user_type or a.type == user_type)
            and (not status or a.status == status)
        ]

    def count_by_status(self, status: str) -> int:
        return sum(1 for a in self._accounts if a.status == status)

    def save(self) -> None:
        # password_hash is excluded from API output, so write it explicitly
        rows = [{**row, "passwordHash": a.password_hash} for row, a in zip(_dump(self._accounts), self._accounts)]
        self.storage.set(self.SLOT, rows)


def profile_for(account: AccountRecord) -> User:
    """Build the role-specific identity for a directory account."""
    if account.type == "farmer":
        return Farmer(
            name=account.name,
            email=account.email,
            farm_name=account.farm_name,
            farm_type=account.farm_type,
        )
    if account.type == "buyer":
        return Buyer(name=account.name, email=account.email)
    return Admin(name=account.name, email=account.email)


# ----------------------
# Forum
# ----------------------
class ForumBoard:
    SLOT = "forumPosts"

    def __init__(self, storage, posts: Iterable[ForumPost] = ()):
        self.storage = storage
        self._posts: List[ForumPost] = list(posts)

    @classmethod
    def load(cls, storage, default: Iterable[ForumPost] = ()) -> "ForumBoard":
        raw = storage.get(cls.SLOT)
        if raw is None:
            board = cls(storage, default)
            board._save()
            return board
        return cls(storage, [ForumPost.model_validate(p) for p in raw])

    def all(self) -> List[ForumPost]:
        return list(self._posts)

    def find(self, post_id: int) -> Optional[ForumPost]:
        return next((p for p in self._posts if p.id == post_id), None)

    def add_post(self, question: str, author: str, category: str = "General") -> Optional[ForumPost]:
        if not question or not question.strip():
            return None
        post = ForumPost(id=_next_id(self._posts), question=question.strip(), author=author, category=category)
        self._posts.append(post)
        self._save()
        return post

    def add_answer(self, post_id: int, answer: str) -> Optional[ForumPost]:
        post = self.find(post_id)
        if post is None or not answer or not answer.strip():
            return None
        post.answers = [*post.answers, answer.strip()]
        self._save()
        return post

    def _save(self) -> None:
        self.storage.set(self.SLOT, _dump(self._posts))


# ----------------------
# Marketplace
# ----------------------
class MarketplaceStore:
    """The explicit store object every dashboard handler works against."""

    def __init__(
        self,
        storage,
        catalog: CatalogStore,
        users: UserDirectory,
        forum: ForumBoard,
        farms: Iterable[Farm] = (),
        meal_kits: Iterable[MealKit] = (),
        weather_alerts: Iterable[WeatherAlert] = (),
        farmer_requests: Iterable[FarmerRequest] = (),
        market_prices: Iterable[MarketPrice] = (),
    ):
        self.storage = storage
        self.catalog = catalog
        self.users = users
        self.forum = forum
        self.farms: List[Farm] = list(farms)
        self.meal_kits: List[MealKit] = list(meal_kits)
        self.weather_alerts: List[WeatherAlert] = list(weather_alerts)
        self.farmer_requests: List[FarmerRequest] = list(farmer_requests)
        self.market_prices: List[MarketPrice] = list(market_prices)

    @classmethod
    def empty(cls, storage) -> "MarketplaceStore":
        return cls(storage, CatalogStore(storage), UserDirectory(storage), ForumBoard(storage))

    @classmethod
    def load(cls, storage, with_demo_data: bool = True) -> "MarketplaceStore":
        """Read the persisted slots, seeding any that are absent."""
        if not with_demo_data:
            return cls(
                storage,
                CatalogStore.load(storage),
                UserDirectory.load(storage),
                ForumBoard.load(storage),
            )
        return cls(
            storage,
            CatalogStore.load(storage, seed.demo_products()),
            UserDirectory.load(storage, seed.demo_accounts(hash_password)),
            ForumBoard.load(storage, seed.demo_forum_posts()),
            farms=seed.demo_farms(),
            meal_kits=seed.demo_meal_kits(),
            weather_alerts=seed.demo_weather_alerts(),
            farmer_requests=seed.demo_farmer_requests(),
            market_prices=seed.demo_market_prices(),
        )

    # Weather alerts are soft-deleted: `active` flips, the record stays.
    def publish_weather_alert(
        self,
        alert_type: str,
        severity: str,
        message: str,
        regions: Iterable[str] = (),
        alert_date: Optional[date] = None,
    ) -> WeatherAlert:
        alert = WeatherAlert(
            id=_next_id(self.weather_alerts),
            type=alert_type,
            severity=severity,
            message=message,
            regions=list(regions),
            date=alert_date or date.today(),
        )
        self.weather_alerts.append(alert)
        return alert

    def deactivate_weather_alert(self, alert_id: int) -> bool:
        alert = next((a for a in self.weather_alerts if a.id == alert_id), None)
        if alert is None or not alert.active:
            return False
        alert.active = False
        return True

    def active_weather_alerts(self) -> List[WeatherAlert]:
        return [a for a in self.weather_alerts if a.active]

    def find_farm(self, farm_id: int) -> Optional[Farm]:
        return next((f for f in self.farms if f.farm_id == farm_id), None)

    def find_meal_kit(self, meal_kit_id: int) -> Optional[MealKit]:
        return next((m for m in self.meal_kits if m.meal_kit_id == meal_kit_id), None)

    def find_market_price(self, product: str) -> Optional[MarketPrice]:
        return next((p for p in self.market_prices if p.product == product), None)

    def find_request(self, request_id: int) -> Optional[FarmerRequest]:
        return next((r for r in self.farmer_requests if r.id == request_id), None)

    def next_request_id(self) -> int:
        return _next_id(self.farmer_requests)
