"""Demo records loaded into empty storage on first run."""
from datetime import date

from schemas import (
    AccountRecord,
    Farm,
    FarmerRequest,
    ForumPost,
    MarketPrice,
    MealKit,
    Product,
    RequestedChange,
    WeatherAlert,
)

DEFAULT_ADMIN_EMAIL = "admin@agrivision.com"
DEFAULT_ADMIN_PASSWORD = "admin123"
DEMO_PASSWORD = "password123"


def demo_accounts(hash_password):
    rows = [
        (1, "John Farmer", "john@greenvalley.com", "farmer", "active", date(2024, 1, 10), "Green Valley Farm", "Crop Farming"),
        (2, "Sarah Grower", "sarah@sunnyacres.com", "farmer", "active", date(2024, 1, 12), "Sunny Acres", "Mixed Farming"),
        (3, "Mike Customer", "mike@email.com", "buyer", "active", date(2024, 1, 13), None, None),
        (4, "Lisa Shopper", "lisa@email.com", "buyer", "pending", date(2024, 1, 14), None, None),
        (5, "David Miller", "david@farm.com", "farmer", "pending", date(2024, 1, 14), None, None),
        (6, "Emma Wilson", "emma@buyer.com", "buyer", "banned", date(2024, 1, 5), None, None),
    ]
    accounts = [
        AccountRecord(
            id=uid, name=name, email=email, type=kind, status=status, registered=registered,
            farm_name=farm_name, farm_type=farm_type, password_hash=hash_password(DEMO_PASSWORD),
        )
        for uid, name, email, kind, status, registered, farm_name, farm_type in rows
    ]
    accounts.append(AccountRecord(
        id=7,
        name="System Admin",
        email=DEFAULT_ADMIN_EMAIL,
        type="admin",
        status="active",
        registered=date(2024, 1, 1),
        password_hash=hash_password(DEFAULT_ADMIN_PASSWORD),
    ))
    return accounts


def demo_products():
    rows = [
        (1, "Organic Tomatoes", "Vegetables", 2.75, "Green Valley Farm", True, 50),
        (2, "Fresh Carrots", "Vegetables", 1.90, "Sunny Acres", False, 100),
        (3, "Potatoes", "Vegetables", 1.40, "Riverbend Farm", False, 200),
        (4, "Lettuce", "Vegetables", 3.00, "Green Valley Farm", True, 30),
        (5, "Apples", "Fruits", 2.20, "Orchard Hills", True, 150),
        (6, "Fresh Milk", "Dairy", 4.50, "Happy Cows Dairy", True, 40),
        (7, "Organic Eggs", "Dairy", 5.75, "Sunny Acres", True, 60),
    ]
    return [
        Product(product_id=pid, name=name, category=category, price=price, farmer=farmer, organic=organic, quantity=stock)
        for pid, name, category, price, farmer, organic, stock in rows
    ]


def demo_farms():
    return [
        Farm(farm_id=1, farm_name="Green Valley Farm", farm_type="Crop Farming", size="50.5 acres", farm_location="North Region", farmer="John Farmer"),
        Farm(farm_id=2, farm_name="Sunny Acres", farm_type="Mixed Farming", size="120 acres", farm_location="South Region", farmer="Sarah Grower"),
        Farm(farm_id=3, farm_name="Riverbend Farm", farm_type="Crop Farming", size="75 acres", farm_location="East Region", farmer="Tom Rivers"),
        Farm(farm_id=4, farm_name="Orchard Hills", farm_type="Orchard", size="200 acres", farm_location="West Region", farmer="Alice Green"),
        Farm(farm_id=5, farm_name="Happy Cows Dairy", farm_type="Dairy Farm", size="40 acres", farm_location="North Region", farmer="Bob Dairy"),
    ]


def demo_weather_alerts():
    return [
        WeatherAlert(id=1, type="Rain", severity="High", message="Heavy rainfall expected tomorrow. Prepare drainage systems.", regions=["North", "East"], date=date(2024, 1, 15)),
        WeatherAlert(id=2, type="Heat Wave", severity="Medium", message="Temperatures reaching 35°C in 3 days. Water crops early.", regions=["South"], date=date(2024, 1, 16)),
        WeatherAlert(id=3, type="Wind", severity="Low", message="Strong winds expected tonight. Secure loose items.", regions=["West"], date=date(2024, 1, 14)),
        WeatherAlert(id=4, type="Frost", severity="Critical", message="Frost warning for early morning. Protect sensitive crops.", regions=["North", "East"], date=date(2024, 1, 13), active=False),
    ]


def demo_farmer_requests():
    return [
        FarmerRequest(
            id=1, farmer="John Farmer", farm="Green Valley Farm", farmer_email="john@greenvalley.com",
            product="Organic Tomatoes", request="Update price to $3.00/kg due to increased quality",
            change=RequestedChange(kind="price", value=3.00), date=date(2024, 1, 15),
        ),
        FarmerRequest(
            id=2, farmer="Sarah Grower", farm="Sunny Acres", farmer_email="sarah@sunnyacres.com",
            product="Carrots", request="Add organic certification badge to product listing",
            change=RequestedChange(kind="certification"), date=date(2024, 1, 14),
        ),
        FarmerRequest(
            id=3, farmer="John Farmer", farm="Green Valley Farm", farmer_email="john@greenvalley.com",
            product="Lettuce", request="Increase available quantity to 50kg",
            change=RequestedChange(kind="quantity", value=50), date=date(2024, 1, 15),
        ),
        FarmerRequest(
            id=4, farmer="Riverbend Farm", farmer_email="contact@riverbend.com", product="Potatoes",
            request='Change product category from "Vegetables" to "Organic Root Vegetables"',
            status="approved", date=date(2024, 1, 13),
        ),
        FarmerRequest(
            id=5, farmer="Orchard Hills", farmer_email="info@orchardhills.com", product="Apples",
            request='Add new product variant: "Organic Gala Apples"', status="rejected",
            date=date(2024, 1, 12), rejection_reason="Duplicate product entry",
        ),
    ]


def demo_market_prices():
    return [
        MarketPrice(product="Tomatoes", market="Central Market", price=2.75, trend="increasing", updated="Today", suggestion="Wait 1 week"),
        MarketPrice(product="Potatoes", market="Central Market", price=1.40, trend="stable", updated="Today", suggestion="Sell now"),
        MarketPrice(product="Carrots", market="Central Market", price=1.90, trend="increasing", updated="Today", suggestion="Wait 3 days"),
        MarketPrice(product="Lettuce", market="East Market", price=3.00, trend="increasing", updated="Yesterday", suggestion="Good price"),
        MarketPrice(product="Apples", market="North Market", price=2.20, trend="decreasing", updated="2 days ago", suggestion="Sell immediately"),
        MarketPrice(product="Milk", market="West Market", price=4.50, trend="stable", updated="Today", suggestion="Stable demand"),
    ]


def demo_meal_kits():
    return [
        MealKit(meal_kit_id=1, name="Garden Salad Box", ingredients=["Lettuce", "Organic Tomatoes", "Fresh Carrots"], diet_type="vegan"),
        MealKit(meal_kit_id=2, name="Farmhouse Breakfast", ingredients=["Organic Eggs", "Fresh Milk", "Potatoes"], diet_type="vegetarian"),
        MealKit(meal_kit_id=3, name="Harvest Roast", ingredients=["Potatoes", "Fresh Carrots"]),
    ]


def demo_forum_posts():
    return [
        ForumPost(
            id=1, question="What is the best way to protect tomatoes from early blight?",
            category="Crop Health", author="John Farmer", date=date(2024, 1, 10),
            answers=["Rotate crops yearly and water at the base, not the leaves."],
        ),
        ForumPost(
            id=2, question="When should I start selling carrots at the central market?",
            category="Market", author="Sarah Grower", date=date(2024, 1, 12),
        ),
    ]
