"""
Entity model: derived fields, terminal states and the role tag.
"""
import pytest
from pydantic import TypeAdapter, ValidationError

from schemas import Buyer, Farmer, MealKit, Order, Product, User


def make_product(product_id, price, name=None):
    return Product(product_id=product_id, name=name or f"Product {product_id}", price=price)


class TestOrder:

    def test_total_tracks_items(self):
        order = Order(order_id=1)
        assert order.total_amount == 0

        order.add_product(make_product(1, 2.5))
        assert order.total_amount == 2.5
        order.add_product(make_product(2, 4.0))
        assert order.total_amount == 6.5
        order.add_product(make_product(3, 1.5))
        assert order.total_amount == 8.0

    def test_meal_kit_counts_toward_total(self):
        order = Order(order_id=1, items=[make_product(1, 2.0)])
        order.add_meal_kit(MealKit(meal_kit_id=1, name="Box", ingredients=["a", "b"]))
        assert order.total_amount == 16.0

    def test_total_cannot_be_set(self):
        order = Order(order_id=1)
        with pytest.raises(AttributeError):
            order.total_amount = 100

    def test_total_is_serialized(self):
        order = Order(order_id=1, items=[make_product(1, 2.75), make_product(2, 1.90)])
        dumped = order.model_dump(by_alias=True)
        assert dumped["totalAmount"] == pytest.approx(4.65)

    def test_confirm_is_terminal(self):
        order = Order(order_id=1)
        assert order.confirm()
        assert order.status == "confirmed"
        assert not order.cancel()
        assert order.status == "confirmed"

    def test_cancel_is_terminal(self):
        order = Order(order_id=1)
        assert order.cancel()
        assert not order.confirm()
        assert order.status == "cancelled"


class TestMealKit:

    def test_price_is_base_plus_two_per_ingredient(self):
        assert MealKit(meal_kit_id=1, name="Empty").calculate_price() == 10
        kit = MealKit(meal_kit_id=2, name="Salad", ingredients=["Lettuce", "Tomatoes", "Carrots"])
        assert kit.calculate_price() == 16
        assert kit.price == 16

    def test_ingredient_changes_recompute_price(self):
        kit = MealKit(meal_kit_id=1, name="Salad", ingredients=["Lettuce", "Tomatoes", "Carrots"])
        assert kit.remove_ingredient("Carrots") == 14
        assert kit.add_ingredient("Cucumber") == 16
        assert kit.remove_ingredient("Not there") == 16

    def test_customize_overwrites_diet_type(self):
        kit = MealKit(meal_kit_id=1, name="Roast", diet_type="vegetarian")
        assert kit.customize(vegetarian=True, vegan=True) == "vegan"
        assert kit.customize(vegetarian=True) == "vegetarian"
        assert kit.customize() == "standard"

    def test_subscribe_once(self):
        kit = MealKit(meal_kit_id=1, name="Roast")
        assert kit.subscribe("biweekly")
        assert kit.status == "subscribed"
        assert kit.delivery_frequency == "biweekly"
        assert not kit.subscribe()


class TestProduct:

    def test_price_must_not_be_negative(self):
        with pytest.raises(ValidationError):
            make_product(1, -1)

    def test_assignment_is_validated(self):
        product = make_product(1, 2.0)
        with pytest.raises(ValidationError):
            product.price = "abc"
        assert product.price == 2.0

    def test_camel_case_aliases(self):
        product = Product.model_validate({"productId": 4, "name": "Lettuce", "price": 3.0, "harvestDate": "2024-01-10"})
        assert product.product_id == 4
        assert "harvestDate" in product.model_dump(by_alias=True)


class TestUserTag:

    def test_type_is_frozen(self):
        farmer = Farmer(name="John", email="john@greenvalley.com")
        with pytest.raises(ValidationError):
            farmer.type = "admin"
        assert farmer.type == "farmer"

    def test_union_dispatches_on_type(self):
        adapter = TypeAdapter(User)
        user = adapter.validate_python({"type": "buyer", "name": "Mike", "email": "mike@email.com"})
        assert isinstance(user, Buyer)
        assert user.cart == []

    def test_unknown_type_is_rejected(self):
        with pytest.raises(ValidationError):
            TypeAdapter(User).validate_python({"type": "officer", "name": "X", "email": "x@farm.com"})
