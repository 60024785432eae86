"""
Shared pytest fixtures: a fresh in-memory storage and store per test.
"""
import pytest

from database import MemoryStorage
from schemas import Admin, Buyer, Farmer, Product
from session import Session
from store import MarketplaceStore
from workflow import RequestWorkflow


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    """Store seeded with the demo data."""
    return MarketplaceStore.load(storage)


@pytest.fixture
def empty_store(storage):
    return MarketplaceStore.empty(storage)


@pytest.fixture
def workflow(empty_store):
    return RequestWorkflow(empty_store)


@pytest.fixture
def session(storage):
    return Session(storage)


@pytest.fixture
def farmer():
    return Farmer(name="John Farmer", email="john@greenvalley.com", farm_name="Green Valley Farm", farm_type="Crop Farming")


@pytest.fixture
def buyer():
    return Buyer(name="Mike Customer", email="mike@email.com")


@pytest.fixture
def admin():
    return Admin(name="System Admin", email="admin@agrivision.com")


@pytest.fixture
def tomatoes(empty_store):
    return empty_store.catalog.add(Product(product_id=1, name="Organic Tomatoes", price=2.75, quantity=50))
