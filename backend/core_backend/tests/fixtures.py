"""
Shared test fixtures for all backend tests.

This module provides reusable pytest fixtures for common test objects
like operators, catalog items, tables and customers.
"""
import pytest
from decimal import Decimal

from customers.models import Customer
from products.models import Category, Package, PackageItem, Product
from settings.models import Destination, StockPolicy
from tabs.models import Table
from users.models import User


MANAGER_PIN = "4321"


# ============================================================================
# USER FIXTURES
# ============================================================================

@pytest.fixture
def cashier(db):
    """Create a cashier (operator without approval rights)"""
    return User.objects.create_user(
        username='cashier1',
        password='testpass123',
        role=User.Role.CASHIER,
    )


@pytest.fixture
def second_cashier(db):
    """Create a second operator sharing the same stock"""
    return User.objects.create_user(
        username='cashier2',
        password='testpass123',
        role=User.Role.CASHIER,
    )


@pytest.fixture
def manager(db):
    """Create a manager with an approval PIN"""
    user = User.objects.create_user(
        username='manager1',
        password='testpass123',
        role=User.Role.MANAGER,
    )
    user.set_pin(MANAGER_PIN)
    return user


# ============================================================================
# CATALOG FIXTURES
# ============================================================================

@pytest.fixture
def beer_category(db):
    """Drinks category: strict stock, bartender station"""
    return Category.objects.create(
        name='Beer',
        default_destination=Destination.BARTENDER,
        stock_policy=StockPolicy.STRICT,
    )


@pytest.fixture
def food_category(db):
    """Food category: advisory stock, kitchen station"""
    return Category.objects.create(
        name='Pulutan',
        default_destination=Destination.KITCHEN,
        stock_policy=StockPolicy.ADVISORY,
    )


@pytest.fixture
def beer(beer_category):
    """Strictly tracked beer with 10 bottles on hand"""
    return Product.objects.create(
        name='Red Horse',
        category=beer_category,
        base_price=Decimal('50.00'),
        vip_price=Decimal('45.00'),
        current_stock=10,
        low_stock_threshold=3,
    )


@pytest.fixture
def second_beer(beer_category):
    return Product.objects.create(
        name='San Mig Light',
        category=beer_category,
        base_price=Decimal('30.00'),
        current_stock=24,
        low_stock_threshold=5,
    )


@pytest.fixture
def sisig(food_category):
    """Kitchen item with advisory stock"""
    return Product.objects.create(
        name='Sizzling Sisig',
        category=food_category,
        base_price=Decimal('180.00'),
        current_stock=5,
        low_stock_threshold=2,
    )


@pytest.fixture
def bucket_package(beer, second_beer, sisig):
    """Package with two beverage components and one food component"""
    package = Package.objects.create(
        name='Bucket Deal',
        price=Decimal('400.00'),
        vip_price=Decimal('380.00'),
    )
    PackageItem.objects.create(package=package, product=beer, quantity=2, sort_order=1)
    PackageItem.objects.create(package=package, product=second_beer, quantity=3, sort_order=2)
    PackageItem.objects.create(package=package, product=sisig, quantity=1, sort_order=3)
    return package


# ============================================================================
# FLOOR / CUSTOMER FIXTURES
# ============================================================================

@pytest.fixture
def table_one(db):
    return Table.objects.create(number='1', capacity=4, section='Main')


@pytest.fixture
def table_two(db):
    return Table.objects.create(number='2', capacity=6, section='Main')


@pytest.fixture
def vip_customer(db):
    return Customer.objects.create(
        first_name='Maria',
        last_name='Santos',
        tier=Customer.Tier.VIP_GOLD,
    )


@pytest.fixture
def regular_customer(db):
    return Customer.objects.create(first_name='Jun', last_name='Reyes')
