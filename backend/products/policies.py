from settings.config import app_settings
from settings.models import StockPolicy

# Category names that imply countable, strictly tracked stock (bottles, cans).
DRINK_CATEGORY_KEYWORDS = ("beer", "beverage", "drink", "alcohol")


def resolve_stock_policy(product) -> str:
    """
    Strict or advisory tracking for a product.

    The nearest category in the product's chain that sets a policy wins. Failing
    that, a drink-like category name makes the product strict; everything else
    uses the store default.
    """
    category = product.category
    if category is None:
        return app_settings.default_stock_policy

    lineage = list(category.lineage())
    for node in lineage:
        if node.stock_policy:
            return node.stock_policy

    for node in lineage:
        name = node.name.lower()
        if any(keyword in name for keyword in DRINK_CATEGORY_KEYWORDS):
            return StockPolicy.STRICT

    return app_settings.default_stock_policy


def low_stock_threshold(product) -> int:
    if product.low_stock_threshold is not None:
        return product.low_stock_threshold
    return app_settings.low_stock_threshold
