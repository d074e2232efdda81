"""
Centralized configuration management using the Singleton pattern.
This module provides a single point of access to the order engine's business
settings, eliminating the need for direct database queries from business logic.
"""

from decimal import Decimal
from typing import Optional, Any
from django.conf import settings as django_settings
from django.db import DatabaseError
import logging

logger = logging.getLogger(__name__)


class AppSettings:
    """
    Process-wide view of the business settings (tax rate, stock policy, number
    prefixes). Nothing is read from the database until an attribute is first
    used, so management commands work against an unmigrated schema.
    """

    _instance: Optional["AppSettings"] = None
    _initialized: bool = False

    def __new__(cls) -> "AppSettings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def _setup(self):
        if not self._initialized:
            self.load_settings()
            self._initialized = True

    def __getattr__(self, name: str) -> Any:
        if not self._initialized:
            self._setup()

        try:
            return self.__dict__[name]
        except KeyError:
            raise AttributeError(f"'AppSettings' object has no attribute '{name}'")

    def _load_defaults(self) -> None:
        defaults = getattr(django_settings, "POS_ENGINE", {})
        self.tax_rate: Decimal = Decimal(str(defaults.get("TAX_RATE", "0.00")))
        self.default_stock_policy: str = defaults.get("DEFAULT_STOCK_POLICY", "advisory")
        self.low_stock_threshold: int = int(defaults.get("LOW_STOCK_THRESHOLD", 10))
        self.default_destination: str = defaults.get("DEFAULT_DESTINATION", "kitchen")
        self.order_number_prefix: str = defaults.get("ORDER_NUMBER_PREFIX", "ORD")
        self.session_number_prefix: str = defaults.get("SESSION_NUMBER_PREFIX", "TAB")
        self.currency: str = defaults.get("CURRENCY", "PHP")

    def load_settings(self) -> None:
        """
        Populate attributes from the POS_ENGINE defaults, then overlay the
        GlobalSettings row when one has been saved.
        """
        from .models import GlobalSettings

        self._load_defaults()

        try:
            settings_obj = GlobalSettings.objects.first()
        except DatabaseError as e:
            logger.warning(f"GlobalSettings unavailable, using defaults: {e}")
            return

        if settings_obj is None:
            logger.debug("No GlobalSettings row saved, using POS_ENGINE defaults")
            return

        self.tax_rate = settings_obj.tax_rate
        self.default_stock_policy = settings_obj.default_stock_policy
        self.low_stock_threshold = settings_obj.low_stock_threshold
        self.default_destination = settings_obj.default_destination
        self.order_number_prefix = settings_obj.order_number_prefix
        self.session_number_prefix = settings_obj.session_number_prefix
        self.currency = settings_obj.currency

    def reload(self) -> None:
        """Re-read the GlobalSettings row after it changes."""
        self.load_settings()
        self._initialized = True
        logger.info("[AppSettings.reload] Business settings reloaded")

    def invalidate(self) -> None:
        """Drop loaded values; the next attribute access reloads them."""
        for key in list(self.__dict__):
            del self.__dict__[key]
        self._initialized = False


app_settings = AppSettings()
