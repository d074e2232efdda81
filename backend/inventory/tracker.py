"""
In-memory stock reservation overlay.

Every operator shares one tracker per process. A reservation lowers what all
operators see as available without touching durable stock; only `commit`
writes to the catalog, and only `restore` gives stock back to it.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, Optional
import logging
import threading

from core_backend.exceptions import ConflictError, OutOfStock, ValidationError
from settings.models import StockPolicy

logger = logging.getLogger(__name__)


class StockStatus:
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


@dataclass
class TrackedItem:
    name: str
    baseline: int
    policy: str
    low_stock_threshold: int
    reserved: int = 0

    @property
    def available(self) -> int:
        return max(0, self.baseline - self.reserved)

    @property
    def is_strict(self) -> bool:
        return self.policy == StockPolicy.STRICT

    @property
    def stock_status(self) -> str:
        available = self.available
        if available <= 0:
            return StockStatus.OUT_OF_STOCK
        if available <= self.low_stock_threshold:
            return StockStatus.LOW_STOCK
        return StockStatus.IN_STOCK


@dataclass(frozen=True)
class Reservation:
    item_id: str
    quantity: int
    available: int
    stock_status: str
    policy: str

    @property
    def warning(self) -> Optional[str]:
        if self.policy == StockPolicy.STRICT:
            return None
        if self.stock_status == StockStatus.OUT_OF_STOCK:
            return "Out of stock - kitchen confirmation required"
        if self.stock_status == StockStatus.LOW_STOCK:
            return "Low stock - kitchen confirmation required"
        return None


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("Quantity must be greater than 0")
    return quantity


class StockReservationTracker:
    """
    Shared reservation counters keyed by product id.

    All check-and-update steps happen under one lock, so two operators racing for
    the last units of a strictly tracked item are served first-come-first-served.
    Catalog reads and writes happen outside the lock.
    """

    def __init__(self, catalog=None):
        self._lock = threading.Lock()
        self._items: Dict[str, TrackedItem] = {}
        self._catalog = catalog
        self.warmed_up = False

    @property
    def catalog(self):
        if self._catalog is None:
            from products.services import CatalogService
            self._catalog = CatalogService
        return self._catalog

    # === SEEDING ===

    def initialize(self, snapshot: Optional[Iterable] = None) -> int:
        """
        Seed baselines from a catalog snapshot. Reservations already held are
        kept, so refetching the catalog never hands reserved stock back out.
        """
        if snapshot is None:
            snapshot = self.catalog.snapshot()

        count = 0
        with self._lock:
            for entry in snapshot:
                self._upsert(entry)
                count += 1

        logger.info(f"[StockReservationTracker.initialize] Seeded {count} items")
        return count

    def _upsert(self, entry) -> TrackedItem:
        key = str(entry.product_id)
        item = self._items.get(key)
        if item is None:
            item = TrackedItem(
                name=entry.name,
                baseline=entry.stock,
                policy=entry.policy,
                low_stock_threshold=entry.low_stock_threshold,
            )
            self._items[key] = item
        else:
            item.name = entry.name
            item.baseline = entry.stock
            item.policy = entry.policy
            item.low_stock_threshold = entry.low_stock_threshold
        return item

    def _ensure_tracked(self, item_id) -> str:
        key = str(item_id)
        with self._lock:
            if key in self._items:
                return key

        entry = self.catalog.describe(self.catalog.get_item(key))
        with self._lock:
            if key not in self._items:
                self._upsert(entry)
        return key

    def refresh(self, item_id) -> int:
        """Re-read the durable stock of one item into its baseline."""
        key = str(item_id)
        entry = self.catalog.describe(self.catalog.get_item(key))
        with self._lock:
            return self._upsert(entry).baseline

    # === QUERIES ===

    def current_available(self, item_id) -> int:
        key = self._ensure_tracked(item_id)
        with self._lock:
            return self._items[key].available

    def reserved(self, item_id) -> int:
        with self._lock:
            item = self._items.get(str(item_id))
            return item.reserved if item else 0

    def stock_status(self, item_id) -> str:
        key = self._ensure_tracked(item_id)
        with self._lock:
            return self._items[key].stock_status

    def snapshot(self) -> Dict[str, dict]:
        with self._lock:
            return {
                key: {
                    "name": item.name,
                    "baseline": item.baseline,
                    "reserved": item.reserved,
                    "available": item.available,
                    "policy": item.policy,
                    "stock_status": item.stock_status,
                }
                for key, item in self._items.items()
            }

    # === MUTATIONS ===

    def reserve(self, item_id, quantity: int) -> Reservation:
        quantity = _validate_quantity(quantity)
        key = self._ensure_tracked(item_id)

        with self._lock:
            item = self._items[key]
            if item.is_strict and item.available < quantity:
                available = item.available
                logger.info(
                    f"[StockReservationTracker.reserve] Refused {quantity} x {item.name}: "
                    f"{available} available"
                )
                raise OutOfStock(item_name=item.name, requested=quantity, available=available)

            item.reserved += quantity
            reservation = Reservation(
                item_id=key,
                quantity=quantity,
                available=item.available,
                stock_status=item.stock_status,
                policy=item.policy,
            )

        if reservation.warning:
            logger.info(f"[StockReservationTracker.reserve] {item.name}: {reservation.warning}")
        return reservation

    def release(self, item_id, quantity: int) -> int:
        """Give back `quantity` reserved units; returns the remaining reservation."""
        quantity = _validate_quantity(quantity)
        key = str(item_id)

        with self._lock:
            item = self._items.get(key)
            if item is None:
                logger.warning(
                    f"[StockReservationTracker.release] Release of {quantity} for untracked item {key}"
                )
                return 0

            if quantity > item.reserved:
                logger.warning(
                    f"[StockReservationTracker.release] Clamped release of {quantity} x {item.name}: "
                    f"only {item.reserved} reserved (possible double release)"
                )
                item.reserved = 0
            else:
                item.reserved -= quantity
            return item.reserved

    def reset_all(self) -> None:
        with self._lock:
            for item in self._items.values():
                item.reserved = 0
        logger.info("[StockReservationTracker.reset_all] Cleared all reservations")

    def commit(self, item_id, quantity: int) -> int:
        """
        Turn a reservation into a durable deduction. Returns the new durable
        stock, which also becomes the item's baseline.
        """
        quantity = _validate_quantity(quantity)
        key = self._ensure_tracked(item_id)
        new_stock = self.catalog.decrement_stock(key, quantity)

        with self._lock:
            item = self._items[key]
            if quantity > item.reserved:
                logger.warning(
                    f"[StockReservationTracker.commit] Committing {quantity} x {item.name} "
                    f"with only {item.reserved} reserved"
                )
            item.reserved = max(0, item.reserved - quantity)
            item.baseline = new_stock
        return new_stock

    def withdraw(self, item_id, quantity: int) -> int:
        """
        Durable deduction that consumes no reservation (stock count corrections).
        Strictly tracked items must keep enough stock to cover what operators
        already hold.
        """
        quantity = _validate_quantity(quantity)
        key = str(item_id)
        entry = self.catalog.describe(self.catalog.get_item(key))

        with self._lock:
            item = self._upsert(entry)
            if item.is_strict and item.baseline - quantity < item.reserved:
                logger.info(
                    f"[StockReservationTracker.withdraw] Refused -{quantity} x {item.name}: "
                    f"{item.reserved} reserved of {item.baseline}"
                )
                raise ConflictError(
                    f"Cannot remove {quantity} x {item.name}: {item.reserved} are held by open orders"
                )
            new_stock = self.catalog.decrement_stock(key, quantity)
            item.baseline = new_stock
        return new_stock

    def restore(self, item_id, quantity: int) -> int:
        """Return committed stock to the catalog (voids, reduced lines)."""
        quantity = _validate_quantity(quantity)
        key = self._ensure_tracked(item_id)
        new_stock = self.catalog.increment_stock(key, quantity)

        with self._lock:
            self._items[key].baseline = new_stock
        return new_stock

    def reinstate(self, item_id, quantity: int) -> None:
        """
        Put back a reservation that `commit` cleared when the surrounding
        database transaction was rolled back. The baseline is re-read from the
        catalog afterwards.
        """
        quantity = _validate_quantity(quantity)
        key = str(item_id)
        with self._lock:
            item = self._items.get(key)
            if item is not None:
                item.reserved += quantity
        self.refresh(key)

    def rebuild(self, reserved_by_item: Dict[str, int]) -> None:
        """Replace every counter with totals recomputed from persisted drafts."""
        with self._lock:
            for item in self._items.values():
                item.reserved = 0
        for key in reserved_by_item:
            self._ensure_tracked(key)
        with self._lock:
            for key, quantity in reserved_by_item.items():
                self._items[str(key)].reserved = max(0, quantity)
            self.warmed_up = True
        logger.info(f"[StockReservationTracker.rebuild] Rebuilt reservations for {len(reserved_by_item)} items")

    def clear(self) -> None:
        """Forget every tracked item (tests, catalog reloads)."""
        with self._lock:
            self._items.clear()
            self.warmed_up = False


stock_tracker = StockReservationTracker()
