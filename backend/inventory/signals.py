"""
Rebuilds the reservation tracker from persisted drafts the first time a
process serves a request, so a restart does not hand reserved stock back out.
"""
import logging

from .tracker import stock_tracker

logger = logging.getLogger(__name__)


def warm_reservation_tracker(sender, **kwargs):
    if stock_tracker.warmed_up:
        return

    from .services import InventoryService

    try:
        totals = InventoryService.rebuild_reservations()
        logger.info(f"Reservation tracker warmed with {len(totals)} reserved items")
    except Exception as e:
        logger.error(f"Error rebuilding reservation tracker: {e}")
