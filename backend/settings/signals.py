"""
Signal handlers for the settings app.
Automatically updates the configuration cache when GlobalSettings are modified.
"""

from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging

from .models import GlobalSettings

logger = logging.getLogger(__name__)


@receiver(post_save, sender=GlobalSettings)
@receiver(post_delete, sender=GlobalSettings)
def reload_app_settings(sender, instance, **kwargs):
    """
    Reload the AppSettings cache whenever GlobalSettings change so new tax rates
    and stock rules apply without a restart.
    """
    from .config import app_settings

    app_settings.reload()
    logger.info(f"Configuration cache updated (tax rate {app_settings.tax_rate})")
