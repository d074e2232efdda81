from django.apps import AppConfig


class InventoryConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "inventory"

    def ready(self):
        from django.core.signals import request_started
        from .signals import warm_reservation_tracker

        request_started.connect(warm_reservation_tracker, dispatch_uid="inventory_warm_reservation_tracker")
