from django.apps import AppConfig


class TabsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "tabs"
    verbose_name = "Tables and Tabs"
