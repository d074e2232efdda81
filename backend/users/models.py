from django.contrib.auth.models import AbstractUser
from django.contrib.auth.hashers import make_password, check_password
from django.db import models
from django.utils.translation import gettext_lazy as _


class User(AbstractUser):
    class Role(models.TextChoices):
        OWNER = "OWNER", _("Owner")
        ADMIN = "ADMIN", _("Admin")
        MANAGER = "MANAGER", _("Manager")
        CASHIER = "CASHIER", _("Cashier")
        BARTENDER = "BARTENDER", _("Bartender")
        KITCHEN = "KITCHEN", _("Kitchen Staff")

    PRIVILEGED_ROLES = (Role.OWNER, Role.ADMIN, Role.MANAGER)

    role = models.CharField(
        _("role"), max_length=20, choices=Role.choices, default=Role.CASHIER
    )
    pin = models.CharField(
        _("PIN"),
        max_length=128,
        blank=True,
        null=True,
        help_text=_("A hashed 4-6 digit PIN for POS login and approvals."),
    )

    class Meta:
        indexes = [
            models.Index(fields=["role", "is_active"]),
        ]

    def __str__(self):
        return self.get_full_name() or self.username

    @property
    def is_privileged(self):
        return self.role in self.PRIVILEGED_ROLES

    def set_pin(self, raw_pin):
        self.pin = make_password(str(raw_pin)) if raw_pin else None
        self.save(update_fields=["pin"])

    def check_pin(self, raw_pin):
        if not self.pin or not raw_pin:
            return False
        return check_password(str(raw_pin), self.pin)
