import logging

from core_backend.exceptions import AuthorizationError, ValidationError
from .models import User

logger = logging.getLogger(__name__)


class AuthorizationService:
    """
    Approval checks for sensitive actions (voids, reducing committed lines).

    Terminals are shared between operators, so an approval is valid when the
    PIN belongs to *any* active privileged user, not only to the operator who
    is currently signed in.
    """

    @staticmethod
    def authorize_by_pin(pin, roles=None) -> User:
        if not pin:
            raise ValidationError("Authorization PIN is required")

        roles = roles or User.PRIVILEGED_ROLES
        candidates = (
            User.objects.filter(is_active=True, role__in=roles)
            .exclude(pin__isnull=True)
            .exclude(pin="")
        )
        for user in candidates:
            if user.check_pin(pin):
                logger.info(f"[AuthorizationService.authorize_by_pin] Approved by {user.username} ({user.role})")
                return user

        logger.warning("[AuthorizationService.authorize_by_pin] PIN did not match any privileged user")
        raise AuthorizationError("Invalid manager PIN")

    @staticmethod
    def ensure_privileged(user, action="perform this action"):
        if user is None or not getattr(user, "is_active", False):
            raise AuthorizationError(f"Manager authorization required to {action}")
        if user.role not in User.PRIVILEGED_ROLES:
            raise AuthorizationError(f"{user.username} is not allowed to {action}")
        return user

    @staticmethod
    def resolve_approver(operator, pin=None, action="perform this action") -> User:
        """
        The approver is the operator when they are privileged, otherwise whoever
        owns the supplied PIN.
        """
        if operator is not None and getattr(operator, "role", None) in User.PRIVILEGED_ROLES and not pin:
            return operator
        if pin:
            return AuthorizationService.authorize_by_pin(pin)
        raise AuthorizationError(f"Manager authorization required to {action}")
