"""
Business exceptions shared by every app, plus the DRF handler that turns them
into short, typed error responses.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class POSError(Exception):
    """Base exception for order-lifecycle errors."""

    default_message = "Request could not be completed"
    code = "pos_error"
    status_code = status.HTTP_400_BAD_REQUEST
    retryable = False

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(POSError):
    """Raised when a request violates a business rule before anything is mutated."""

    default_message = "Invalid request"
    code = "validation_error"


class OutOfStock(POSError):
    """Raised when a strictly tracked item cannot cover the requested quantity."""

    default_message = "Item is out of stock"
    code = "out_of_stock"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, item_name=None, requested=None, available=None, message=None):
        self.item_name = item_name
        self.requested = requested
        self.available = available
        if message is None and item_name:
            if available:
                message = f"{item_name} is low on stock: only {available} available"
            else:
                message = f"{item_name} is out of stock"
        super().__init__(message)


class NotFound(POSError):
    """Raised when a workspace, order, session, line, ticket or catalog item does not exist."""

    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity="Record", identifier=None, message=None):
        self.entity = entity
        self.identifier = identifier
        if message is None:
            message = f"{entity} not found"
        super().__init__(message)


class InvalidStateTransition(POSError):
    """Raised when a state machine refuses the requested move."""

    code = "invalid_state_transition"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, entity, current_status, target_status=None, message=None):
        self.entity = entity
        self.current_status = current_status
        self.target_status = target_status
        if message is None:
            if target_status is None:
                message = f"{entity} already {str(current_status).lower()}"
            else:
                message = (
                    f"Cannot change {entity.lower()} from "
                    f"{str(current_status).lower()} to {str(target_status).lower()}"
                )
        super().__init__(message)


class ConflictError(POSError):
    """Raised when the request collides with existing state (e.g. an occupied table)."""

    default_message = "Request conflicts with the current state"
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class PersistenceError(POSError):
    """Raised when the durable store rejects a write. Callers may retry."""

    default_message = "Could not save changes, please try again"
    code = "persistence_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True


class AuthorizationError(POSError):
    """Raised when no privileged principal vouches for a sensitive action."""

    default_message = "Manager authorization required"
    code = "authorization_required"
    status_code = status.HTTP_403_FORBIDDEN


def pos_exception_handler(exc, context):
    """
    Map POSError subclasses to `{"error", "code", "retryable"}` responses and
    defer everything else to DRF's default handler.
    """
    if isinstance(exc, POSError):
        view = context.get("view")
        view_name = view.__class__.__name__ if view else "unknown"
        if exc.retryable:
            logger.error(f"[{view_name}] {exc.__class__.__name__}: {exc.message}")
        else:
            logger.info(f"[{view_name}] Rejected with {exc.code}: {exc.message}")

        return Response(
            {"error": exc.message, "code": exc.code, "retryable": exc.retryable},
            status=exc.status_code,
        )

    return exception_handler(exc, context)
