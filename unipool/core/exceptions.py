"""
Domain errors raised by the ride and booking services.

Every error carries a machine-readable kind (``error``), a human message and
the offending constraint in ``details`` so the client can render something
specific like "only 1 seat left". The API layer turns them into
``ErrorResponse`` payloads using ``status_code``.
"""

from typing import Any, Dict, Optional


class UnipoolError(Exception):
    """Base class for all domain errors."""

    error = "unipool_error"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message, "details": self.details}


class ValidationError(UnipoolError):
    """Malformed input: bad seat counts, negative price, bad stars."""

    error = "validation_error"
    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None, **details):
        if field:
            details["field"] = field
        super().__init__(message, details)


class NotFoundError(UnipoolError):
    error = "not_found"
    status_code = 404
    entity = "resource"

    def __init__(self, entity_id):
        super().__init__(
            f"{self.entity.capitalize()} {entity_id} not found",
            {"id": entity_id},
        )


class RideNotFoundError(NotFoundError):
    error = "ride_not_found"
    entity = "ride"


class RequestNotFoundError(NotFoundError):
    error = "request_not_found"
    entity = "booking request"


class BookingNotFoundError(NotFoundError):
    error = "booking_not_found"
    entity = "booking"


class NotificationNotFoundError(NotFoundError):
    error = "notification_not_found"
    entity = "notification"


class ChatNotFoundError(NotFoundError):
    error = "chat_not_found"
    entity = "chat"


class RideNotActiveError(UnipoolError):
    error = "ride_not_active"
    status_code = 409

    def __init__(self, ride_id, status):
        super().__init__(
            f"Ride {ride_id} is no longer active ({status})",
            {"ride_id": ride_id, "status": status},
        )


class InsufficientSeatsError(UnipoolError):
    error = "insufficient_seats"
    status_code = 409

    def __init__(self, ride_id, requested: int, available: int):
        noun = "seat" if available == 1 else "seats"
        super().__init__(
            f"Only {available} {noun} left on ride {ride_id}, {requested} requested",
            {"ride_id": ride_id, "requested": requested, "available": available},
        )
        self.requested = requested
        self.available = available


class DuplicateRequestError(UnipoolError):
    error = "duplicate_request"
    status_code = 409

    def __init__(self, ride_id, rider_id, existing_id=None):
        super().__init__(
            f"Rider {rider_id} already has an open request or booking on ride {ride_id}",
            {"ride_id": ride_id, "rider_id": rider_id, "existing_id": existing_id},
        )


class DuplicateRatingError(UnipoolError):
    error = "duplicate_rating"
    status_code = 409

    def __init__(self, rater_id, ratee_id, ride_id=None):
        super().__init__(
            f"{rater_id} already rated {ratee_id} for this ride",
            {"rater_id": rater_id, "ratee_id": ratee_id, "ride_id": ride_id},
        )


class NotOwnerError(UnipoolError):
    error = "not_owner"
    status_code = 403

    def __init__(self, user_id, action: str):
        super().__init__(
            f"User {user_id} is not allowed to {action}",
            {"user_id": user_id, "action": action},
        )


class InvalidStateError(UnipoolError):
    """Illegal status transition."""

    error = "invalid_state"
    status_code = 409

    def __init__(self, message: str, current=None, **details):
        if current is not None:
            details["current"] = current
        super().__init__(message, details)
