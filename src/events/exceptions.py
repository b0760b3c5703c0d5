"""Business-rule errors raised by the event services.

Every error carries a stable ``code`` and the HTTP status it maps to. The API layer turns them into
``{"code": ..., "detail": ...}`` responses.
"""

import typing as t


class FelicityError(Exception):
    """Base class of all business-rule violations."""

    code: t.ClassVar[str] = "error"
    status_code: t.ClassVar[int] = 400
    default_detail: t.ClassVar[str] = "The request could not be processed."

    def __init__(self, detail: str | None = None) -> None:
        """Use the default message unless a specific one is given."""
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


# ---- Validation ----


class InputValidationError(FelicityError):
    code = "validation_error"
    status_code = 400
    default_detail = "Invalid input."


class InvalidCredentialError(InputValidationError):
    code = "invalid_credential"
    default_detail = "Invalid QR code."


# ---- Conflict ----


class ConflictError(FelicityError):
    code = "conflict"
    status_code = 409
    default_detail = "The request conflicts with the current state."


class EventNotOpenError(ConflictError):
    code = "event_not_open"
    default_detail = "Event is not open for registration."


class RegistrationClosedError(ConflictError):
    code = "registration_closed"
    default_detail = "Registration deadline has passed."


class NotEligibleError(ConflictError):
    code = "not_eligible"
    status_code = 403
    default_detail = "You are not eligible for this event."


class AlreadyRegisteredError(ConflictError):
    code = "already_registered"
    default_detail = "You are already registered for this event."


class EventFullError(ConflictError):
    code = "event_full"
    default_detail = "Event is full."


class InsufficientStockError(ConflictError):
    code = "insufficient_stock"
    default_detail = "Insufficient stock."


class OversoldError(ConflictError):
    code = "oversold"
    default_detail = "Not enough stock left to approve this order."


# ---- Not found ----


class NotFoundError(FelicityError):
    code = "not_found"
    status_code = 404
    default_detail = "Not found."


class EventNotFoundError(NotFoundError):
    code = "event_not_found"
    default_detail = "Event not found."


class RegistrationNotFoundError(NotFoundError):
    code = "registration_not_found"
    default_detail = "Registration not found."


# ---- State ----


class StateError(FelicityError):
    code = "invalid_state"
    status_code = 400
    default_detail = "This action is not allowed in the current state."


class NotCancellableError(StateError):
    code = "not_cancellable"
    default_detail = "This registration cannot be cancelled."


class EventLockedError(StateError):
    code = "event_locked"
    default_detail = "This event cannot be modified."


class FieldLockedError(StateError):
    code = "field_locked"
    default_detail = "Some fields cannot be edited in the current event status."

    def __init__(self, fields: t.Iterable[str]) -> None:
        """Name the offending fields in the message."""
        self.fields = sorted(fields)
        super().__init__(f"Cannot edit {', '.join(self.fields)} in the current event status.")


class InvalidTransitionError(StateError):
    code = "invalid_transition"
    default_detail = "This status change is not allowed."


class WrongStatusError(StateError):
    code = "wrong_status"
    default_detail = "Registration is not confirmed."


class WrongEventError(StateError):
    code = "wrong_event"
    default_detail = "This ticket is for a different event."


class PaymentAlreadyCompletedError(StateError):
    code = "payment_already_completed"
    default_detail = "Payment has already been completed."


# ---- Internal ----


class InternalError(FelicityError):
    """Unexpected faults. Callers may retry."""

    code = "internal_error"
    status_code = 503
    default_detail = "Temporary failure, please retry."


class TicketIdGenerationError(InternalError):
    code = "ticket_id_generation_failed"
    default_detail = "Could not generate a unique ticket id."
