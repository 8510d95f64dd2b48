from __future__ import annotations

from enum import StrEnum
from typing import ClassVar


class ErrorKind(StrEnum):
    NOT_FOUND = "not_found"
    VALIDATION_FAILED = "validation_failed"
    CONFLICT = "conflict"
    PERMISSION_DENIED = "permission_denied"
    UPSTREAM_FAILED = "upstream_failed"


class DomainError(Exception):
    """Base class for every business-rule failure.

    Each concrete subclass carries a stable, caller-facing ``message``; the
    optional ``detail`` is for logs only and never reaches the caller.
    """

    kind: ClassVar[ErrorKind]
    message: ClassVar[str] = "domain error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.message)
        self.detail = detail


class NotFoundError(DomainError):
    kind = ErrorKind.NOT_FOUND
    message = "resource not found"


class ValidationFailedError(DomainError):
    kind = ErrorKind.VALIDATION_FAILED
    message = "invalid request"


class ConflictError(DomainError):
    kind = ErrorKind.CONFLICT
    message = "conflicting state"


class PermissionDeniedError(DomainError):
    kind = ErrorKind.PERMISSION_DENIED
    message = "operation not permitted"


class UpstreamError(DomainError):
    """A collaborator or backing store failed; ``source`` names it."""

    kind = ErrorKind.UPSTREAM_FAILED
    message = "upstream service failed"

    def __init__(self, source: str, detail: str | None = None) -> None:
        super().__init__(detail)
        self.source = source


# --- not found -------------------------------------------------------------


class UserNotFoundError(NotFoundError):
    message = "user not found"


class CategoryNotFoundError(NotFoundError):
    message = "category not found"


class RequirementNotFoundError(NotFoundError):
    message = "category requirement not found"


class UserCategoryNotFoundError(NotFoundError):
    message = "user does not hold this category"


class CourtNotFoundError(NotFoundError):
    message = "court not found"


class ReservationNotFoundError(NotFoundError):
    message = "reservation not found"


class TrainingNotFoundError(NotFoundError):
    message = "training not found"


class TournamentNotFoundError(NotFoundError):
    message = "tournament not found"


class RegistrationNotFoundError(NotFoundError):
    message = "registration not found"


class RequestNotFoundError(NotFoundError):
    message = "request not found"


# --- validation ------------------------------------------------------------


class MissingNameError(ValidationFailedError):
    message = "name is required"


class InvalidAgeRangeError(ValidationFailedError):
    message = "invalid age range: min_age must be less than max_age"


class InvalidRequirementError(ValidationFailedError):
    message = "a category cannot require itself"


class InvalidReservationTimeError(ValidationFailedError):
    message = "invalid reservation time: end time must be after start time"


class ReservationPurposeMissingError(ValidationFailedError):
    message = "reservation must be linked to a training or a tournament"


class ReservationPurposeConflictError(ValidationFailedError):
    message = "cannot link a reservation to both a training and a tournament"


class InvalidEventDurationError(ValidationFailedError):
    message = "invalid dates: start must be before end and the duration must be between 10 minutes and 5 hours"


class InvalidPositionError(ValidationFailedError):
    message = "invalid position, the position must be positive"


class InvalidAssistanceDateError(ValidationFailedError):
    message = "attendance can only be recorded while the event is running"


class RegistrationClosedError(ValidationFailedError):
    message = "registration closed: the event has already started"


class InvalidAmountError(ValidationFailedError):
    message = "invalid payment amount"


# --- conflict --------------------------------------------------------------


class EmailAlreadyExistsError(ConflictError):
    message = "email already registered"


class CategoryAlreadyExistsError(ConflictError):
    message = "category already exists"


class UserAlreadyHasCategoryError(ConflictError):
    message = "user already has this category"


class CourtNameExistsError(ConflictError):
    message = "court name already exists"


class CourtHasReservationsError(ConflictError):
    message = "court still has active reservations"


class CourtUnavailableError(ConflictError):
    message = "court is already reserved for the given time"


class EventAlreadyReservedError(ConflictError):
    message = "event already has a court reservation"


class AlreadyRegisteredError(ConflictError):
    message = "user already registered for this event"


class AlreadyAttendedError(ConflictError):
    message = "attendance already recorded for this user"


class PositionAlreadyTakenError(ConflictError):
    message = "invalid position, already taken"


class RequestAlreadyCompletedError(ConflictError):
    message = "request already completed"


# --- permission ------------------------------------------------------------


class InvalidUserAgeError(PermissionDeniedError):
    message = "user age is outside the category age range"


class UserDoesNotMeetRequirementsError(PermissionDeniedError):
    message = "user does not meet category requirements"


class InvalidRequirementLevelError(PermissionDeniedError):
    message = "user level is below the level required by the category"


class NotATrainerError(PermissionDeniedError):
    message = "assigned user is not a trainer"


class InsufficientTuitionError(PermissionDeniedError):
    message = "user has no active tuition covering the minimum payment"


class NotRegisteredError(PermissionDeniedError):
    message = "user not registered for this event"


class UserDidNotAttendError(PermissionDeniedError):
    message = "user did not attend this tournament"


class SelfApprovalNotAllowedError(PermissionDeniedError):
    message = "cannot approve or reject your own request"


# --- upstream --------------------------------------------------------------


class StorageUnavailableError(UpstreamError):
    message = "storage backend failed"
