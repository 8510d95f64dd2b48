import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_serializer

from .models import (
    ApprovalRequest,
    Category,
    CategoryRequirement,
    Court,
    CourtReservation,
    Level,
    Tournament,
    TournamentAttendance,
    TournamentRegistration,
    Training,
    TrainingRegistration,
    Tuition,
    User,
    UserCategory,
    UserRole,
)
from .utils.time import utc_naive_to_aware


def _aware(dt: Optional[datetime]) -> Optional[datetime]:
    return utc_naive_to_aware(dt) if dt is not None else None


class UserCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255)
    birth_date: date
    role: UserRole = UserRole.USER


class RoleUpdate(BaseModel):
    role: UserRole


class UserRead(BaseModel):
    user_id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    birth_date: date
    role: UserRole

    @classmethod
    def from_db(cls, *, user: User) -> "UserRead":
        return cls(
            user_id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            birth_date=user.birth_date,
            role=user.role,
        )


class CategoryWrite(BaseModel):
    name: str = Field(max_length=255)
    min_age: int = Field(ge=0)
    max_age: int = Field(ge=0)


class CategoryRead(BaseModel):
    category_id: uuid.UUID
    name: str
    min_age: int
    max_age: int

    @classmethod
    def from_db(cls, *, category: Category) -> "CategoryRead":
        return cls(category_id=category.id, name=category.name, min_age=category.min_age, max_age=category.max_age)


class RequirementCreate(BaseModel):
    prerequisite_category_id: uuid.UUID
    required_level: Level
    description: str = Field(default="", max_length=500)


class RequirementRead(BaseModel):
    requirement_id: uuid.UUID
    category_id: uuid.UUID
    prerequisite_category_id: uuid.UUID
    required_level: Level
    description: str

    @classmethod
    def from_db(cls, *, requirement: CategoryRequirement) -> "RequirementRead":
        return cls(
            requirement_id=requirement.id,
            category_id=requirement.category_id,
            prerequisite_category_id=requirement.prerequisite_category_id,
            required_level=requirement.required_level,
            description=requirement.description,
        )


class LevelUpdate(BaseModel):
    level: Level


class UserCategoryRead(BaseModel):
    user_id: uuid.UUID
    category_id: uuid.UUID
    level: Level

    @classmethod
    def from_db(cls, *, membership: UserCategory) -> "UserCategoryRead":
        return cls(user_id=membership.user_id, category_id=membership.category_id, level=membership.level)


class EligibilityRead(BaseModel):
    user_id: uuid.UUID
    category_id: uuid.UUID
    eligible: bool
    reason: Optional[str] = None


class CourtCreate(BaseModel):
    name: str = Field(max_length=255)


class CourtRead(BaseModel):
    court_id: uuid.UUID
    name: str

    @classmethod
    def from_db(cls, *, court: Court) -> "CourtRead":
        return cls(court_id=court.id, name=court.name)


class CourtAvailability(BaseModel):
    court_id: uuid.UUID
    available: bool


class ReservationRead(BaseModel):
    reservation_id: uuid.UUID
    court_id: uuid.UUID
    starts_at: datetime
    ends_at: datetime
    training_id: Optional[uuid.UUID]
    tournament_id: Optional[uuid.UUID]

    @field_serializer("starts_at", "ends_at")
    def _ser_datetime(self, dt: datetime) -> str:
        return dt.astimezone(timezone.utc).isoformat()

    @classmethod
    def from_db(cls, *, reservation: CourtReservation) -> "ReservationRead":
        return cls(
            reservation_id=reservation.id,
            court_id=reservation.court_id,
            starts_at=utc_naive_to_aware(reservation.starts_at),
            ends_at=utc_naive_to_aware(reservation.ends_at),
            training_id=reservation.training_id,
            tournament_id=reservation.tournament_id,
        )


class TrainingWrite(BaseModel):
    name: str = Field(max_length=255)
    category_id: uuid.UUID
    trainer_id: uuid.UUID
    starts_at: datetime
    ends_at: datetime
    minimum_payment: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    court_id: Optional[uuid.UUID] = None


class TrainingRead(BaseModel):
    training_id: uuid.UUID
    name: str
    category_id: uuid.UUID
    trainer_id: uuid.UUID
    starts_at: datetime
    ends_at: datetime
    minimum_payment: Decimal
    reservation: Optional[ReservationRead] = None

    @field_serializer("starts_at", "ends_at")
    def _ser_datetime(self, dt: datetime) -> str:
        return dt.astimezone(timezone.utc).isoformat()

    @classmethod
    def from_db(cls, *, training: Training, reservation: Optional[CourtReservation] = None) -> "TrainingRead":
        return cls(
            training_id=training.id,
            name=training.name,
            category_id=training.category_id,
            trainer_id=training.trainer_id,
            starts_at=utc_naive_to_aware(training.starts_at),
            ends_at=utc_naive_to_aware(training.ends_at),
            minimum_payment=training.minimum_payment,
            reservation=ReservationRead.from_db(reservation=reservation) if reservation is not None else None,
        )


class TournamentWrite(BaseModel):
    name: str = Field(max_length=255)
    category_id: uuid.UUID
    starts_at: datetime
    ends_at: datetime
    court_id: Optional[uuid.UUID] = None


class TournamentRead(BaseModel):
    tournament_id: uuid.UUID
    name: str
    category_id: uuid.UUID
    starts_at: datetime
    ends_at: datetime
    reservation: Optional[ReservationRead] = None

    @field_serializer("starts_at", "ends_at")
    def _ser_datetime(self, dt: datetime) -> str:
        return dt.astimezone(timezone.utc).isoformat()

    @classmethod
    def from_db(cls, *, tournament: Tournament, reservation: Optional[CourtReservation] = None) -> "TournamentRead":
        return cls(
            tournament_id=tournament.id,
            name=tournament.name,
            category_id=tournament.category_id,
            starts_at=utc_naive_to_aware(tournament.starts_at),
            ends_at=utc_naive_to_aware(tournament.ends_at),
            reservation=ReservationRead.from_db(reservation=reservation) if reservation is not None else None,
        )


class TrainingAttendanceMark(BaseModel):
    user_id: uuid.UUID
    attended: bool = True


class TrainingRegistrationRead(BaseModel):
    training_id: uuid.UUID
    user_id: uuid.UUID
    registered_at: datetime
    attended: bool
    attended_at: Optional[datetime]

    @classmethod
    def from_db(cls, *, registration: TrainingRegistration) -> "TrainingRegistrationRead":
        return cls(
            training_id=registration.training_id,
            user_id=registration.user_id,
            registered_at=utc_naive_to_aware(registration.registered_at),
            attended=registration.attended,
            attended_at=_aware(registration.attended_at),
        )


class TournamentRegistrationRead(BaseModel):
    tournament_id: uuid.UUID
    user_id: uuid.UUID
    registered_at: datetime

    @classmethod
    def from_db(cls, *, registration: TournamentRegistration) -> "TournamentRegistrationRead":
        return cls(
            tournament_id=registration.tournament_id,
            user_id=registration.user_id,
            registered_at=utc_naive_to_aware(registration.registered_at),
        )


class AttendanceCreate(BaseModel):
    user_id: uuid.UUID
    position: int


class PositionUpdate(BaseModel):
    position: int


class AttendanceRead(BaseModel):
    tournament_id: uuid.UUID
    user_id: uuid.UUID
    attended_at: datetime
    position: int

    @classmethod
    def from_db(cls, *, attendance: TournamentAttendance) -> "AttendanceRead":
        return cls(
            tournament_id=attendance.tournament_id,
            user_id=attendance.user_id,
            attended_at=utc_naive_to_aware(attendance.attended_at),
            position=attendance.position,
        )


class TuitionPay(BaseModel):
    amount: Decimal = Field(max_digits=10, decimal_places=2)


class TuitionRead(BaseModel):
    tuition_id: uuid.UUID
    user_id: uuid.UUID
    amount: Decimal
    paid_at: datetime

    @classmethod
    def from_db(cls, *, tuition: Tuition) -> "TuitionRead":
        return cls(
            tuition_id=tuition.id,
            user_id=tuition.user_id,
            amount=tuition.amount,
            paid_at=utc_naive_to_aware(tuition.paid_at),
        )


class ActiveTuitionRead(BaseModel):
    user_id: uuid.UUID
    amount: Decimal
    active: bool


class RequestCreate(BaseModel):
    requested_command: str = Field(max_length=255)
    justification: str = Field(default="", max_length=5000)


class RequestDecision(BaseModel):
    approved: bool


class RequestRead(BaseModel):
    request_id: uuid.UUID
    requester_id: uuid.UUID
    requested_command: str
    justification: str
    approved: Optional[bool]
    approver_id: Optional[uuid.UUID]
    created_at: datetime
    decided_at: Optional[datetime]

    @classmethod
    def from_db(cls, *, request: ApprovalRequest) -> "RequestRead":
        return cls(
            request_id=request.id,
            requester_id=request.requester_id,
            requested_command=request.requested_command,
            justification=request.justification,
            approved=request.approved,
            approver_id=request.approver_id,
            created_at=utc_naive_to_aware(request.created_at),
            decided_at=_aware(request.decided_at),
        )
