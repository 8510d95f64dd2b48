from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Optional

from sqlalchemy import CheckConstraint, Computed, Enum, ForeignKey, Index, UniqueConstraint
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql.sqltypes import Boolean, Date, DateTime, Integer, Numeric, SmallInteger, String, Text, Uuid

# Evaluates to 1 for live rows and NULL once soft-deleted, so unique constraints
# that include it only apply among live rows.
LIVE_MARKER = "CASE WHEN deleted_at IS NULL THEN 1 END"

# Requirement evaluation order is insertion order, which needs sub-second timestamps.
PRECISE_DATETIME = DateTime(timezone=False).with_variant(mysql.DATETIME(fsp=6), "mysql")


class Base(DeclarativeBase):
    pass


class UserRole(StrEnum):
    USER = "user"
    ADMIN = "admin"
    TRAINER = "trainer"


class Level(StrEnum):
    BEGINNER = "beginner"
    AMATEUR = "amateur"
    PROFESSIONAL = "professional"

    @property
    def rank(self) -> int:
        return _LEVEL_RANKS[self]


_LEVEL_RANKS = {Level.BEGINNER: 0, Level.AMATEUR: 1, Level.PROFESSIONAL: 2}


class EventKind(StrEnum):
    TRAINING = "training"
    TOURNAMENT = "tournament"


def _str_enum(enum_cls: type[StrEnum]) -> Enum:
    return Enum(
        enum_cls,
        values_callable=lambda cls: [e.value for e in cls],
        native_enum=False,
    )


def _live_marker() -> Mapped[Optional[int]]:
    return mapped_column(SmallInteger, Computed(LIVE_MARKER, persisted=True), nullable=True)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    birth_date: Mapped[date] = mapped_column(Date, nullable=False)
    role: Mapped[UserRole] = mapped_column(_str_enum(UserRole), nullable=False, default=UserRole.USER)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)


class Category(Base):
    __tablename__ = "categories"
    __table_args__ = (
        CheckConstraint("min_age < max_age", name="chk_categories_age_range"),
        UniqueConstraint("name", "live", name="uq_categories_name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    min_age: Mapped[int] = mapped_column(Integer, nullable=False)
    max_age: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    live: Mapped[Optional[int]] = _live_marker()


class CategoryRequirement(Base):
    __tablename__ = "category_requirements"
    __table_args__ = (
        CheckConstraint("category_id <> prerequisite_category_id", name="chk_req_not_self"),
        Index("idx_req_category", "category_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    category_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("categories.id"), nullable=False)
    prerequisite_category_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("categories.id"), nullable=False)
    required_level: Mapped[Level] = mapped_column(_str_enum(Level), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(PRECISE_DATETIME, nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)


class UserCategory(Base):
    __tablename__ = "user_categories"
    __table_args__ = (
        UniqueConstraint("user_id", "category_id", "live", name="uq_user_categories"),
        Index("idx_user_categories_user", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    category_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("categories.id"), nullable=False)
    level: Mapped[Level] = mapped_column(_str_enum(Level), nullable=False, default=Level.BEGINNER)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    live: Mapped[Optional[int]] = _live_marker()


class Court(Base):
    __tablename__ = "courts"
    __table_args__ = (UniqueConstraint("name", "live", name="uq_courts_name"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    live: Mapped[Optional[int]] = _live_marker()


class CourtReservation(Base):
    __tablename__ = "court_reservations"
    __table_args__ = (
        CheckConstraint("starts_at < ends_at", name="chk_court_res_time"),
        CheckConstraint(
            "(training_id IS NULL) <> (tournament_id IS NULL)",
            name="chk_court_res_purpose",
        ),
        Index("idx_court_res_window", "court_id", "starts_at", "ends_at"),
        UniqueConstraint("training_id", "live", name="uq_court_res_training"),
        UniqueConstraint("tournament_id", "live", name="uq_court_res_tournament"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    court_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("courts.id"), nullable=False)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    training_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("trainings.id"), nullable=True)
    tournament_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("tournaments.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    live: Mapped[Optional[int]] = _live_marker()

    @property
    def event_kind(self) -> EventKind:
        return EventKind.TRAINING if self.training_id is not None else EventKind.TOURNAMENT

    @property
    def event_id(self) -> Optional[uuid.UUID]:
        return self.training_id if self.training_id is not None else self.tournament_id


class Training(Base):
    __tablename__ = "trainings"
    __table_args__ = (
        CheckConstraint("starts_at < ends_at", name="chk_trainings_time"),
        CheckConstraint("minimum_payment >= 0", name="chk_trainings_min_payment"),
        Index("idx_trainings_trainer", "trainer_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("categories.id"), nullable=False)
    trainer_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    minimum_payment: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)


class TrainingRegistration(Base):
    __tablename__ = "training_registrations"
    __table_args__ = (
        UniqueConstraint("training_id", "user_id", "live", name="uq_training_reg"),
        Index("idx_training_reg_user", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    training_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("trainings.id"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    registered_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    attended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    attended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    live: Mapped[Optional[int]] = _live_marker()


class Tournament(Base):
    __tablename__ = "tournaments"
    __table_args__ = (CheckConstraint("starts_at < ends_at", name="chk_tournaments_time"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("categories.id"), nullable=False)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)


class TournamentRegistration(Base):
    __tablename__ = "tournament_registrations"
    __table_args__ = (
        UniqueConstraint("tournament_id", "user_id", "live", name="uq_tournament_reg"),
        Index("idx_tournament_reg_user", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tournament_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tournaments.id"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    registered_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    live: Mapped[Optional[int]] = _live_marker()


class TournamentAttendance(Base):
    __tablename__ = "tournament_attendances"
    __table_args__ = (
        CheckConstraint("position >= 1", name="chk_attendance_position"),
        UniqueConstraint("tournament_id", "user_id", "live", name="uq_attendance_user"),
        UniqueConstraint("tournament_id", "position", "live", name="uq_attendance_position"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tournament_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tournaments.id"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    attended_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    live: Mapped[Optional[int]] = _live_marker()


class Tuition(Base):
    __tablename__ = "tuitions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="chk_tuitions_amount"),
        Index("idx_tuitions_user_paid", "user_id", "paid_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    paid_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)


class ApprovalRequest(Base):
    __tablename__ = "approval_requests"
    __table_args__ = (Index("idx_requests_requester", "requester_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    requester_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    requested_command: Mapped[str] = mapped_column(String(255), nullable=False)
    justification: Mapped[str] = mapped_column(Text, nullable=False)
    approved: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    approver_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    decided_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
