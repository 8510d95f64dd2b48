import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import pytest
from fastapi import HTTPException
from sportsclub.models import EventKind, UserRole
from sportsclub.routers import common
from sportsclub.routers import tournaments as tournament_router
from sportsclub.routers import trainings as training_router
from sportsclub.schemas import AttendanceCreate, PositionUpdate, TournamentWrite, TrainingWrite

STARTS_AT = datetime(2030, 6, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def audits(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    calls: list[dict[str, Any]] = []

    def fake_emit(**kwargs: Any) -> None:
        calls.append(kwargs)

    monkeypatch.setattr(common, "emit_audit_log", fake_emit)
    return calls


async def _training_payload(club, *, court_id=None, start: datetime = STARTS_AT) -> TrainingWrite:
    category = await club.add_category()
    trainer = await club.add_user(role=UserRole.TRAINER)
    return TrainingWrite(
        name="Footwork",
        category_id=category.id,
        trainer_id=trainer.id,
        starts_at=start,
        ends_at=start + timedelta(hours=1),
        minimum_payment=Decimal("0"),
        court_id=court_id,
    )


@pytest.mark.asyncio
async def test_create_training_emits_event_and_reservation_audit(club, audits) -> None:
    court = await club.add_court()
    payload = await _training_payload(club, court_id=court.id)

    result = await training_router.create_training(payload=payload, stores=club.event_stores(EventKind.TRAINING))

    assert result.reservation is not None
    assert result.reservation.court_id == court.id
    assert [c["action"] for c in audits] == ["event.created", "reservation.created"]
    assert audits[1]["reservation_id"] == result.reservation.reservation_id
    assert audits[0]["entity_id"] == result.training_id


@pytest.mark.asyncio
async def test_create_training_conflict_is_409_without_audit(club, audits) -> None:
    court = await club.add_court()
    stores = club.event_stores(EventKind.TRAINING)
    await training_router.create_training(payload=await _training_payload(club, court_id=court.id), stores=stores)
    audits.clear()

    with pytest.raises(HTTPException) as excinfo:
        await training_router.create_training(
            payload=await _training_payload(club, court_id=court.id, start=STARTS_AT + timedelta(minutes=30)),
            stores=stores,
        )

    assert excinfo.value.status_code == 409
    assert excinfo.value.detail == "court is already reserved for the given time"
    assert audits == []
    assert len(await club.trainings.list()) == 1


@pytest.mark.asyncio
async def test_naive_datetimes_are_rejected(club, audits) -> None:
    payload = await _training_payload(club)
    payload = payload.model_copy(update={"starts_at": datetime(2030, 6, 1, 10, 0)})

    with pytest.raises(HTTPException) as excinfo:
        await training_router.create_training(payload=payload, stores=club.event_stores(EventKind.TRAINING))
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_delete_training_reports_released_reservations(club, audits) -> None:
    court = await club.add_court()
    stores = club.event_stores(EventKind.TRAINING)
    created = await training_router.create_training(payload=await _training_payload(club, court_id=court.id), stores=stores)

    response = await training_router.delete_training(training_id=created.training_id, stores=stores)

    assert response.status_code == 204
    assert [entry["action"] for entry in audits[-2:]] == ["reservation.released", "event.deleted"]
    assert audits[-1]["action"] == "event.deleted"
    assert audits[-1]["extra"] == {"reservations_released": 1}


@pytest.mark.asyncio
async def test_missing_training_is_404(club, audits) -> None:
    payload = await _training_payload(club)
    with pytest.raises(HTTPException) as excinfo:
        await training_router.update_training(
            training_id=uuid.uuid4(),
            payload=payload,
            stores=club.event_stores(EventKind.TRAINING),
        )
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_tournament_attendance_and_position_audit(club, audits, monkeypatch: pytest.MonkeyPatch) -> None:
    category = await club.add_category()
    stores = club.event_stores(EventKind.TOURNAMENT)
    created = await tournament_router.create_tournament(
        payload=TournamentWrite(
            name="Open",
            category_id=category.id,
            starts_at=STARTS_AT,
            ends_at=STARTS_AT + timedelta(hours=3),
        ),
        stores=stores,
    )
    user = await club.add_user()
    await club.tournament_registrations.create(
        tournament_id=created.tournament_id,
        user_id=user.id,
        registered_at=datetime(2030, 5, 1),
    )
    monkeypatch.setattr(
        tournament_router.tournament_usecase,
        "utc_now",
        lambda: datetime(2030, 6, 1, 11, 0),
    )

    attendance = await tournament_router.record_attendance(
        tournament_id=created.tournament_id,
        payload=AttendanceCreate(user_id=user.id, position=2),
        stores=club.tournament_stores,
    )
    assert attendance.position == 2

    updated = await tournament_router.update_position(
        tournament_id=created.tournament_id,
        user_id=user.id,
        payload=PositionUpdate(position=1),
        stores=club.tournament_stores,
    )
    assert updated.position == 1
    assert [c["action"] for c in audits] == ["event.created", "attendance.recorded", "position.updated"]
    assert audits[-1]["extra"] == {"position": 1}


@pytest.mark.asyncio
async def test_audit_failure_after_write_returns_500(club, monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_emit(**kwargs: Any) -> None:
        raise RuntimeError("fail log")

    monkeypatch.setattr(common, "emit_audit_log", fake_emit)

    with pytest.raises(HTTPException) as excinfo:
        await training_router.create_training(
            payload=await _training_payload(club),
            stores=club.event_stores(EventKind.TRAINING),
        )
    assert excinfo.value.status_code == 500
