"""Tests for the weekly schedule composer and calendar writes."""

from datetime import date

import pytest

from app.calendar.schedule import WeeklyScheduleComposer
from app.calendar.write_service import CalendarWriteService
from app.core.errors import NotFoundError, ValidationError
from app.db.models import CardioSession

MONDAY = date(2026, 3, 9)
WEDNESDAY = date(2026, 3, 11)
SUNDAY = date(2026, 3, 15)

INTERVALS = {
    "training_type": "series",
    "blocks": [
        {"type": "continuous", "duration": 15, "target_hr": "Z2"},
        {"type": "intervals", "sets": 6, "work_distance": 1, "work_target_pace": "4:10/km", "rest_duration": 2},
        {"type": "station", "duration": 5, "notes": "Movilidad"},
    ],
}


@pytest.fixture
def writes(db_session):
    return CalendarWriteService(db_session)


@pytest.fixture
def composer(db_session):
    return WeeklyScheduleComposer(db_session, missing_day_label="Día eliminado")


def _strength(writes, built_program, day_index, on):
    program = built_program["program"]
    return writes.schedule_strength(
        coach_id="coach-1",
        client_id="client-1",
        program_id=program.id,
        day_id=built_program["days"][day_index].id,
        session_date=on,
    )


def test_schedule_merges_and_orders(writes, composer, built_program):
    cardio = writes.schedule_cardio(
        coach_id="coach-1", client_id="client-1", session_date=WEDNESDAY, name="Series 6x1000", structure=INTERVALS
    )
    legs = _strength(writes, built_program, 1, WEDNESDAY)
    upper = _strength(writes, built_program, 0, MONDAY)

    items = composer.get_schedule("client-1", MONDAY, SUNDAY)

    assert [item.id for item in items] == [upper.id, cardio.id, legs.id]
    assert items[0].kind == "strength"
    assert items[0].day_name == "Torso"
    assert items[0].program_name == "Hipertrofia"
    assert items[0].resolved is True
    assert items[1].kind == "cardio"
    assert [block.type for block in items[1].structure.blocks] == ["continuous", "intervals", "station"]


def test_window_is_inclusive_and_per_client(writes, composer, built_program):
    _strength(writes, built_program, 0, MONDAY)
    _strength(writes, built_program, 0, SUNDAY)
    writes.schedule_cardio(coach_id="coach-1", client_id="client-2", session_date=MONDAY, name="Rodaje")

    assert len(composer.get_schedule("client-1", MONDAY, SUNDAY)) == 2
    assert len(composer.get_schedule("client-1", date(2026, 3, 10), date(2026, 3, 14))) == 0
    assert len(composer.get_schedule("client-2", MONDAY, MONDAY)) == 1


def test_deleted_day_renders_placeholder(writes, composer, structure, built_program):
    """A session scheduled on a day that is later deleted still shows up."""
    scheduled = _strength(writes, built_program, 0, MONDAY)
    structure.replace_days(built_program["program"].id, ["Nuevo día"])

    items = composer.get_schedule("client-1", MONDAY, SUNDAY)

    assert len(items) == 1
    assert items[0].id == scheduled.id
    assert items[0].resolved is False
    assert items[0].day_name == "Día eliminado"
    assert items[0].program_name == "Hipertrofia"


def test_start_after_end(composer):
    with pytest.raises(ValidationError):
        composer.get_schedule("client-1", SUNDAY, MONDAY)


class TestWrites:
    def test_day_must_belong_to_program(self, writes, lifecycle, structure, built_program):
        other = lifecycle.create(
            "training", coach_id="coach-1", client_id="client-1", effective_from=date(2026, 1, 1), total_weeks=2
        )
        other_day = structure.replace_days(other.id, ["A"])[0]
        with pytest.raises(ValidationError):
            writes.schedule_strength(
                coach_id="coach-1",
                client_id="client-1",
                program_id=built_program["program"].id,
                day_id=other_day.id,
                session_date=MONDAY,
            )

    def test_unknown_program(self, writes):
        with pytest.raises(NotFoundError):
            writes.schedule_strength(
                coach_id="coach-1", client_id="client-1", program_id="missing", day_id="x", session_date=MONDAY
            )

    def test_invalid_cardio_block(self, writes):
        with pytest.raises(ValidationError) as exc_info:
            writes.schedule_cardio(
                coach_id="coach-1",
                client_id="client-1",
                session_date=MONDAY,
                name="Series",
                structure={"blocks": [{"type": "intervals", "sets": 0}]},
            )
        assert exc_info.value.path.startswith("structure.blocks[0]")

    def test_complete_cardio_with_results(self, db_session, writes):
        cardio = writes.schedule_cardio(coach_id="coach-1", client_id="client-1", session_date=MONDAY, name="Rodaje")
        writes.set_completed("cardio", cardio.id, results={"rpe": 6, "duration_minutes": 45, "distance_km": 8.2})

        stored = db_session.get(CardioSession, cardio.id)
        assert stored.is_completed is True
        assert (stored.rpe, stored.duration_minutes, stored.distance_km) == (6, 45, 8.2)

    def test_strength_takes_no_results(self, writes, built_program):
        session = _strength(writes, built_program, 0, MONDAY)
        with pytest.raises(ValidationError):
            writes.set_completed("strength", session.id, results={"rpe": 7})
        assert writes.set_completed("strength", session.id).is_completed is True

    def test_unschedule(self, writes, composer, built_program):
        session = _strength(writes, built_program, 0, MONDAY)
        writes.unschedule("strength", session.id)
        assert composer.get_schedule("client-1", MONDAY, SUNDAY) == []
        with pytest.raises(NotFoundError):
            writes.unschedule("strength", session.id)
