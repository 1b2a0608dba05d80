"""Tests for the operator CLI."""

from datetime import date

from typer.testing import CliRunner

from app.calendar.write_service import CalendarWriteService
from cli.cli import app

runner = CliRunner()


def test_schedule_prints_sessions(db_session, built_program):
    writes = CalendarWriteService(db_session)
    writes.schedule_strength(
        coach_id="coach-1",
        client_id="client-1",
        program_id=built_program["program"].id,
        day_id=built_program["days"][0].id,
        session_date=date(2026, 3, 9),
    )
    writes.schedule_cardio(coach_id="coach-1", client_id="client-1", session_date=date(2026, 3, 11), name="Rodaje")

    result = runner.invoke(app, ["schedule", "--client-id", "client-1", "--start", "2026-03-09"])

    assert result.exit_code == 0, result.output
    assert "Torso" in result.output
    assert "Rodaje" in result.output


def test_schedule_empty_window(db_session):
    result = runner.invoke(app, ["schedule", "--client-id", "client-9", "--start", "2026-03-09", "--days", "3"])
    assert result.exit_code == 0
    assert "No sessions" in result.output


def test_schedule_rejects_bad_date(db_session):
    result = runner.invoke(app, ["schedule", "--client-id", "client-1", "--start", "09/03/2026"])
    assert result.exit_code == 2
