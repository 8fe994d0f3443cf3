import os
import sys
import datetime
import logging
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import RecordStore
from history_service import (
    HistoryService,
    format_number,
    initial_inputs,
    last_performed,
    latest_entries,
    latest_exercise_data,
    recent_sessions,
)
from models import (
    CardioData,
    CardioEntry,
    EnduranceData,
    EnduranceEntry,
    Exercise,
    ExerciseType,
    StrengthEntry,
    StrengthSet,
    StretchData,
    StretchEntry,
    WorkoutSession,
    WorkoutTemplate,
)

UTC = datetime.timezone.utc
BENCH = Exercise(id="1", name="Bench Press", type=ExerciseType.STRENGTH)
BIKE = Exercise(id="10", name="Bike", type=ExerciseType.CARDIO)
RUN = Exercise(id="12", name="Run", type=ExerciseType.ENDURANCE)
STRETCH = Exercise(id="14", name="Full body stretch", type=ExerciseType.STRETCH)
TEMPLATE = WorkoutTemplate(id="t1", name="Full body", exercises=[BENCH, BIKE, RUN, STRETCH])


def day(n: int) -> datetime.datetime:
    return datetime.datetime(2024, 1, n, 18, 0, tzinfo=UTC)


def bench(weight: float, reps: int = 5) -> StrengthEntry:
    return StrengthEntry(
        exercise_id="1",
        exercise_name="Bench Press",
        data=[StrengthSet(weight=weight, reps=reps)],
    )


def session(sid: str, date: datetime.datetime, *entries, template_id: str = "t1") -> WorkoutSession:
    return WorkoutSession(
        id=sid,
        template_id=template_id,
        template_name="Full body",
        date=date,
        exercises=list(entries),
    )


def test_most_recent_entry_wins():
    sessions = [
        session("a", day(1), bench(60)),
        session("c", day(3), bench(70)),
        session("b", day(2), bench(65)),
    ]
    assert latest_exercise_data(sessions) == {"1": [StrengthSet(weight=70, reps=5)]}


def test_ties_keep_original_order():
    sessions = [
        session("a", day(2), bench(60)),
        session("b", day(2), bench(65)),
        session("c", day(1), bench(70)),
    ]
    assert latest_entries(sessions)["1"] == bench(60)


def test_resolution_is_idempotent_and_does_not_mutate():
    sessions = [session("a", day(1), bench(60)), session("b", day(2), bench(65))]
    before = list(sessions)
    assert latest_entries(sessions) == latest_entries(sessions)
    assert sessions == before


def test_exercises_without_history_are_absent():
    sessions = [session("a", day(1), bench(60))]
    latest = latest_exercise_data(sessions)
    assert "12" not in latest
    assert latest_exercise_data([]) == {}


def test_mixed_exercise_history():
    run = EnduranceEntry(exercise_id="12", exercise_name="Run", data=EnduranceData(time=30, distance=5))
    sessions = [
        session("a", day(1), bench(60), run),
        session("b", day(2), bench(62.5)),
    ]
    latest = latest_exercise_data(sessions)
    assert latest["1"] == [StrengthSet(weight=62.5, reps=5)]
    assert latest["12"] == EnduranceData(time=30, distance=5)


def test_last_performed_and_recent_sessions():
    sessions = [
        session("a", day(1), bench(60)),
        session("b", day(5), bench(60), template_id="t2"),
        session("c", day(3), bench(60)),
    ]
    assert last_performed("t1", sessions) == day(3)
    assert last_performed("t2", sessions) == day(5)
    assert last_performed("missing", sessions) is None
    assert [s.id for s in recent_sessions(sessions, 2)] == ["b", "c"]
    assert recent_sessions(sessions, 0) == []


def test_format_number():
    assert format_number(80.0) == "80"
    assert format_number(82.5) == "82.5"
    assert format_number(0) == ""
    assert format_number(8) == "8"


def test_initial_inputs_without_history():
    assert initial_inputs(TEMPLATE, []) == {
        "1": [{"weight": "", "reps": ""}],
        "10": {"time": "", "level": "", "distance": ""},
        "12": {"time": "", "distance": ""},
        "14": False,
    }


def test_initial_inputs_from_history():
    sessions = [
        session(
            "a",
            day(1),
            StrengthEntry(
                exercise_id="1",
                exercise_name="Bench Press",
                data=[StrengthSet(weight=80, reps=8), StrengthSet(weight=82.5, reps=6)],
            ),
            CardioEntry(exercise_id="10", exercise_name="Bike", data=CardioData(time=20, level=8, distance=0)),
            EnduranceEntry(exercise_id="12", exercise_name="Run", data=EnduranceData(time=30, distance=5)),
            StretchEntry(exercise_id="14", exercise_name="Full body stretch", data=StretchData(completed=True)),
        )
    ]
    assert initial_inputs(TEMPLATE, sessions) == {
        "1": [{"weight": "80", "reps": "8"}, {"weight": "82.5", "reps": "6"}],
        "10": {"time": "20", "level": "8", "distance": ""},
        "12": {"time": "30", "distance": "5"},
        "14": True,
    }


def test_type_drift_falls_back_to_empty_input(caplog):
    retyped = WorkoutTemplate(
        id="t1",
        name="Full body",
        exercises=[Exercise(id="1", name="Bench Press", type=ExerciseType.CARDIO)],
    )
    sessions = [session("a", day(1), bench(60))]
    assert latest_entries(sessions)["1"].type == "strength"
    with caplog.at_level(logging.WARNING):
        inputs = initial_inputs(retyped, sessions)
    assert inputs == {"1": {"time": "", "level": "", "distance": ""}}
    assert "Ignoring strength history" in caplog.text


@pytest.mark.asyncio
async def test_history_service(tmp_path):
    store = RecordStore(str(tmp_path / "history.db"))
    await store.templates.save([TEMPLATE])
    await store.sessions.save(
        [session(str(n), day(n), bench(60 + n)) for n in range(1, 8)]
    )
    service = HistoryService(store)

    inputs = await service.prefill_for_template("t1")
    assert inputs["1"] == [{"weight": "67", "reps": "5"}]
    assert await service.prefill_for_template("missing") is None

    data = await service.dashboard()
    assert data["templates"][0]["template"] == TEMPLATE
    assert data["templates"][0]["last_performed"] == day(7)
    assert [s.id for s in data["recent_sessions"]] == ["7", "6", "5", "4", "3"]

    await store.preferences.save_dashboard_limit(2)
    data = await service.dashboard()
    assert [s.id for s in data["recent_sessions"]] == ["7", "6"]
