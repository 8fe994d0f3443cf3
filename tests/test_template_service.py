import os
import sys
import datetime
import logging
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import RecordStore
from models import Exercise, ExerciseType, WorkoutSession, StretchEntry, StretchData
from template_service import (
    ExerciseCatalog,
    ExerciseValidationError,
    TemplateService,
    TemplateValidationError,
    add_exercise,
)

BENCH = Exercise(id="1", name="Bench Press", type=ExerciseType.STRENGTH)
RUN = Exercise(id="12", name="Run", type=ExerciseType.ENDURANCE)


def test_add_exercise_deduplicates():
    assert add_exercise([BENCH], RUN) == [BENCH, RUN]
    assert add_exercise([BENCH, RUN], BENCH) == [BENCH, RUN]


@pytest.mark.asyncio
async def test_create_update_delete(tmp_path):
    store = RecordStore(str(tmp_path / "templates.db"))
    service = TemplateService(store)
    template = await service.create("  Push day ", [BENCH])
    assert template.name == "Push day"
    assert await service.list() == [template]
    assert await service.get(template.id) == template

    updated = await service.update(template.id, "Push & run", [BENCH, RUN])
    assert (await service.get(template.id)).exercises == [BENCH, RUN]
    assert updated.name == "Push & run"

    with pytest.raises(ValueError):
        await service.update("missing", "x", [BENCH])

    assert await service.delete(template.id) is True
    assert await service.delete(template.id) is False
    assert await service.list() == []


@pytest.mark.asyncio
async def test_validation_happens_before_writes(tmp_path):
    store = RecordStore(str(tmp_path / "templates.db"))
    service = TemplateService(store)
    with pytest.raises(TemplateValidationError):
        await service.create("   ", [BENCH])
    with pytest.raises(TemplateValidationError):
        await service.create("Legs", [])
    assert await store.templates.get_item(store.templates.key) is None

    template = await service.create("Legs", [BENCH])
    with pytest.raises(TemplateValidationError):
        await service.update(template.id, "", [BENCH])
    assert (await service.get(template.id)).name == "Legs"


@pytest.mark.asyncio
async def test_delete_keeps_sessions(tmp_path):
    store = RecordStore(str(tmp_path / "templates.db"))
    service = TemplateService(store)
    template = await service.create("Stretch", [Exercise(id="14", name="Stretch", type="stretch")])
    session = WorkoutSession(
        id="s1",
        template_id=template.id,
        template_name=template.name,
        date=datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc),
        exercises=[StretchEntry(exercise_id="14", exercise_name="Stretch", data=StretchData(completed=True))],
    )
    await store.sessions.save([session])
    await service.delete(template.id)
    assert await store.sessions.load() == [session]


@pytest.mark.asyncio
async def test_selection_handoff(tmp_path):
    store = RecordStore(str(tmp_path / "templates.db"))
    service = TemplateService(store)

    await service.select_exercise("create", RUN, template_id="ignored")
    assert await service.collect_selection("edit", [BENCH], "t1") == [BENCH]
    assert await service.collect_selection("create", [BENCH]) == [BENCH, RUN]
    assert await service.collect_selection("create", [BENCH]) == [BENCH]

    await service.select_exercise("edit", BENCH, template_id="t1")
    assert await service.collect_selection("edit", [BENCH], "t1") == [BENCH]
    assert await service.collect_selection("edit", [], "t1") == []


@pytest.mark.asyncio
async def test_catalog_seeds_once(tmp_path):
    store = RecordStore(str(tmp_path / "catalog.db"))
    catalog = ExerciseCatalog(store)
    exercises = await catalog.load()
    assert len(exercises) == 14
    assert {e.type for e in exercises} == set(ExerciseType)
    assert await store.exercises.load() == exercises

    custom = await catalog.create("Plank", "stretch")
    exercises = await catalog.load()
    assert len(exercises) == 15
    assert exercises[-1] == custom


@pytest.mark.asyncio
async def test_catalog_create_validation_and_search(tmp_path):
    store = RecordStore(str(tmp_path / "catalog.db"))
    catalog = ExerciseCatalog(store)
    with pytest.raises(ExerciseValidationError):
        await catalog.create("  ", "strength")
    with pytest.raises(ExerciseValidationError):
        await catalog.create("Yoga", "balance")
    names = [e.name for e in await catalog.search("RAD")]
    assert names == ["Fahrrad", "Radfahren"]
    assert len(await catalog.search("")) == 14


@pytest.mark.asyncio
async def test_unstored_template_is_not_reported_as_created(tmp_path, caplog):
    store = RecordStore(str(tmp_path / "missing" / "templates.db"))
    service = TemplateService(store)
    with caplog.at_level(logging.INFO):
        template = await service.create("Legs", [BENCH])
    assert template.name == "Legs"
    assert "was not stored" in caplog.text
    assert "Created template" not in caplog.text
