import logging
from typing import Iterable, List, Optional

from db import RecordStore
from models import (
    Exercise,
    ExerciseType,
    PendingExerciseSelection,
    SelectionMode,
    WorkoutTemplate,
    new_id,
)

logger = logging.getLogger(__name__)


DEFAULT_EXERCISES = [
    ("1", "Bankdrücken", ExerciseType.STRENGTH),
    ("2", "Kniebeugen", ExerciseType.STRENGTH),
    ("3", "Kreuzheben", ExerciseType.STRENGTH),
    ("4", "Schulterdrücken", ExerciseType.STRENGTH),
    ("5", "Bizeps Curls", ExerciseType.STRENGTH),
    ("6", "Trizeps Dips", ExerciseType.STRENGTH),
    ("7", "Klimmzüge", ExerciseType.STRENGTH),
    ("8", "Rudern", ExerciseType.STRENGTH),
    ("9", "Laufband", ExerciseType.CARDIO),
    ("10", "Fahrrad", ExerciseType.CARDIO),
    ("11", "Crosstrainer", ExerciseType.CARDIO),
    ("12", "Laufen", ExerciseType.ENDURANCE),
    ("13", "Radfahren", ExerciseType.ENDURANCE),
    ("14", "Ganzkörper Dehnen", ExerciseType.STRETCH),
]


def default_exercises() -> List[Exercise]:
    return [Exercise(id=i, name=name, type=t) for i, name, t in DEFAULT_EXERCISES]


class TemplateValidationError(ValueError):
    """Raised when a template cannot be saved as entered."""


class ExerciseValidationError(ValueError):
    """Raised when an exercise cannot be created as entered."""


def add_exercise(exercises: Iterable[Exercise], exercise: Exercise) -> List[Exercise]:
    """Append ``exercise`` unless an exercise with the same id is present."""
    result = list(exercises)
    if any(existing.id == exercise.id for existing in result):
        return result
    result.append(exercise)
    return result


def _validate(name: str, exercises: List[Exercise]) -> str:
    name = (name or "").strip()
    if not name:
        raise TemplateValidationError("template name must not be empty")
    if not exercises:
        raise TemplateValidationError("add at least one exercise")
    return name


class TemplateService:
    """Create, edit and delete workout templates."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    async def list(self) -> List[WorkoutTemplate]:
        return await self.store.templates.load()

    async def get(self, template_id: str) -> Optional[WorkoutTemplate]:
        templates = await self.store.templates.load()
        return next((t for t in templates if t.id == template_id), None)

    async def create(self, name: str, exercises: Iterable[Exercise]) -> WorkoutTemplate:
        exercises = list(exercises)
        name = _validate(name, exercises)
        template = WorkoutTemplate(id=new_id(), name=name, exercises=exercises)
        templates = await self.store.templates.load()
        if await self.store.templates.save([*templates, template]):
            logger.info("Created template %s (%s)", template.id, template.name)
        else:
            logger.warning("Template %s was not stored", template.id)
        return template

    async def update(
        self, template_id: str, name: str, exercises: Iterable[Exercise]
    ) -> WorkoutTemplate:
        exercises = list(exercises)
        name = _validate(name, exercises)
        templates = await self.store.templates.load()
        if not any(t.id == template_id for t in templates):
            raise ValueError("template not found")
        updated = WorkoutTemplate(id=template_id, name=name, exercises=exercises)
        saved = await self.store.templates.save(
            [updated if t.id == template_id else t for t in templates]
        )
        if saved:
            logger.info("Updated template %s", template_id)
        else:
            logger.warning("Update of template %s was not stored", template_id)
        return updated

    async def delete(self, template_id: str) -> bool:
        """Remove the template record; sessions referencing it are kept."""
        templates = await self.store.templates.load()
        remaining = [t for t in templates if t.id != template_id]
        if len(remaining) == len(templates):
            return False
        if not await self.store.templates.save(remaining):
            logger.warning("Deletion of template %s was not stored", template_id)
            return False
        logger.info("Deleted template %s", template_id)
        return True

    async def select_exercise(
        self,
        mode: SelectionMode | str,
        exercise: Exercise,
        template_id: str | None = None,
    ) -> bool:
        mode = SelectionMode(mode)
        selection = PendingExerciseSelection(
            mode=mode,
            template_id=template_id if mode == SelectionMode.EDIT else None,
            exercise=exercise,
        )
        return await self.store.pending.put(selection)

    async def collect_selection(
        self,
        mode: SelectionMode | str,
        exercises: Iterable[Exercise],
        template_id: str | None = None,
    ) -> List[Exercise]:
        """Add a pending exercise addressed to this editor to ``exercises``."""
        exercise = await self.store.pending.take(mode, template_id)
        if exercise is None:
            return list(exercises)
        return add_exercise(exercises, exercise)


class ExerciseCatalog:
    """The user's exercise library."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    async def load(self) -> List[Exercise]:
        """Return all exercises, seeding the defaults into an empty catalog."""
        exercises = await self.store.exercises.load()
        if exercises:
            return exercises
        exercises = default_exercises()
        if await self.store.exercises.save(exercises):
            logger.info("Seeded %d default exercises", len(exercises))
        return exercises

    async def create(self, name: str, exercise_type: ExerciseType | str) -> Exercise:
        name = (name or "").strip()
        if not name:
            raise ExerciseValidationError("exercise name must not be empty")
        try:
            exercise_type = ExerciseType(exercise_type)
        except ValueError:
            raise ExerciseValidationError(f"unknown exercise type: {exercise_type}")
        exercise = Exercise(id=new_id(), name=name, type=exercise_type)
        exercises = await self.load()
        await self.store.exercises.save([*exercises, exercise])
        return exercise

    async def search(self, query: str = "") -> List[Exercise]:
        needle = (query or "").lower()
        return [e for e in await self.load() if needle in e.name.lower()]
