"""Turn raw workout input into validated session records.

Raw input per exercise mirrors what the workout form holds while the user
types, keyed by exercise id:

* strength: ``[{"weight": "80", "reps": "8"}, ...]``
* cardio: ``{"time": "20", "level": "8", "distance": "5"}``
* endurance: ``{"time": "30", "distance": "5"}``
* stretch: ``True`` / ``False``
"""

import copy
import datetime
import logging
import math
from typing import Any, Dict, List, Optional

from db import RecordStore
from models import (
    CardioData,
    CardioEntry,
    EnduranceData,
    EnduranceEntry,
    Exercise,
    ExerciseType,
    SessionExerciseEntry,
    StrengthEntry,
    StrengthSet,
    StretchData,
    StretchEntry,
    WorkoutSession,
    WorkoutTemplate,
    new_id,
    utc_now,
)

logger = logging.getLogger(__name__)

RawInput = Any

CARDIO_FIELDS = ("time", "level", "distance")
ENDURANCE_FIELDS = ("time", "distance")
SET_FIELDS = ("weight", "reps")


class SessionValidationError(ValueError):
    """Raised when a workout cannot be saved as entered."""


def parse_number(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float or ``None`` if it is not a number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def _reading(raw: Dict[str, Any], field: str) -> float:
    number = parse_number(raw.get(field))
    if number is None or number < 0:
        return 0.0
    return number


def empty_set() -> Dict[str, str]:
    return {"weight": "", "reps": ""}


def empty_input(exercise_type: ExerciseType) -> RawInput:
    """Return the blank form value for an exercise of ``exercise_type``."""
    exercise_type = ExerciseType(exercise_type)
    if exercise_type is ExerciseType.STRENGTH:
        return [empty_set()]
    if exercise_type is ExerciseType.CARDIO:
        return {field: "" for field in CARDIO_FIELDS}
    if exercise_type is ExerciseType.ENDURANCE:
        return {field: "" for field in ENDURANCE_FIELDS}
    if exercise_type is ExerciseType.STRETCH:
        return False
    raise ValueError(f"unknown exercise type: {exercise_type}")


def build_strength_sets(raw: RawInput) -> List[StrengthSet]:
    """Keep only sets where both fields parse and are positive."""
    sets: List[StrengthSet] = []
    if not isinstance(raw, list):
        return sets
    for item in raw:
        if not isinstance(item, dict):
            continue
        weight = parse_number(item.get("weight"))
        reps = parse_number(item.get("reps"))
        if weight is None or reps is None:
            continue
        reps = int(reps)
        if weight > 0 and reps > 0:
            sets.append(StrengthSet(weight=weight, reps=reps))
    return sets


def build_entry(exercise: Exercise, raw: RawInput) -> Optional[SessionExerciseEntry]:
    """Return the session entry for ``exercise`` or ``None`` if nothing was entered."""
    if raw is None:
        return None
    ident = {"exercise_id": exercise.id, "exercise_name": exercise.name}
    exercise_type = ExerciseType(exercise.type)

    if exercise_type is ExerciseType.STRENGTH:
        sets = build_strength_sets(raw)
        if not sets:
            return None
        return StrengthEntry(data=sets, **ident)

    if exercise_type is ExerciseType.CARDIO:
        values = raw if isinstance(raw, dict) else {}
        time = _reading(values, "time")
        level = int(_reading(values, "level"))
        distance = _reading(values, "distance")
        if time <= 0 and level <= 0 and distance <= 0:
            return None
        return CardioEntry(
            data=CardioData(time=time, level=level, distance=distance), **ident
        )

    if exercise_type is ExerciseType.ENDURANCE:
        values = raw if isinstance(raw, dict) else {}
        time = _reading(values, "time")
        distance = _reading(values, "distance")
        if time <= 0 and distance <= 0:
            return None
        return EnduranceEntry(data=EnduranceData(time=time, distance=distance), **ident)

    if exercise_type is ExerciseType.STRETCH:
        if raw is not True:
            return None
        return StretchEntry(data=StretchData(completed=True), **ident)

    raise ValueError(f"unknown exercise type: {exercise.type}")


def build_entries(
    template: WorkoutTemplate, inputs: Dict[str, RawInput]
) -> List[SessionExerciseEntry]:
    entries = []
    for exercise in template.exercises:
        entry = build_entry(exercise, inputs.get(exercise.id))
        if entry is not None:
            entries.append(entry)
    return entries


def build_session(
    template: WorkoutTemplate,
    inputs: Dict[str, RawInput],
    now: datetime.datetime | None = None,
) -> WorkoutSession:
    """Build a new session from ``inputs``.

    Raises ``SessionValidationError`` if no exercise has a recorded value.
    """
    entries = build_entries(template, inputs)
    if not entries:
        raise SessionValidationError("enter at least one value before saving")
    return WorkoutSession(
        id=new_id(),
        template_id=template.id,
        template_name=template.name,
        date=now or utc_now(),
        exercises=entries,
    )


class WorkoutDraft:
    """In-memory working copy of the inputs for a workout in progress."""

    def __init__(self, template: WorkoutTemplate, inputs: Dict[str, RawInput] | None = None) -> None:
        self.template = template
        self._types = {exercise.id: ExerciseType(exercise.type) for exercise in template.exercises}
        self.inputs: Dict[str, RawInput] = {}
        for exercise in template.exercises:
            value = (inputs or {}).get(exercise.id)
            self.inputs[exercise.id] = (
                copy.deepcopy(value) if value is not None else empty_input(exercise.type)
            )

    def _require(self, exercise_id: str, exercise_type: ExerciseType) -> None:
        if exercise_id not in self._types:
            raise KeyError(exercise_id)
        if self._types[exercise_id] is not exercise_type:
            raise ValueError(f"exercise {exercise_id} is not a {exercise_type.value} exercise")

    def add_set(self, exercise_id: str) -> None:
        self._require(exercise_id, ExerciseType.STRENGTH)
        self.inputs[exercise_id].append(empty_set())

    def remove_set(self, exercise_id: str, index: int) -> None:
        self._require(exercise_id, ExerciseType.STRENGTH)
        sets = self.inputs[exercise_id]
        if len(sets) <= 1:
            raise ValueError("cannot remove the only set")
        if not 0 <= index < len(sets):
            raise IndexError(index)
        del sets[index]

    def update_set(self, exercise_id: str, index: int, field: str, value: str) -> None:
        self._require(exercise_id, ExerciseType.STRENGTH)
        if field not in SET_FIELDS:
            raise ValueError(f"invalid set field: {field}")
        self.inputs[exercise_id][index][field] = value

    def update_reading(self, exercise_id: str, field: str, value: str) -> None:
        if exercise_id not in self._types:
            raise KeyError(exercise_id)
        exercise_type = self._types[exercise_id]
        if exercise_type is ExerciseType.CARDIO:
            allowed = CARDIO_FIELDS
        elif exercise_type is ExerciseType.ENDURANCE:
            allowed = ENDURANCE_FIELDS
        else:
            raise ValueError(f"exercise {exercise_id} has no readings")
        if field not in allowed:
            raise ValueError(f"invalid {exercise_type.value} field: {field}")
        self.inputs[exercise_id][field] = value

    def toggle_stretch(self, exercise_id: str) -> bool:
        self._require(exercise_id, ExerciseType.STRETCH)
        self.inputs[exercise_id] = not self.inputs[exercise_id]
        return self.inputs[exercise_id]

    def build(self, now: datetime.datetime | None = None) -> WorkoutSession:
        return build_session(self.template, self.inputs, now)


class SessionService:
    """Persist finished workouts."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    async def list(self) -> List[WorkoutSession]:
        return await self.store.sessions.load()

    async def finish(
        self,
        template: WorkoutTemplate,
        inputs: Dict[str, RawInput],
        now: datetime.datetime | None = None,
    ) -> WorkoutSession:
        session = build_session(template, inputs, now)
        sessions = await self.store.sessions.load()
        if not await self.store.sessions.save([*sessions, session]):
            logger.warning("Session %s for template %s was not stored", session.id, template.id)
            return session
        logger.info(
            "Saved session %s for template %s with %d exercises",
            session.id,
            template.id,
            len(session.exercises),
        )
        return session

    async def delete(self, session_id: str) -> bool:
        sessions = await self.store.sessions.load()
        remaining = [s for s in sessions if s.id != session_id]
        if len(remaining) == len(sessions):
            return False
        return await self.store.sessions.save(remaining)
