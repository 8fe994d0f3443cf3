import datetime
import logging
from typing import Dict, Iterable, List, Optional

from db import RecordStore
from models import (
    CardioEntry,
    EnduranceEntry,
    Exercise,
    ExerciseData,
    ExerciseType,
    SessionExerciseEntry,
    StrengthEntry,
    StretchEntry,
    WorkoutSession,
    WorkoutTemplate,
)
from session_builder import RawInput, empty_input

logger = logging.getLogger(__name__)


def sort_recent_first(sessions: Iterable[WorkoutSession]) -> List[WorkoutSession]:
    """Sort by date descending; equal dates keep their original order."""
    return sorted(sessions, key=lambda s: s.date, reverse=True)


def latest_entries(sessions: Iterable[WorkoutSession]) -> Dict[str, SessionExerciseEntry]:
    """Return the most recent recorded entry for every exercise id."""
    latest: Dict[str, SessionExerciseEntry] = {}
    for session in sort_recent_first(sessions):
        for entry in session.exercises:
            if entry.exercise_id not in latest:
                latest[entry.exercise_id] = entry
    return latest


def latest_exercise_data(sessions: Iterable[WorkoutSession]) -> Dict[str, ExerciseData]:
    return {
        exercise_id: entry.data
        for exercise_id, entry in latest_entries(sessions).items()
    }


def last_performed(
    template_id: str, sessions: Iterable[WorkoutSession]
) -> Optional[datetime.datetime]:
    dates = [s.date for s in sessions if s.template_id == template_id]
    return max(dates) if dates else None


def recent_sessions(sessions: Iterable[WorkoutSession], limit: int) -> List[WorkoutSession]:
    return sort_recent_first(sessions)[: max(limit, 0)]


def format_number(value: float) -> str:
    """Render a stored number for an input field; zero becomes blank."""
    if not value:
        return ""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def prefill_input(exercise: Exercise, entry: Optional[SessionExerciseEntry]) -> RawInput:
    """Convert the last recorded entry into the raw form value for ``exercise``."""
    if entry is None:
        return empty_input(exercise.type)
    if entry.type != exercise.type:
        logger.warning(
            "Ignoring %s history for exercise %s now configured as %s",
            entry.type,
            exercise.id,
            ExerciseType(exercise.type).value,
        )
        return empty_input(exercise.type)

    if isinstance(entry, StrengthEntry):
        if not entry.data:
            return empty_input(exercise.type)
        return [
            {"weight": format_number(s.weight), "reps": format_number(s.reps)}
            for s in entry.data
        ]
    if isinstance(entry, CardioEntry):
        return {
            "time": format_number(entry.data.time),
            "level": format_number(entry.data.level),
            "distance": format_number(entry.data.distance),
        }
    if isinstance(entry, EnduranceEntry):
        return {
            "time": format_number(entry.data.time),
            "distance": format_number(entry.data.distance),
        }
    if isinstance(entry, StretchEntry):
        return entry.data.completed
    raise ValueError(f"unknown entry type: {entry.type}")


def initial_inputs(
    template: WorkoutTemplate, sessions: Iterable[WorkoutSession]
) -> Dict[str, RawInput]:
    """Return form values for ``template`` seeded with last time's numbers."""
    latest = latest_entries(sessions)
    return {
        exercise.id: prefill_input(exercise, latest.get(exercise.id))
        for exercise in template.exercises
    }


class HistoryService:
    """Read-side lookups over stored sessions."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    async def prefill_for_template(self, template_id: str) -> Optional[Dict[str, RawInput]]:
        templates = await self.store.templates.load()
        template = next((t for t in templates if t.id == template_id), None)
        if template is None:
            return None
        sessions = await self.store.sessions.load()
        return initial_inputs(template, sessions)

    async def dashboard(self) -> dict:
        """Templates with their last workout date plus the latest sessions."""
        templates = await self.store.templates.load()
        sessions = await self.store.sessions.load()
        limit = await self.store.preferences.load_dashboard_limit()
        return {
            "templates": [
                {
                    "template": template,
                    "last_performed": last_performed(template.id, sessions),
                }
                for template in templates
            ],
            "recent_sessions": recent_sessions(sessions, limit),
        }
