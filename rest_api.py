from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, FastAPI, HTTPException
from pydantic import BaseModel

from config import YamlConfig
from db import RecordStore
from history_service import HistoryService
from measurement_service import MeasurementService, MeasurementValidationError
from models import Exercise, ExerciseType, SelectionMode
from session_builder import SessionService, SessionValidationError
from template_service import (
    ExerciseCatalog,
    ExerciseValidationError,
    TemplateService,
    TemplateValidationError,
)


def _dump(model: BaseModel) -> dict:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


class TemplateBody(BaseModel):
    name: str
    exercises: List[Exercise] = []


class ExerciseBody(BaseModel):
    name: str
    type: ExerciseType = ExerciseType.STRENGTH


class SelectionBody(BaseModel):
    mode: SelectionMode
    template_id: Optional[str] = None
    exercise: Exercise


class FitnessAPI:
    """Local REST endpoints over the workout record store."""

    def __init__(self, db_path: str = "fitlog.db") -> None:
        self.db_path = db_path
        self.store = RecordStore(db_path)
        self.templates = TemplateService(self.store)
        self.catalog = ExerciseCatalog(self.store)
        self.sessions = SessionService(self.store)
        self.history = HistoryService(self.store)
        self.measurements = MeasurementService(self.store)
        self.app = FastAPI(
            title="Fitlog API",
            description="REST API for workout templates, sessions and body data",
        )
        self._setup_routes()

    async def _template_or_404(self, template_id: str):
        template = await self.templates.get(template_id)
        if template is None:
            raise HTTPException(status_code=404, detail="template not found")
        return template

    def _setup_routes(self) -> None:
        exercises_router = APIRouter(prefix="/exercises", tags=["Exercises"])
        templates_router = APIRouter(prefix="/templates", tags=["Templates"])
        sessions_router = APIRouter(prefix="/sessions", tags=["Sessions"])
        measurements_router = APIRouter(prefix="/measurements", tags=["Measurements"])
        preferences_router = APIRouter(prefix="/preferences", tags=["Preferences"])

        @exercises_router.get("")
        async def list_exercises(query: str = ""):
            return [_dump(e) for e in await self.catalog.search(query)]

        @exercises_router.post("")
        async def create_exercise(body: ExerciseBody):
            try:
                exercise = await self.catalog.create(body.name, body.type)
            except ExerciseValidationError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _dump(exercise)

        @templates_router.get("")
        async def list_templates():
            return [_dump(t) for t in await self.templates.list()]

        @templates_router.post("")
        async def create_template(body: TemplateBody):
            try:
                template = await self.templates.create(body.name, body.exercises)
            except TemplateValidationError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _dump(template)

        @templates_router.get("/{template_id}")
        async def get_template(template_id: str):
            return _dump(await self._template_or_404(template_id))

        @templates_router.put("/{template_id}")
        async def update_template(template_id: str, body: TemplateBody):
            await self._template_or_404(template_id)
            try:
                template = await self.templates.update(
                    template_id, body.name, body.exercises
                )
            except TemplateValidationError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _dump(template)

        @templates_router.delete("/{template_id}")
        async def delete_template(template_id: str):
            if not await self.templates.delete(template_id):
                raise HTTPException(status_code=404, detail="template not found")
            return {"status": "deleted"}

        @templates_router.get("/{template_id}/prefill")
        async def prefill(template_id: str):
            inputs = await self.history.prefill_for_template(template_id)
            if inputs is None:
                raise HTTPException(status_code=404, detail="template not found")
            return inputs

        @templates_router.post("/{template_id}/sessions")
        async def finish_workout(
            template_id: str, inputs: Dict[str, Any] = Body(..., embed=True)
        ):
            template = await self._template_or_404(template_id)
            try:
                session = await self.sessions.finish(template, inputs)
            except SessionValidationError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _dump(session)

        @self.app.post("/selection")
        async def put_selection(body: SelectionBody):
            ok = await self.templates.select_exercise(
                body.mode, body.exercise, body.template_id
            )
            return {"stored": ok}

        @self.app.post("/selection/take")
        async def take_selection(mode: SelectionMode, template_id: str | None = None):
            exercise = await self.store.pending.take(mode, template_id)
            return {"exercise": _dump(exercise) if exercise else None}

        @sessions_router.get("")
        async def list_sessions():
            return [_dump(s) for s in await self.sessions.list()]

        @sessions_router.delete("/{session_id}")
        async def delete_session(session_id: str):
            if not await self.sessions.delete(session_id):
                raise HTTPException(status_code=404, detail="session not found")
            return {"status": "deleted"}

        @self.app.get("/dashboard")
        async def dashboard():
            data = await self.history.dashboard()
            return {
                "templates": [
                    {
                        "template": _dump(item["template"]),
                        "last_performed": (
                            item["last_performed"].isoformat()
                            if item["last_performed"]
                            else None
                        ),
                    }
                    for item in data["templates"]
                ],
                "recent_sessions": [_dump(s) for s in data["recent_sessions"]],
            }

        @measurements_router.get("")
        async def list_measurements():
            return [_dump(m) for m in await self.measurements.list()]

        @measurements_router.post("")
        async def add_measurement(raw: Dict[str, str] = Body(...)):
            try:
                measurement = await self.measurements.add(raw)
            except MeasurementValidationError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _dump(measurement)

        @measurements_router.delete("/{measurement_id}")
        async def delete_measurement(measurement_id: str):
            if not await self.measurements.delete(measurement_id):
                raise HTTPException(status_code=404, detail="measurement not found")
            return {"status": "deleted"}

        @preferences_router.get("")
        async def get_preferences():
            return {
                "dark_mode": await self.store.preferences.load_dark_mode(),
                "dashboard_limit": await self.store.preferences.load_dashboard_limit(),
            }

        @preferences_router.put("/dark_mode")
        async def set_dark_mode(enabled: bool):
            await self.store.preferences.save_dark_mode(enabled)
            return {"dark_mode": await self.store.preferences.load_dark_mode()}

        @preferences_router.post("/dashboard_limit")
        async def adjust_dashboard_limit(delta: int):
            limit = await self.store.preferences.adjust_dashboard_limit(delta)
            return {"dashboard_limit": limit}

        self.app.include_router(exercises_router)
        self.app.include_router(templates_router)
        self.app.include_router(sessions_router)
        self.app.include_router(measurements_router)
        self.app.include_router(preferences_router)


api = FitnessAPI(YamlConfig().load()["db_path"])
app = api.app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
