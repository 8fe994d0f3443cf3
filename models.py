import datetime
import uuid
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)


def new_id() -> str:
    """Return a fresh opaque record id."""
    return uuid.uuid4().hex


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class ExerciseType(str, Enum):
    STRENGTH = "strength"
    CARDIO = "cardio"
    ENDURANCE = "endurance"
    STRETCH = "stretch"


class Record(BaseModel):
    """Base model for stored records using camelCase keys on the wire."""

    model_config = ConfigDict(populate_by_name=True)


class Exercise(Record):
    id: str
    name: str
    type: ExerciseType


class WorkoutTemplate(Record):
    id: str
    name: str
    exercises: List[Exercise] = Field(default_factory=list)


class StrengthSet(Record):
    weight: float = Field(gt=0)
    reps: int = Field(gt=0)


class CardioData(Record):
    time: float = Field(default=0, ge=0)
    level: int = Field(default=0, ge=0)
    distance: float = Field(default=0, ge=0)


class EnduranceData(Record):
    """Time in minutes and distance in km; ``pace`` is derived in min/km."""

    time: float = Field(default=0, ge=0)
    distance: float = Field(default=0, ge=0)

    @computed_field
    @property
    def pace(self) -> float:
        if self.distance > 0:
            return self.time / self.distance
        return 0.0


class StretchData(Record):
    completed: bool = False


class _EntryBase(Record):
    exercise_id: str = Field(alias="exerciseId")
    exercise_name: str = Field(alias="exerciseName")


class StrengthEntry(_EntryBase):
    type: Literal["strength"] = "strength"
    data: List[StrengthSet]


class CardioEntry(_EntryBase):
    type: Literal["cardio"] = "cardio"
    data: CardioData


class EnduranceEntry(_EntryBase):
    type: Literal["endurance"] = "endurance"
    data: EnduranceData


class StretchEntry(_EntryBase):
    type: Literal["stretch"] = "stretch"
    data: StretchData


SessionExerciseEntry = Annotated[
    Union[StrengthEntry, CardioEntry, EnduranceEntry, StretchEntry],
    Field(discriminator="type"),
]

ExerciseData = Union[List[StrengthSet], CardioData, EnduranceData, StretchData]


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


class WorkoutSession(Record):
    id: str
    template_id: str = Field(alias="templateId")
    template_name: str = Field(alias="templateName")
    date: datetime.datetime
    exercises: List[SessionExerciseEntry] = Field(default_factory=list)

    @field_validator("date")
    @classmethod
    def utc_date(cls, value: datetime.datetime) -> datetime.datetime:
        return _as_utc(value)


MEASUREMENT_FIELDS = (
    "weight",
    "chest",
    "waist",
    "hips",
    "upper_arm",
    "forearm",
    "thigh",
    "calf",
)


class BodyMeasurement(Record):
    """Body weight in kg, circumferences in cm."""

    id: str
    date: datetime.datetime
    weight: Optional[float] = None
    chest: Optional[float] = None
    waist: Optional[float] = None
    hips: Optional[float] = None
    upper_arm: Optional[float] = Field(default=None, alias="upperArm")
    forearm: Optional[float] = None
    thigh: Optional[float] = None
    calf: Optional[float] = None

    @field_validator("date")
    @classmethod
    def utc_date(cls, value: datetime.datetime) -> datetime.datetime:
        return _as_utc(value)

    def values(self) -> dict[str, float]:
        """Return the populated measurement fields."""
        return {
            name: getattr(self, name)
            for name in MEASUREMENT_FIELDS
            if getattr(self, name) is not None
        }


class SelectionMode(str, Enum):
    CREATE = "create"
    EDIT = "edit"


class PendingExerciseSelection(Record):
    mode: SelectionMode
    template_id: Optional[str] = Field(default=None, alias="templateId")
    exercise: Exercise
