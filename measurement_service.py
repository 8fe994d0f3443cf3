import datetime
import logging
from typing import Dict, List, Optional

from db import RecordStore
from models import MEASUREMENT_FIELDS, BodyMeasurement, new_id, utc_now
from session_builder import parse_number

logger = logging.getLogger(__name__)


class MeasurementValidationError(ValueError):
    """Raised when measurement input is empty or not numeric."""


def parse_measurement(raw: Dict[str, str]) -> Dict[str, float]:
    """Parse the filled-in fields of ``raw``.

    Keys are the snake_case field names; ``upperArm`` is accepted as well.
    """
    values: Dict[str, float] = {}
    for field in MEASUREMENT_FIELDS:
        value = raw.get(field)
        if value is None and field == "upper_arm":
            value = raw.get("upperArm")
        if value is None or str(value).strip() == "":
            continue
        number = parse_number(value)
        if number is None:
            raise MeasurementValidationError(f"{field} must be a number")
        values[field] = number
    if not values:
        raise MeasurementValidationError("fill in at least one field")
    return values


class MeasurementService:
    """Record and browse body measurements."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    async def list(self) -> List[BodyMeasurement]:
        measurements = await self.store.measurements.load()
        return sorted(measurements, key=lambda m: m.date, reverse=True)

    async def latest(self) -> Optional[BodyMeasurement]:
        measurements = await self.list()
        return measurements[0] if measurements else None

    async def add(
        self, raw: Dict[str, str], now: datetime.datetime | None = None
    ) -> BodyMeasurement:
        values = parse_measurement(raw)
        measurement = BodyMeasurement(id=new_id(), date=now or utc_now(), **values)
        measurements = await self.store.measurements.load()
        if await self.store.measurements.save([*measurements, measurement]):
            logger.info("Saved measurement %s", measurement.id)
        else:
            logger.warning("Measurement %s was not stored", measurement.id)
        return measurement

    async def delete(self, measurement_id: str) -> bool:
        measurements = await self.store.measurements.load()
        remaining = [m for m in measurements if m.id != measurement_id]
        if len(remaining) == len(measurements):
            return False
        return await self.store.measurements.save(remaining)
