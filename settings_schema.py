from typing import Literal

from pydantic import BaseModel, ConfigDict, ValidationError


class SettingsSchema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    db_path: str = "fitlog.db"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
