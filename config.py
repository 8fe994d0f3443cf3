import os
import yaml

from settings_schema import validate_settings

APP_VERSION = "1.0.0"

DEFAULTS = {
    "db_path": "fitlog.db",
    "log_level": "INFO",
}


class YamlConfig:
    """Load and save application settings from a YAML file."""

    ENV_OVERRIDES = {
        "db_path": "FITLOG_DB",
        "log_level": "FITLOG_LOG_LEVEL",
    }

    def __init__(self, path: str = "settings.yaml") -> None:
        self.path = path

    def load(self) -> dict:
        """Return defaults merged with the file and environment overrides."""
        data = dict(DEFAULTS)
        if os.path.exists(self.path):
            with open(self.path, "r", encoding="utf-8") as f:
                data.update(yaml.safe_load(f) or {})
        for key, env in self.ENV_OVERRIDES.items():
            if os.environ.get(env):
                data[key] = os.environ[env]
        validate_settings(data)
        return data

    def save(self, data: dict) -> None:
        validate_settings(data)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(dict(data), f)
