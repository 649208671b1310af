from pydantic import BaseModel, Field, ValidationError
from typing import Optional
import os, yaml, pathlib

MESSAGE_LENGTH_THRESHOLD_ENV = "SMREPORTER_MESSAGE_LENGTH_THRESHOLD"
DEFAULT_MESSAGE_LENGTH_THRESHOLD = 10000

class ConfigError(ValueError):
    pass

class ReporterConfig(BaseModel):
    marker: str = Field("teamcity", description="Service message marker, ##<marker>[...]")
    message_length_threshold: int = Field(DEFAULT_MESSAGE_LENGTH_THRESHOLD, ge=0,
                                          description="Longest failure message eligible for expected/actual pattern matching")
    log_level: str = Field("WARNING")
    root_name: Optional[str] = Field(None, description="Class name reported for the run root")

def load_config(path: Optional[str] = None) -> ReporterConfig:
    if path is None:
        return ReporterConfig()
    try:
        data = yaml.safe_load(pathlib.Path(path).read_text()) or {}
        return ReporterConfig.model_validate(data)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        raise ConfigError(f"Invalid config {path}: {e}") from e

def message_length_threshold(default: int = DEFAULT_MESSAGE_LENGTH_THRESHOLD) -> int:
    """Threshold from the environment, read on every call; bad values fall back to default."""
    value = os.environ.get(MESSAGE_LENGTH_THRESHOLD_ENV)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default
