import logging
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SensorSourceKind(str, Enum):
    ARRAY = "array"
    TIMESERIES = "timeseries"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    RELAYS_SERVICE_HOST: str = Field("localhost:8081", description="Actuator service host[:port]")
    SENSORS_SERVICE_HOST: str = Field("localhost:8082", description="Telemetry service host[:port]")
    RULES_SERVICE_HOST: str = Field("localhost:8083", description="Rules service host[:port]")
    RULES_FILE: Optional[str] = Field(None, description="JSON rules file used instead of the rules service")

    SENSOR_SOURCE: SensorSourceKind = SensorSourceKind.ARRAY
    SENSOR_VALUE_FIELD: str = "temperature"
    SENSOR_DATABASE: str = "sensors"
    SENSOR_MEASUREMENT: str = "readings"
    SENSOR_AVERAGE_WINDOW: str = "5m"

    HTTP_TIMEOUT_SECONDS: float = 5.0
    RECONCILE_INTERVAL_SECONDS: int = 60
    RUN_ONCE: bool = False

    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    @field_validator("HTTP_TIMEOUT_SECONDS")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("HTTP_TIMEOUT_SECONDS must be > 0")
        return value

    @field_validator("RECONCILE_INTERVAL_SECONDS")
    @classmethod
    def validate_interval(cls, value: int) -> int:
        if value < 1:
            raise ValueError("RECONCILE_INTERVAL_SECONDS must be >= 1")
        return value

    @field_validator("RULES_FILE")
    @classmethod
    def validate_rules_file(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper() or "INFO"
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"LOG_LEVEL {value!r} is not a logging level")
        return level

    @staticmethod
    def base_url(host: str) -> str:
        host = host.strip().rstrip("/")
        if "://" in host:
            return host
        return f"http://{host}"

    @property
    def relays_url(self) -> str:
        return self.base_url(self.RELAYS_SERVICE_HOST)

    @property
    def sensors_url(self) -> str:
        return self.base_url(self.SENSORS_SERVICE_HOST)

    @property
    def rules_url(self) -> str:
        return self.base_url(self.RULES_SERVICE_HOST)
