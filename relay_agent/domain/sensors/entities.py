# relay_agent/domain/sensors/entities.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class SensorReading(BaseModel):

    pin: int
    channel: str
    value: float
    timestamp: Optional[datetime] = None

    @property
    def key(self):
        return self.pin, self.channel


class SensorRecord(BaseModel):
    """One entry of the sensors service `data` array."""

    model_config = ConfigDict(extra="allow")

    pin: int
    dec: str
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    create_at: Optional[datetime] = None
    update_at: Optional[datetime] = None


class SensorsEnvelope(BaseModel):
    status: Optional[int] = None
    message: Optional[str] = None
    data: Optional[List[SensorRecord]] = None

    def is_success(self) -> bool:
        return self.status is None or 200 <= self.status < 300
