# relay_agent/domain/circuits/entities.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CircuitRelay(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    relay_id: int
    pin: int
    channel: str = Field(alias="dec")
    enabled: bool = Field(default=True, alias="enable")
    name: Optional[str] = None


class CircuitDefinition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    parent_relay_id: int
    child_relays: List[CircuitRelay] = Field(default_factory=list, alias="relays")


class CircuitsPayload(BaseModel):
    circuits: List[CircuitDefinition] = []
