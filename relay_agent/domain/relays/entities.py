# relay_agent/domain/relays/entities.py
from typing import Dict, List

from pydantic import BaseModel

from relay_agent.domain.relays.enums import RelayState


class RelayCommand(BaseModel):

    relay_id: int
    state: RelayState

    def to_payload(self) -> dict:
        return {"id": self.relay_id, "switch": self.state.value}


class RelayStatusEntry(BaseModel):
    id: int
    state: int


class RelayStatusPayload(BaseModel):
    relays: List[RelayStatusEntry] = []


class RelayStatus(BaseModel):
    """Snapshot of every relay state reported by the actuator service."""

    states: Dict[int, RelayState] = {}

    @classmethod
    def from_payload(cls, payload: RelayStatusPayload) -> "RelayStatus":
        return cls(
            states={entry.id: RelayState.from_raw(entry.state) for entry in payload.relays}
        )

    def is_on(self, relay_id: int) -> bool:
        return self.states.get(relay_id) == RelayState.ON
