# relay_agent/domain/errors.py
from typing import Optional


class RelayAgentError(Exception):
    pass


class FetchError(RelayAgentError):
    """Reading an upstream source failed (transport, status, decoding or shape)."""

    def __init__(self, source: str, detail: str):
        self.source = source
        self.detail = detail
        super().__init__(f"{source}: {detail}")


class SendError(RelayAgentError):
    """A relay command could not be delivered to the actuator service."""

    def __init__(self, relay_id: Optional[int], detail: str):
        self.relay_id = relay_id
        self.detail = detail
        super().__init__(f"relay_id={relay_id}: {detail}")
