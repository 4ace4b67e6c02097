# relay_agent/infrastructure/relays/relay_client.py
import logging

from pydantic import ValidationError

from relay_agent.domain.errors import FetchError
from relay_agent.domain.relays.entities import RelayCommand, RelayStatus, RelayStatusPayload
from relay_agent.infrastructure.http.json_client import JsonHttpClient

logger = logging.getLogger(__name__)


class RelayClient:
    """Actuator service: relay status reads and relay switch commands."""

    def __init__(self, http: JsonHttpClient, base_url: str):
        self.http = http
        self.base_url = base_url.rstrip("/")

    async def fetch_status(self) -> RelayStatus:
        raw = await self.http.get_json(f"{self.base_url}/status", source="relay_status")
        try:
            payload = RelayStatusPayload.model_validate(raw)
        except ValidationError as exc:
            raise FetchError("relay_status", f"invalid payload: {exc}") from exc
        return RelayStatus.from_payload(payload)

    async def send_command(self, command: RelayCommand) -> None:
        await self.http.post_json(
            f"{self.base_url}/relay",
            command.to_payload(),
            relay_id=command.relay_id,
        )
        logger.info(f"RelayClient: relay {command.relay_id} set {command.state.value.upper()}")
