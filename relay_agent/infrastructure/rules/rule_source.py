# relay_agent/infrastructure/rules/rule_source.py
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Protocol, Type, TypeVar

from pydantic import BaseModel, ValidationError

from relay_agent.domain.circuits.entities import CircuitDefinition, CircuitsPayload
from relay_agent.domain.errors import FetchError
from relay_agent.domain.rules.entities import Rule, RuleSet, RulesPayload
from relay_agent.infrastructure.http.json_client import JsonHttpClient

logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT", bound=BaseModel)

# Wire names accepted by patch_rule, keyed by their model field names.
RULE_WIRE_FIELDS = {
    "relay_id": "relay_id",
    "threshold": "temperature",
    "enabled": "enable",
}


class RuleSource(Protocol):
    async def fetch_rules(self) -> RuleSet:
        ...

    async def fetch_circuits(self) -> List[CircuitDefinition]:
        ...


def parse_payload(model: Type[PayloadT], raw: Any, source: str) -> PayloadT:
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise FetchError(source, f"invalid payload: {exc}") from exc


class HttpRuleSource:

    def __init__(self, http: JsonHttpClient, base_url: str):
        self.http = http
        self.base_url = base_url.rstrip("/")

    async def fetch_rules(self) -> RuleSet:
        raw = await self.http.get_json(f"{self.base_url}/sensors", source="rules")
        payload = parse_payload(RulesPayload, raw, "rules")
        return RuleSet(payload.sensors)

    async def fetch_circuits(self) -> List[CircuitDefinition]:
        raw = await self.http.get_json(f"{self.base_url}/rules", source="circuits")
        return parse_payload(CircuitsPayload, raw, "circuits").circuits


class FileRuleSource:
    """
    Rules and circuits kept in one JSON document:

        {"sensors": [...], "circuits": [...]}

    The file is re-read on every fetch so edits show up on the next cycle.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load_raw(self, source: str = "rules_file") -> Dict:
        if not self.path.exists():
            raise FetchError(source, f"rules file {self.path} does not exist")

        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise FetchError(source, f"cannot decode JSON from {self.path}: {exc}") from exc
        except OSError as exc:
            raise FetchError(source, f"cannot read {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise FetchError(source, f"{self.path} must contain a JSON object")
        return data

    async def fetch_rules(self) -> RuleSet:
        payload = parse_payload(RulesPayload, self.load_raw("rules"), "rules")
        return RuleSet(payload.sensors)

    async def fetch_circuits(self) -> List[CircuitDefinition]:
        return parse_payload(CircuitsPayload, self.load_raw("circuits"), "circuits").circuits

    def patch_rule(self, pin: int, channel: str, **changes) -> Rule:
        """
        Partially update the first rule matching pin+channel and persist the file.

        Accepted keys: relay_id, threshold, enabled. Raises KeyError when no
        rule matches and ValueError for unknown keys or invalid values.

        The agent itself never calls this; it is the write path for rule-editing
        tools (an admin endpoint or operator script) sharing RULES_FILE. Edits
        are picked up by the next fetch_rules().
        """
        unknown = set(changes) - set(RULE_WIRE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown rule fields: {sorted(unknown)}")

        raw = self.load_raw()
        entries = raw.get("sensors", [])

        for entry in entries:
            if entry.get("pin") != pin or entry.get("dec") != channel:
                continue

            updated = dict(entry)
            for name, value in changes.items():
                updated[RULE_WIRE_FIELDS[name]] = value

            try:
                rule = Rule.model_validate(updated)
            except ValidationError as exc:
                raise ValueError(f"Invalid rule update for pin={pin} dec={channel}: {exc}") from exc

            entry.update(updated)
            with open(self.path, "w") as f:
                json.dump(raw, f, indent=2)

            logger.info(f"FileRuleSource: patched rule pin={pin} dec={channel} with {changes}")
            return rule

        raise KeyError(f"No rule for pin={pin} dec={channel}")
