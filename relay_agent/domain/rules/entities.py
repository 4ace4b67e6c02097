# relay_agent/domain/rules/entities.py
import logging
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

RuleKey = Tuple[int, str]


class Rule(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pin: int
    channel: str = Field(alias="dec")
    relay_id: int
    threshold: float = Field(alias="temperature")
    enabled: bool = Field(alias="enable")

    @property
    def key(self) -> RuleKey:
        return self.pin, self.channel


class RulesPayload(BaseModel):
    sensors: List[Rule] = []


class RuleSet:
    """
    Rules indexed by (pin, channel).

    The first rule in store order owns a key; later rules with the same key
    are dropped when the set is built.
    """

    def __init__(self, rules: List[Rule]):
        self.rules: List[Rule] = []
        self._by_key: Dict[RuleKey, Rule] = {}

        for rule in rules:
            if rule.key in self._by_key:
                kept = self._by_key[rule.key]
                logger.warning(
                    f"Duplicate rule for pin={rule.pin} dec={rule.channel}: "
                    f"keeping relay_id={kept.relay_id}, dropping relay_id={rule.relay_id}"
                )
                continue
            self._by_key[rule.key] = rule
            self.rules.append(rule)

    def __len__(self) -> int:
        return len(self.rules)

    def keys(self) -> List[RuleKey]:
        return list(self._by_key.keys())

    def find(self, pin: int, channel: str) -> Optional[Rule]:
        return self._by_key.get((pin, channel))
