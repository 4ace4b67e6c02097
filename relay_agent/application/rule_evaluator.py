# relay_agent/application/rule_evaluator.py
import logging
from typing import Optional

from relay_agent.domain.relays.entities import RelayCommand
from relay_agent.domain.relays.enums import RelayState
from relay_agent.domain.rules.entities import Rule, RuleSet
from relay_agent.domain.sensors.entities import SensorReading

logger = logging.getLogger(__name__)


def desired_state(reading: SensorReading, rule: Rule) -> RelayState:
    # Double precision; values equal only after float32 rounding still compare as distinct.
    if rule.enabled and reading.value < rule.threshold:
        return RelayState.ON
    return RelayState.OFF


class RuleEvaluator:

    def evaluate(self, reading: SensorReading, rules: RuleSet) -> Optional[RelayCommand]:
        """Return the command for the rule owning the reading's key, or None when no rule matches."""
        rule = rules.find(reading.pin, reading.channel)
        if rule is None:
            logger.debug(f"No rule for sensor pin={reading.pin} dec={reading.channel}. Skipping.")
            return None

        state = desired_state(reading, rule)

        logger.info(
            f"relay_id={rule.relay_id}, enabled={rule.enabled}, "
            f"[{reading.value} < {rule.threshold}] -> {state.value.upper()}"
        )
        return RelayCommand(relay_id=rule.relay_id, state=state)


rule_evaluator = RuleEvaluator()
