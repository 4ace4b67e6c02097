# relay_agent/application/circuit_aggregator.py
import logging
from typing import Optional

from relay_agent.domain.circuits.entities import CircuitDefinition
from relay_agent.domain.relays.entities import RelayCommand, RelayStatus
from relay_agent.domain.relays.enums import RelayState

logger = logging.getLogger(__name__)


class CircuitAggregator:

    def parent_state(self, circuit: CircuitDefinition, status: Optional[RelayStatus]) -> RelayState:
        if status is None:
            logger.warning(f"No relay status for circuit {circuit.name!r}. Parent relay forced OFF.")
            return RelayState.OFF

        for child in circuit.child_relays:
            if status.is_on(child.relay_id):
                return RelayState.ON
        return RelayState.OFF

    def aggregate(self, circuit: CircuitDefinition, status: Optional[RelayStatus]) -> RelayCommand:
        state = self.parent_state(circuit, status)
        logger.info(
            f"Circuit {circuit.name!r}: children={[c.relay_id for c in circuit.child_relays]} "
            f"-> parent relay {circuit.parent_relay_id} {state.value.upper()}"
        )
        return RelayCommand(relay_id=circuit.parent_relay_id, state=state)


circuit_aggregator = CircuitAggregator()
