# relay_agent/application/reconciliation_service.py
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from relay_agent.application.circuit_aggregator import CircuitAggregator, circuit_aggregator
from relay_agent.application.rule_evaluator import RuleEvaluator, rule_evaluator
from relay_agent.domain.errors import FetchError, SendError
from relay_agent.domain.relays.entities import RelayCommand, RelayStatus
from relay_agent.infrastructure.relays.relay_client import RelayClient
from relay_agent.infrastructure.rules.rule_source import RuleSource
from relay_agent.infrastructure.sensors.sensor_source import SensorSource

logger = logging.getLogger(__name__)


@dataclass
class PhaseReport:
    skipped: bool = False
    sent: List[RelayCommand] = field(default_factory=list)
    failed: List[RelayCommand] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.sent) + len(self.failed)


@dataclass
class CycleReport:
    sensors: PhaseReport = field(default_factory=PhaseReport)
    circuits: PhaseReport = field(default_factory=PhaseReport)
    status_available: bool = False

    def summary(self) -> str:
        def phase(name: str, report: PhaseReport) -> str:
            if report.skipped:
                return f"{name}=skipped"
            return f"{name}={len(report.sent)}/{report.attempted} sent"

        return (
            f"{phase('sensors', self.sensors)} {phase('circuits', self.circuits)} "
            f"status_available={self.status_available}"
        )


class ReconciliationService:
    """
    One reconciliation pass:

    rules -> sensors -> evaluate + send, then circuits -> relay status -> aggregate + send.

    Upstream failures skip the affected phase or item and never abort the pass.
    """

    def __init__(
        self,
        rule_source: RuleSource,
        sensor_source: SensorSource,
        relay_client: RelayClient,
        evaluator: Optional[RuleEvaluator] = None,
        aggregator: Optional[CircuitAggregator] = None,
    ):
        self.rule_source = rule_source
        self.sensor_source = sensor_source
        self.relay_client = relay_client
        self.evaluator = evaluator or rule_evaluator
        self.aggregator = aggregator or circuit_aggregator

    async def _send_all(self, commands: List[RelayCommand], report: PhaseReport) -> None:
        results = await asyncio.gather(
            *(self.relay_client.send_command(command) for command in commands),
            return_exceptions=True,
        )

        for command, result in zip(commands, results):
            if isinstance(result, SendError):
                logger.error(
                    f"Sending relay command failed for relay {command.relay_id} "
                    f"({command.state.value}): {result.detail}"
                )
                report.failed.append(command)
            elif isinstance(result, Exception):
                logger.error(
                    f"Unexpected error sending relay {command.relay_id} ({command.state.value})",
                    exc_info=result,
                )
                report.failed.append(command)
            elif isinstance(result, BaseException):
                raise result
            else:
                report.sent.append(command)

    async def control_sensor_relays(self) -> PhaseReport:
        report = PhaseReport()

        try:
            rules = await self.rule_source.fetch_rules()
        except FetchError as exc:
            logger.error(f"Fetching rules failed, skipping sensor relay control: {exc}")
            report.skipped = True
            return report

        try:
            readings = await self.sensor_source.fetch_readings(rules.keys())
        except FetchError as exc:
            logger.error(f"Fetching sensor readings failed, skipping sensor relay control: {exc}")
            report.skipped = True
            return report

        logger.info(f"Evaluating {len(readings)} readings against {len(rules)} rules")

        commands: List[RelayCommand] = []
        for reading in readings:
            command = self.evaluator.evaluate(reading, rules)
            if command is not None:
                commands.append(command)

        await self._send_all(commands, report)
        return report

    async def _fetch_status(self) -> Optional[RelayStatus]:
        try:
            return await self.relay_client.fetch_status()
        except FetchError as exc:
            logger.error(f"Fetching relay status failed, parent relays default to OFF: {exc}")
            return None

    async def update_circuit_parent_relays(self, report: CycleReport) -> PhaseReport:
        phase = PhaseReport()

        try:
            circuits = await self.rule_source.fetch_circuits()
        except FetchError as exc:
            logger.error(f"Fetching circuits failed, skipping circuit aggregation: {exc}")
            phase.skipped = True
            return phase

        if not circuits:
            return phase

        status = await self._fetch_status()
        report.status_available = status is not None

        commands = [self.aggregator.aggregate(circuit, status) for circuit in circuits]
        await self._send_all(commands, phase)
        return phase

    async def run_cycle(self) -> CycleReport:
        report = CycleReport()

        try:
            report.sensors = await self.control_sensor_relays()
        except Exception:
            logger.exception("Sensor relay control crashed, continuing with circuits")
            report.sensors = PhaseReport(skipped=True)

        try:
            report.circuits = await self.update_circuit_parent_relays(report)
        except Exception:
            logger.exception("Circuit aggregation crashed")
            report.circuits = PhaseReport(skipped=True)

        logger.info(f"Reconciliation cycle finished: {report.summary()}")
        return report
