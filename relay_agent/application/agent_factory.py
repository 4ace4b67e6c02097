# relay_agent/application/agent_factory.py
import logging

import httpx

from relay_agent.application.reconciliation_service import ReconciliationService
from relay_agent.core.config import SensorSourceKind, Settings
from relay_agent.infrastructure.http.json_client import JsonHttpClient
from relay_agent.infrastructure.relays.relay_client import RelayClient
from relay_agent.infrastructure.rules.rule_source import FileRuleSource, HttpRuleSource, RuleSource
from relay_agent.infrastructure.sensors.sensor_source import (ArraySensorSource, SensorSource,
                                                              TimeSeriesSensorSource)

logger = logging.getLogger(__name__)


def build_rule_source(settings: Settings, http: JsonHttpClient) -> RuleSource:
    if settings.RULES_FILE:
        logger.info(f"Rules source: file {settings.RULES_FILE}")
        return FileRuleSource(settings.RULES_FILE)

    logger.info(f"Rules source: {settings.rules_url}")
    return HttpRuleSource(http, settings.rules_url)


def build_sensor_source(settings: Settings, http: JsonHttpClient) -> SensorSource:
    if settings.SENSOR_SOURCE == SensorSourceKind.TIMESERIES:
        logger.info(f"Sensor source: time-series {settings.sensors_url} db={settings.SENSOR_DATABASE}")
        return TimeSeriesSensorSource(
            http,
            settings.sensors_url,
            database=settings.SENSOR_DATABASE,
            measurement=settings.SENSOR_MEASUREMENT,
            value_field=settings.SENSOR_VALUE_FIELD,
            window=settings.SENSOR_AVERAGE_WINDOW,
        )

    logger.info(f"Sensor source: {settings.sensors_url}")
    return ArraySensorSource(http, settings.sensors_url, value_field=settings.SENSOR_VALUE_FIELD)


def build_reconciliation_service(settings: Settings, client: httpx.AsyncClient) -> ReconciliationService:
    http = JsonHttpClient(client)
    return ReconciliationService(
        rule_source=build_rule_source(settings, http),
        sensor_source=build_sensor_source(settings, http),
        relay_client=RelayClient(http, settings.relays_url),
    )
