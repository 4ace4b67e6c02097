# relay_agent/infrastructure/sensors/sensor_source.py
import asyncio
import logging
from typing import Any, Iterable, List, Optional, Protocol

from pydantic import ValidationError

from relay_agent.domain.errors import FetchError
from relay_agent.domain.rules.entities import RuleKey
from relay_agent.domain.sensors.entities import SensorReading, SensorsEnvelope
from relay_agent.infrastructure.http.json_client import JsonHttpClient

logger = logging.getLogger(__name__)


class SensorSource(Protocol):
    async def fetch_readings(self, keys: Iterable[RuleKey]) -> List[SensorReading]:
        ...

    async def fetch_latest_reading(self, pin: int, channel: str) -> Optional[SensorReading]:
        ...


class ArraySensorSource:
    """
    Sensors service returning every sensor at once:

        {"status": 200, "message": "...", "data": [{"pin": 4, "dec": "A", "temperature": 20.1, ...}]}
    """

    def __init__(self, http: JsonHttpClient, base_url: str, value_field: str = "temperature"):
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.value_field = value_field

    async def fetch_readings(self, keys: Iterable[RuleKey] = ()) -> List[SensorReading]:
        # The service always returns all sensors; keys are not needed for the query.
        raw = await self.http.get_json(self.base_url, source="sensors")
        try:
            envelope = SensorsEnvelope.model_validate(raw)
        except ValidationError as exc:
            raise FetchError("sensors", f"invalid payload: {exc}") from exc

        if not envelope.is_success():
            logger.warning(
                f"Sensors service reported status={envelope.status} "
                f"message={envelope.message!r}; no readings this cycle"
            )
            return []

        readings: List[SensorReading] = []
        for record in envelope.data or []:
            value = getattr(record, self.value_field, None)
            if value is None:
                logger.warning(
                    f"Sensor pin={record.pin} dec={record.dec} has no {self.value_field!r} value. Skipping."
                )
                continue
            try:
                value = float(value)
            except (TypeError, ValueError):
                logger.warning(
                    f"Sensor pin={record.pin} dec={record.dec} has non-numeric "
                    f"{self.value_field!r} value {value!r}. Skipping."
                )
                continue

            readings.append(
                SensorReading(
                    pin=record.pin,
                    channel=record.dec,
                    value=value,
                    timestamp=record.update_at or record.create_at,
                )
            )
        return readings

    async def fetch_latest_reading(self, pin: int, channel: str) -> Optional[SensorReading]:
        for reading in await self.fetch_readings():
            if reading.pin == pin and reading.channel == channel:
                return reading
        return None


class TimeSeriesSensorSource:
    """
    Time-series database queried per sensor for a short moving average.

    Responses follow the InfluxDB 1.x query shape; values may arrive as
    strings and are coerced to float.
    """

    def __init__(
        self,
        http: JsonHttpClient,
        base_url: str,
        database: str,
        measurement: str,
        value_field: str = "temperature",
        window: str = "5m",
    ):
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.database = database
        self.measurement = measurement
        self.value_field = value_field
        self.window = window

    @staticmethod
    def _quote(value: str) -> str:
        return value.replace("\\", "\\\\").replace("'", "\\'")

    def build_query(self, pin: int, channel: str) -> str:
        return (
            f'SELECT mean("{self.value_field}") FROM "{self.measurement}" '
            f"WHERE \"pin\" = '{pin}' AND \"dec\" = '{self._quote(channel)}' "
            f"AND time > now() - {self.window}"
        )

    @staticmethod
    def _last_row(raw: Any) -> Optional[tuple[list, list]]:
        try:
            results = raw.get("results") or []
            if not results:
                return None
            if results[0].get("error"):
                raise FetchError("sensors", f"query error: {results[0]['error']}")
            series = results[0].get("series") or []
            if not series:
                return None
            columns = series[0].get("columns") or []
            values = series[0].get("values") or []
        except (AttributeError, TypeError, IndexError, KeyError) as exc:
            raise FetchError("sensors", f"unexpected query response shape: {exc!r}") from exc

        if not isinstance(columns, list) or not isinstance(values, list):
            raise FetchError("sensors", "query series columns and values must be lists")
        if not values:
            return None

        row = values[-1]
        if not isinstance(row, list):
            raise FetchError("sensors", f"query row {row!r} is not a list")
        return columns, row

    async def fetch_latest_reading(self, pin: int, channel: str) -> Optional[SensorReading]:
        raw = await self.http.get_json(
            f"{self.base_url}/query",
            source="sensors",
            params={"db": self.database, "q": self.build_query(pin, channel)},
        )

        row = self._last_row(raw)
        if row is None:
            logger.info(f"No data for sensor pin={pin} dec={channel} in the last {self.window}")
            return None

        columns, values = row
        value_index = columns.index("mean") if "mean" in columns else len(values) - 1
        time_index = columns.index("time") if "time" in columns else None

        try:
            raw_value = values[value_index]
            raw_time = values[time_index] if time_index is not None else None
        except IndexError as exc:
            raise FetchError("sensors", f"row {values} does not match columns {columns}") from exc
        if raw_value is None:
            return None

        try:
            value = float(raw_value)
        except (TypeError, ValueError) as exc:
            raise FetchError(
                "sensors", f"non-numeric value {raw_value!r} for pin={pin} dec={channel}"
            ) from exc

        try:
            return SensorReading(pin=pin, channel=channel, value=value, timestamp=raw_time)
        except ValidationError as exc:
            raise FetchError("sensors", f"invalid timestamp for pin={pin} dec={channel}: {exc}") from exc

    async def fetch_readings(self, keys: Iterable[RuleKey]) -> List[SensorReading]:
        keys = list(keys)
        if not keys:
            return []

        results = await asyncio.gather(
            *(self.fetch_latest_reading(pin, channel) for pin, channel in keys),
            return_exceptions=True,
        )

        readings: List[SensorReading] = []
        failures = 0
        for (pin, channel), result in zip(keys, results):
            if isinstance(result, FetchError):
                failures += 1
                logger.error(f"Sensor query failed for pin={pin} dec={channel}: {result}")
                continue
            if isinstance(result, BaseException):
                raise result
            if result is not None:
                readings.append(result)

        if failures == len(keys):
            raise FetchError("sensors", f"all {failures} sensor queries failed")
        return readings
