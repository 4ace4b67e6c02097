import httpx
import pytest

from conftest import SENSORS, sensor_payload
from relay_agent.domain.errors import FetchError
from relay_agent.infrastructure.http.json_client import JsonHttpClient
from relay_agent.infrastructure.sensors.sensor_source import ArraySensorSource, TimeSeriesSensorSource


def _array(http_client, value_field="temperature") -> ArraySensorSource:
    return ArraySensorSource(JsonHttpClient(http_client), SENSORS, value_field=value_field)


def _timeseries(http_client) -> TimeSeriesSensorSource:
    return TimeSeriesSensorSource(
        JsonHttpClient(http_client),
        SENSORS,
        database="home",
        measurement="climate",
        value_field="temperature",
        window="5m",
    )


def _series(*rows, columns=("time", "mean")) -> dict:
    return {"results": [{"statement_id": 0, "series": [{"name": "climate", "columns": list(columns), "values": list(rows)}]}]}


@pytest.mark.asyncio
async def test_array_source_reads_envelope(upstream, http_client) -> None:
    upstream.set(
        SENSORS,
        {
            "status": 200,
            "message": "ok",
            "data": [sensor_payload(4, "A", 20.0), sensor_payload(5, "B", 18.25)],
        },
    )

    readings = await _array(http_client).fetch_readings()

    assert [(r.pin, r.channel, r.value) for r in readings] == [(4, "A", 20.0), (5, "B", 18.25)]
    assert readings[0].timestamp is not None
    assert readings[0].timestamp.second == 5


@pytest.mark.asyncio
async def test_array_source_uses_configured_value_field(upstream, http_client) -> None:
    upstream.set(SENSORS, {"status": 200, "data": [sensor_payload(4, "A", 20.0, humidity=55.5)]})

    readings = await _array(http_client, value_field="humidity").fetch_readings()

    assert readings[0].value == 55.5


@pytest.mark.asyncio
async def test_array_source_non_success_envelope_means_no_readings(upstream, http_client, caplog) -> None:
    upstream.set(SENSORS, {"status": 500, "message": "sensor bus down", "data": [sensor_payload()]})

    assert await _array(http_client).fetch_readings() == []
    assert "sensor bus down" in caplog.text


@pytest.mark.asyncio
async def test_array_source_skips_records_without_value(upstream, http_client) -> None:
    record = sensor_payload(5, "B")
    record["temperature"] = None
    upstream.set(SENSORS, {"status": 200, "data": [sensor_payload(4, "A"), record]})

    readings = await _array(http_client).fetch_readings()

    assert [r.pin for r in readings] == [4]


@pytest.mark.asyncio
async def test_array_source_transport_errors(upstream, http_client) -> None:
    upstream.fail(SENSORS, 502)
    with pytest.raises(FetchError):
        await _array(http_client).fetch_readings()

    upstream.set(SENSORS, {"status": 200, "data": [{"pin": "x", "dec": "A"}]})
    with pytest.raises(FetchError, match="invalid payload"):
        await _array(http_client).fetch_readings()


@pytest.mark.asyncio
async def test_array_source_latest_reading_by_key(upstream, http_client) -> None:
    upstream.set(SENSORS, {"status": 200, "data": [sensor_payload(4, "A", 20.0), sensor_payload(4, "B", 30.0)]})
    source = _array(http_client)

    reading = await source.fetch_latest_reading(4, "B")

    assert reading.value == 30.0
    assert await source.fetch_latest_reading(9, "A") is None


@pytest.mark.asyncio
async def test_timeseries_source_coerces_string_values(upstream, http_client) -> None:
    upstream.set(f"{SENSORS}/query", _series(["2024-01-01T10:00:00Z", "21.75"]))

    reading = await _timeseries(http_client).fetch_latest_reading(4, "A")

    assert reading.value == 21.75
    assert reading.timestamp.year == 2024
    params = upstream.requests[-1].url.params
    assert params["db"] == "home"
    assert "mean(\"temperature\")" in params["q"]
    assert "\"pin\" = '4'" in params["q"]
    assert "\"dec\" = 'A'" in params["q"]
    assert "now() - 5m" in params["q"]


@pytest.mark.asyncio
async def test_timeseries_source_empty_series_means_no_reading(upstream, http_client) -> None:
    upstream.set(f"{SENSORS}/query", {"results": [{"statement_id": 0}]})

    assert await _timeseries(http_client).fetch_latest_reading(4, "A") is None


@pytest.mark.asyncio
async def test_timeseries_source_rejects_non_numeric_values(upstream, http_client) -> None:
    upstream.set(f"{SENSORS}/query", _series(["2024-01-01T10:00:00Z", "warm"]))

    with pytest.raises(FetchError, match="non-numeric"):
        await _timeseries(http_client).fetch_latest_reading(4, "A")


@pytest.mark.asyncio
async def test_timeseries_source_isolates_per_sensor_failures(upstream, http_client, caplog) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if "'B'" in request.url.params["q"]:
            return httpx.Response(500, text="boom")
        return httpx.Response(200, json=_series(["2024-01-01T10:00:00Z", 19.5]))

    upstream.set(f"{SENSORS}/query", handler)

    readings = await _timeseries(http_client).fetch_readings([(4, "A"), (4, "B")])

    assert [(r.pin, r.channel, r.value) for r in readings] == [(4, "A", 19.5)]
    assert "pin=4 dec=B" in caplog.text


@pytest.mark.asyncio
async def test_timeseries_source_all_failures_is_fetch_error(upstream, http_client) -> None:
    upstream.fail(f"{SENSORS}/query", 500)

    with pytest.raises(FetchError, match="all 2 sensor queries failed"):
        await _timeseries(http_client).fetch_readings([(4, "A"), (5, "A")])


@pytest.mark.asyncio
async def test_timeseries_source_without_keys_does_not_query(upstream, http_client) -> None:
    assert await _timeseries(http_client).fetch_readings([]) == []
    assert upstream.requests == []


def test_timeseries_query_escapes_channel() -> None:
    source = TimeSeriesSensorSource(None, SENSORS, database="home", measurement="climate")

    assert "\"dec\" = 'O\\'Brien'" in source.build_query(1, "O'Brien")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"results": [{"series": [{"columns": ["time", "mean"], "values": [5]}]}]},
        {"results": [{"series": [{"columns": ["time", "mean"], "values": "21.5"}]}]},
        {"results": [{"series": [{"columns": ["time", "mean"], "values": [["2024-01-01T10:00:00Z"]]}]}]},
        {"results": ["oops"]},
        {"results": [{"series": ["oops"]}]},
    ],
)
async def test_timeseries_source_malformed_rows_are_fetch_errors(upstream, http_client, payload) -> None:
    upstream.set(f"{SENSORS}/query", payload)

    with pytest.raises(FetchError):
        await _timeseries(http_client).fetch_latest_reading(4, "A")
